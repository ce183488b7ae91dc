"""Relevance decisions and application plans, model-first with a deterministic fallback."""
from __future__ import annotations

from typing import Any

from autoapply.config import Settings
from autoapply.log import get_logger
from autoapply.models import ApplicationPlan, Job, RelevanceDecision
from autoapply.scorer import score_job

log = get_logger(__name__)

RELEVANCE_THRESHOLD = 30

_RELEVANCE_SYSTEM = """You are an expert recruiter analyzing job postings for a candidate. Evaluate the job based on the candidate's background and determine if this is a relevant opportunity.

Return a JSON object with:
- isRelevant (boolean): Is this a good match?
- relevanceScore (0-100): How well does the candidate fit?
- reasoning (string): Why is this relevant/not relevant?
- criteriaMatched (array): What requirements match the candidate?
- criteriaNotMatched (array): What's missing?"""

_PLAN_SYSTEM = """You are a strategic career consultant. Create a plan for filling out a job application to maximize the candidate's chances.

Return a JSON object with:
- shouldApply (boolean): Should the candidate apply?
- estimatedFillTime (number): Estimated seconds to complete application
- fieldStrategy (object): Key -> how to approach each field
- expectedChallenges (array): What obstacles might we face?
- keyPracticesToHighlight (array): What should we emphasize?"""

_EXTRACT_SYSTEM = (
    "Extract structured job posting information from the given HTML. Look for job title, company name, "
    "location, requirements, responsibilities, and benefits. Return only valid JSON."
)


def _as_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value if v]
    if isinstance(value, str) and value:
        return [value]
    return []


class Planner:
    def __init__(self, settings: Settings, llm: Any = None) -> None:
        self.settings = settings
        self.llm = llm

    def _candidate_block(self) -> str:
        c = self.settings.candidate
        return (
            f"- Years of Experience: {c.years_experience}\n"
            f"- Primary Skills: {', '.join(c.primary_skills)}\n"
            f"- Secondary Skills: {', '.join(c.secondary_skills)}\n"
            f"- Willing to Relocate: {c.willing_to_relocate}\n"
            f"- Requires Sponsorship: {c.requires_sponsorship}\n"
            f"- Location: {c.current_location}"
        )

    def heuristic_relevance(self, job: Job, note: str = "") -> RelevanceDecision:
        scored = score_job(job, self.settings.candidate, self.settings.search)
        score = round(scored.score * 100, 1)
        reasoning = "Heuristic match: " + (", ".join(scored.match_reasons) or "no strong signals")
        if note:
            reasoning = f"{reasoning} ({note})"
        return RelevanceDecision(
            is_relevant=score >= RELEVANCE_THRESHOLD,
            relevance_score=score,
            reasoning=reasoning,
            criteria_matched=scored.match_reasons,
            criteria_not_matched=[] if scored.match_reasons else ["No matching skills or role"],
        )

    def analyze_relevance(self, job: Job) -> RelevanceDecision:
        log.info("Analyzing relevance for: %s at %s", job.title, job.company)
        if self.llm is None:
            return self.heuristic_relevance(job, "model not configured")

        user_prompt = f"""CANDIDATE PROFILE:
{self._candidate_block()}

JOB POSTING:
Title: {job.title}
Company: {job.company}
Location: {job.location}
Work Type: {job.work_type}
Requirements: {", ".join(job.requirements) or "Not specified"}
Responsibilities: {", ".join(job.responsibilities) or "Not specified"}
Full Description: {job.description[:500] or "Not provided"}

Analyze this job and respond with JSON:
{{"isRelevant": boolean, "relevanceScore": number, "reasoning": string, "criteriaMatched": [string], "criteriaNotMatched": [string]}}"""

        response = self.llm.generate_json(_RELEVANCE_SYSTEM, user_prompt)
        if not response.success or not response.data:
            log.warning("Relevance analysis failed (%s); using heuristic score", response.error)
            return self.heuristic_relevance(job, "model unavailable")

        data = response.data
        try:
            score = float(data.get("relevanceScore", 0))
        except (TypeError, ValueError):
            score = 0.0
        decision = RelevanceDecision(
            is_relevant=bool(data.get("isRelevant")),
            relevance_score=score,
            reasoning=str(data.get("reasoning", "")),
            criteria_matched=_as_list(data.get("criteriaMatched")),
            criteria_not_matched=_as_list(data.get("criteriaNotMatched")),
        )
        log.info(
            "Relevance Analysis: %.0f%% - %s",
            decision.relevance_score, "RELEVANT" if decision.is_relevant else "NOT RELEVANT",
        )
        return decision

    def plan_application(self, job: Job) -> ApplicationPlan:
        log.info("Creating application plan for: %s", job.title)
        fallback = ApplicationPlan(
            should_apply=False,
            estimated_fill_time=300,
            expected_challenges=["Unable to create detailed plan"],
        )
        if self.llm is None:
            # No model: the heuristic relevance gate already decided.
            return ApplicationPlan(should_apply=True, expected_challenges=["Planned without a model"])

        c = self.settings.candidate
        user_prompt = f"""JOB DETAILS:
Title: {job.title}
Company: {job.company}
Requirements: {", ".join(job.requirements) or "Not specified"}
Responsibilities: {", ".join(job.responsibilities) or "Not specified"}
Description: {job.description[:800] or "Not provided"}

CANDIDATE INFO:
Skills: {", ".join(c.primary_skills)}
Experience: {c.years_experience} years
Location: {c.current_location}

Create an application strategy and respond with JSON:
{{"shouldApply": boolean, "estimatedFillTime": number, "fieldStrategy": {{"field_name": "strategy"}}, "expectedChallenges": [string], "keyPracticesToHighlight": [string]}}"""

        response = self.llm.generate_json(_PLAN_SYSTEM, user_prompt)
        if not response.success or not response.data:
            log.error("Error creating application plan: %s", response.error)
            return fallback

        data = response.data
        strategy = data.get("fieldStrategy") if isinstance(data.get("fieldStrategy"), dict) else {}
        try:
            fill_time = int(data.get("estimatedFillTime", 300))
        except (TypeError, ValueError):
            fill_time = 300
        plan = ApplicationPlan(
            should_apply=bool(data.get("shouldApply")),
            estimated_fill_time=fill_time,
            field_strategy={str(k): str(v) for k, v in strategy.items()},
            expected_challenges=_as_list(data.get("expectedChallenges")),
            key_practices_to_highlight=_as_list(data.get("keyPracticesToHighlight")),
        )
        log.info("Application plan created. Should apply: %s", plan.should_apply)
        return plan

    def extract_job_description(self, html: str) -> Job | None:
        if self.llm is None:
            return None
        user_prompt = f"""HTML Content (first 2000 chars):
{html[:2000]}

Extract and return:
{{"jobTitle": string, "companyName": string, "location": string, "workType": string, "requirements": [string], "responsibilities": [string], "benefits": [string], "fullDescription": string}}"""
        response = self.llm.generate_json(_EXTRACT_SYSTEM, user_prompt)
        if not response.success or not response.data:
            log.warning("Failed to extract job description from HTML")
            return None
        data = response.data
        return Job(
            title=str(data.get("jobTitle") or "Unknown"),
            company=str(data.get("companyName") or "Unknown"),
            location=str(data.get("location") or ""),
            url="",
            description=str(data.get("fullDescription") or ""),
            work_type=str(data.get("workType") or ""),
            requirements=_as_list(data.get("requirements")),
            responsibilities=_as_list(data.get("responsibilities")),
            benefits=_as_list(data.get("benefits")),
            source="extracted",
        )
