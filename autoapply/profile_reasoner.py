"""Infer application answers the profile does not state (salary, notice, work preference)."""
from __future__ import annotations

import re
from typing import Any

from autoapply.browser.fields import expected_salary_fallback
from autoapply.config import CandidateProfile
from autoapply.log import get_logger
from autoapply.models import Job, JobContext, ProfileInference

log = get_logger(__name__)

_SYSTEM = """You are an expert career advisor. Based on the candidate's background and the job posting, infer reasonable professional answers for missing fields in a job application.

Consider the candidate's years of experience and seniority, the job's location and work type, and current industry norms.

Return a JSON object with inferred responses and confidence scores (0-100) for each."""

DEFAULT_ANSWER = "I am interested in this opportunity."


class ProfileReasoner:
    def __init__(self, candidate: CandidateProfile, llm: Any = None) -> None:
        self.candidate = candidate
        self.llm = llm

    def default_inference(self, job: Job) -> ProfileInference:
        context = JobContext(job.title, job.company, job.location, job.description)
        return ProfileInference(
            inferred_salary_expectation=expected_salary_fallback(context),
            inferred_notice_period="2 weeks",
            inferred_work_preference="hybrid",
            inferred_availability="2 weeks",
            confidence_scores={"salary": 50, "noticePeriod": 50, "workPreference": 50, "availability": 50},
        )

    def infer_missing_info(self, job: Job, resume_text: str | None = None) -> ProfileInference:
        log.info("Inferring missing profile information...")
        if self.llm is None:
            return self.default_inference(job)

        c = self.candidate
        resume_block = f"RESUME SUMMARY:\n{resume_text[:1000]}\n" if resume_text else ""
        user_prompt = f"""CANDIDATE PROFILE:
- Years of Experience: {c.years_experience}
- Current Location: {c.current_location}
- Skills: {", ".join(c.primary_skills)}
- Willing to Relocate: {c.willing_to_relocate}
- Requires Sponsorship: {c.requires_sponsorship}

JOB POSTING:
- Title: {job.title}
- Location: {job.location}
- Work Type: {job.work_type}
- Company: {job.company}

{resume_block}
Infer reasonable answers for expected salary, notice period, work preference (remote/hybrid/onsite) and availability to start.

Respond with JSON:
{{"inferredSalaryExpectation": string, "inferredNoticePeriod": string, "inferredWorkPreference": "remote|hybrid|onsite", "inferredAvailability": string, "confidenceScores": {{"salary": number, "noticePeriod": number, "workPreference": number, "availability": number}}}}"""

        response = self.llm.generate_json(_SYSTEM, user_prompt)
        if not response.success or not response.data:
            log.warning("Failed to infer profile information")
            return self.default_inference(job)

        data = response.data
        fallback = self.default_inference(job)
        scores = data.get("confidenceScores") if isinstance(data.get("confidenceScores"), dict) else {}
        return ProfileInference(
            inferred_salary_expectation=data.get("inferredSalaryExpectation") or fallback.inferred_salary_expectation,
            inferred_notice_period=data.get("inferredNoticePeriod") or fallback.inferred_notice_period,
            inferred_work_preference=data.get("inferredWorkPreference") or fallback.inferred_work_preference,
            inferred_availability=data.get("inferredAvailability") or fallback.inferred_availability,
            confidence_scores={str(k): float(v) for k, v in scores.items() if isinstance(v, (int, float))}
            or fallback.confidence_scores,
        )

    def generate_answer(self, question: str, job: Job, context: str | None = None) -> str:
        """Two or three sentences answering a free-text application question."""
        if self.llm is None:
            return DEFAULT_ANSWER
        c = self.candidate
        prompt = f"""You are helping a job candidate answer the following question about a job application:

Question: "{question}"

Job Context:
- Title: {job.title}
- Company: {job.company}
- Location: {job.location}
- Requirements: {", ".join(job.requirements) or "N/A"}

Candidate Background:
- Experience: {c.years_experience} years
- Skills: {", ".join(c.primary_skills)}
- Current Location: {c.current_location}
{f"Additional Context: {context}" if context else ""}

Write a professional, honest answer of 2-3 sentences that highlights relevant experience."""
        response = self.llm.generate(prompt)
        if not response.success or not response.data:
            log.warning("Failed to generate answer")
            return DEFAULT_ANSWER
        return response.data.strip().strip("\"'")

    def score_response(self, answer: str, job: Job) -> int:
        if self.llm is None:
            return 50
        prompt = f"""Rate how well this response answers a job application question for this posting.

Job: {job.title} at {job.company}
Requirements: {", ".join(job.requirements) or "N/A"}

Response: "{answer}"

Respond with ONLY a number between 0 and 100."""
        response = self.llm.generate(prompt)
        if not response.success or not response.data:
            return 50
        match = re.search(r"\d+", response.data)
        score = int(match.group(0)) if match else 50
        return max(0, min(100, score))
