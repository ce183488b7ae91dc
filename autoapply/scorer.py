"""Score postings against the candidate profile with role-aware matching."""
from __future__ import annotations

import re

from autoapply.config import CandidateProfile, SearchSettings
from autoapply.log import get_logger
from autoapply.models import Job, ScoredJob

log = get_logger(__name__)


def _normalize(s: str) -> str:
    return (s or "").lower().strip()


LOCATION_ALIASES: dict[str, list[str]] = {
    "australia": ["australia", "sydney", "melbourne", "brisbane", "perth", "adelaide", "canberra"],
    "sydney": ["sydney", "nsw"],
    "melbourne": ["melbourne", "vic"],
    "india": ["india", "bengaluru", "bangalore", "hyderabad", "pune", "gurugram", "noida"],
    "bangalore": ["bangalore", "bengaluru"],
    "remote": ["remote", "anywhere", "work from home", "wfh"],
}

# Titles that signal a level well above an individual contributor
OVER_LEVEL_TITLES: list[str] = [
    "director", "vice president", "vp ", "vp,", "chief ",
    "head of", "cto", "managing director", "general manager",
]

# Tiny tokens like "ai" or "api" would match everything
_MIN_SKILL_TOKEN_LEN = 4


def _expand_locations(locations: list[str]) -> list[str]:
    expanded: list[str] = []
    for loc in locations:
        for part in re.split(r"[,/]", loc.lower()):
            key = part.strip()
            if not key:
                continue
            expanded.extend(LOCATION_ALIASES.get(key, [key]))
    return list(dict.fromkeys(expanded))


def _expand_skills(raw_skills: list[str]) -> list[str]:
    """Break compound skills into matchable tokens, filtering short noise."""
    tokens: list[str] = []
    for s in raw_skills:
        low = s.lower().strip()
        if not low:
            continue
        tokens.append(low)
        for part in re.findall(r"[a-z0-9+#.]+(?:[\s-][a-z0-9+#.]+)*", low):
            part = part.strip()
            if part and part != low and len(part) >= _MIN_SKILL_TOKEN_LEN:
                tokens.append(part)
    return list(dict.fromkeys(tokens))


def _is_over_level(title: str) -> bool:
    t = _normalize(title)
    return any(tag in t for tag in OVER_LEVEL_TITLES)


def _word_overlap_ratio(role: str, text: str) -> float:
    """Fraction of words in *role* that appear in *text*.

    Requires at least 2 overlapping words for multi-word roles, so a single
    generic word like "developer" does not match every posting.
    """
    role_words = set(role.lower().split())
    text_words = set(re.findall(r"[a-z0-9+#]+", text.lower()))
    if not role_words:
        return 0.0
    overlap = role_words & text_words
    if len(overlap) < 2 and len(role_words) > 1:
        return 0.0
    return len(overlap) / len(role_words)


def _best_role_match(title: str, desc: str, roles: list[str]) -> tuple[float, str]:
    """Return (score_contribution, role).

    Role in job TITLE (exact substring)        -> 0.40
    Role in title (word overlap >= 60%)        -> 0.30
    Role in description only                   -> 0.15
    """
    title_norm = _normalize(title)
    desc_norm = _normalize(desc)
    best_score, best_role = 0.0, ""
    for raw in roles:
        role = raw.lower().strip()
        if not role:
            continue
        if role in title_norm:
            score = 0.40
        elif _word_overlap_ratio(role, title_norm) >= 0.6:
            score = 0.30
        elif role in desc_norm:
            score = 0.15
        else:
            continue
        if score > best_score:
            best_score, best_role = score, raw
    return best_score, best_role


def score_job(job: Job, candidate: CandidateProfile, search: SearchSettings) -> ScoredJob:
    reasons: list[str] = []
    keywords: list[str] = []
    desc = _normalize(job.description + " " + " ".join(job.requirements))
    full_text = desc + " " + _normalize(job.title)

    if _is_over_level(job.title):
        return ScoredJob(job=job, score=0.0, match_reasons=["Filtered: seniority above profile level"])

    role_score, matched_role = _best_role_match(job.title, desc, list(search.terms))
    if matched_role:
        reasons.append(f"Role match: {matched_role}")

    primary = [s for s in _expand_skills(list(candidate.primary_skills)) if s in full_text]
    secondary = [s for s in _expand_skills(list(candidate.secondary_skills)) if s in full_text]
    for s in primary[:5]:
        reasons.append(f"Skill: {s}")
    if len(primary) >= 3:
        reasons.append("Strong skill overlap")
    keywords.extend(primary + secondary)

    locations = _expand_locations([search.location, candidate.current_location])
    job_loc = _normalize(job.location)
    has_location = any(alias in job_loc for alias in locations)
    if has_location:
        reasons.append("Location match")
    elif candidate.willing_to_relocate:
        reasons.append("Open to relocation")

    years = re.findall(r"(\d+)\+?\s*(?:years|yrs)", desc)
    needs_years = min((int(y) for y in years), default=0)
    experience_fit = not needs_years or needs_years <= max(candidate.years_experience, 1) + 1
    if needs_years and experience_fit:
        reasons.append("Experience level fit")

    score = role_score                                       # 0 - 0.40
    score += min(0.06 * len(primary), 0.30)                  # 0 - 0.30
    score += min(0.02 * len(secondary), 0.06)                # 0 - 0.06
    if has_location:
        score += 0.14
    elif candidate.willing_to_relocate:
        score += 0.07
    if experience_fit:
        score += 0.10
    score = min(score, 1.0)

    return ScoredJob(
        job=job,
        score=round(score, 2),
        match_reasons=reasons,
        keyword_suggestions=list(dict.fromkeys(keywords))[:10],
    )


def filter_and_rank(
    jobs: list[Job], candidate: CandidateProfile, search: SearchSettings, min_score: float = 0.3
) -> list[ScoredJob]:
    scored = [score_job(j, candidate, search) for j in jobs]
    result = sorted([s for s in scored if s.score >= min_score], key=lambda s: -s.score)
    log.info("Scored %d jobs -> %d above %.0f%% threshold", len(jobs), len(result), min_score * 100)
    return result
