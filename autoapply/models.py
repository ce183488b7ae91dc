"""Data models for postings, decisions, apply outcomes and tracked applications."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class Job:
    title: str
    company: str
    location: str
    url: str
    description: str = ""
    work_type: str = ""
    requirements: list[str] = field(default_factory=list)
    responsibilities: list[str] = field(default_factory=list)
    benefits: list[str] = field(default_factory=list)
    salary: str | None = None
    source: str = "unknown"


@dataclass
class JobContext:
    """What the apply flows know about the posting currently open."""
    title: str = ""
    company: str = ""
    location: str = ""
    description: str = ""

    def identity_key(self) -> str:
        parts = (self.title, self.company, self.location)
        key = "|".join(re.sub(r"\s+", " ", p or "").strip() for p in parts)
        return key.lower()[:240]


class ApplicationOutcome(str, Enum):
    APPLIED = "applied"
    FAILED = "failed"
    MANUAL_HELP = "manual-help"
    SKIPPED = "skipped"


@dataclass
class CardResult:
    outcome: ApplicationOutcome
    reason: str = ""
    job: JobContext | None = None
    url: str = ""


@dataclass
class SessionCounters:
    applied: int = 0
    failed: int = 0
    manual_help: int = 0
    skipped: int = 0
    results: list[CardResult] = field(default_factory=list)

    def add(self, result: CardResult) -> None:
        self.results.append(result)
        if result.outcome is ApplicationOutcome.APPLIED:
            self.applied += 1
        elif result.outcome is ApplicationOutcome.FAILED:
            self.failed += 1
        elif result.outcome is ApplicationOutcome.MANUAL_HELP:
            self.manual_help += 1
        else:
            self.skipped += 1

    @property
    def success_rate(self) -> float:
        attempted = self.applied + self.failed
        return (self.applied / attempted) * 100 if attempted else 0.0


@dataclass
class RelevanceDecision:
    is_relevant: bool
    relevance_score: float
    reasoning: str
    criteria_matched: list[str] = field(default_factory=list)
    criteria_not_matched: list[str] = field(default_factory=list)


@dataclass
class ApplicationPlan:
    should_apply: bool
    estimated_fill_time: int = 300
    field_strategy: dict[str, str] = field(default_factory=dict)
    expected_challenges: list[str] = field(default_factory=list)
    key_practices_to_highlight: list[str] = field(default_factory=list)


@dataclass
class ProfileInference:
    inferred_salary_expectation: str | None = None
    inferred_notice_period: str | None = None
    inferred_work_preference: str | None = None
    inferred_availability: str | None = None
    confidence_scores: dict[str, float] = field(default_factory=dict)


@dataclass
class ApplicationRecord:
    id: str
    timestamp: int
    company_name: str
    job_title: str
    job_url: str
    status: str
    relevance_score: float = 0.0
    fill_rating: float | None = None
    notes: str | None = None
    form_data_filled: dict[str, Any] = field(default_factory=dict)
    error_log: str | None = None


@dataclass
class ExecutionResult:
    success: bool
    message: str
    filled_fields: dict[str, str] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


@dataclass
class ScoredJob:
    job: Job
    score: float
    match_reasons: list[str] = field(default_factory=list)
    keyword_suggestions: list[str] = field(default_factory=list)
