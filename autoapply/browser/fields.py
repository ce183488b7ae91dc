"""
Field intent classification and answer resolution for free-text form fields.

The resolver is a short pipeline: heuristic stage, optional model stage,
validation gate, cache write. Any stage may short-circuit:

  heuristic-preferred intent  -> configured value, model never consulted
  cached answer               -> returned as-is
  model answer                -> kept only when it fits the intent's shape
  otherwise                   -> heuristic value (may be None: leave field empty)
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Any, Callable

from autoapply.config import AnswerHints, CandidateProfile
from autoapply.log import get_logger
from autoapply.models import JobContext

log = get_logger(__name__)


class FieldIntent(str, Enum):
    SALARY = "salary"
    LOCATION = "location"
    NOTICE_PERIOD = "notice-period"
    LINKEDIN = "linkedin"
    PORTFOLIO = "portfolio"
    VISA = "visa"
    SPONSORSHIP = "sponsorship"
    RELOCATE = "relocate"
    EXPERIENCE = "experience"
    GENERIC = "generic"


def _mentions(*keywords: str) -> Callable[[str, str], bool]:
    def predicate(context: str, declared_type: str) -> bool:
        return any(k in context for k in keywords)
    return predicate


def _experience(context: str, declared_type: str) -> bool:
    return "experience" in context or declared_type == "number"


# Evaluated top to bottom; first match wins.
INTENT_RULES: list[tuple[Callable[[str, str], bool], FieldIntent]] = [
    (_mentions("salary", "compensation", "ctc"), FieldIntent.SALARY),
    (_mentions("location", "city"), FieldIntent.LOCATION),
    (_mentions("notice period", "join", "start date"), FieldIntent.NOTICE_PERIOD),
    (_mentions("linkedin"), FieldIntent.LINKEDIN),
    (_mentions("portfolio", "website"), FieldIntent.PORTFOLIO),
    (_mentions("visa", "work authorization", "work permit"), FieldIntent.VISA),
    (_mentions("sponsor"), FieldIntent.SPONSORSHIP),
    (_mentions("relocat"), FieldIntent.RELOCATE),
    (_experience, FieldIntent.EXPERIENCE),
]

HEURISTIC_PREFERRED: frozenset[FieldIntent] = frozenset({
    FieldIntent.LOCATION,
    FieldIntent.NOTICE_PERIOD,
    FieldIntent.LINKEDIN,
    FieldIntent.PORTFOLIO,
    FieldIntent.VISA,
    FieldIntent.SPONSORSHIP,
    FieldIntent.RELOCATE,
    FieldIntent.EXPERIENCE,
})

YES_NO_INTENTS = frozenset({FieldIntent.VISA, FieldIntent.SPONSORSHIP, FieldIntent.RELOCATE})

_WS = re.compile(r"\s+")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_SALARY_RANGE = re.compile(
    r"(\$|usd|aud|inr|eur)\s?\d{2,3}[,.]?\d{0,3}\s?(k|000)?\s?[-to]+\s?"
    r"(\$|usd|aud|inr|eur)?\s?\d{2,3}[,.]?\d{0,3}\s?(k|000)?"
)
_SALARY_SIGNAL = re.compile(r"\$|usd|aud|inr|eur|salary|compensation|ctc|k\b|per\s*(year|annum|hour)")

MAX_ANSWER_CHARS = 220
MAX_CACHE_KEY_CHARS = 300


def normalize_context(text: str | None) -> str:
    return _WS.sub(" ", text or "").strip().lower()


def classify_intent(context: str, declared_type: str = "text") -> FieldIntent:
    ctx = normalize_context(context)
    kind = (declared_type or "text").lower()
    for predicate, intent in INTENT_RULES:
        if predicate(ctx, kind):
            return intent
    return FieldIntent.GENERIC


def yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def expected_salary_fallback(job: JobContext | None) -> str:
    """A salary range quoted in the posting, else a regional default."""
    job = job or JobContext()
    text = f"{job.location} {job.description}".lower()
    match = _SALARY_RANGE.search(text)
    if match:
        return _WS.sub(" ", match.group(0)).strip()
    if any(k in text for k in ("australia", "sydney", "melbourne")):
        return "AUD 130000"
    if any(k in text for k in ("india", "bengaluru", "bangalore")):
        return "3500000"
    return "140000"


def heuristic_answer(
    intent: FieldIntent,
    hints: AnswerHints,
    job: JobContext | None = None,
) -> str | None:
    if intent is FieldIntent.SALARY:
        return expected_salary_fallback(job)
    if intent is FieldIntent.NOTICE_PERIOD:
        return "2 weeks"
    if intent is FieldIntent.LINKEDIN:
        return hints.linkedin_url or None
    if intent is FieldIntent.PORTFOLIO:
        return hints.portfolio_url or None
    if intent is FieldIntent.LOCATION:
        return hints.current_location or None
    if intent in (FieldIntent.VISA, FieldIntent.SPONSORSHIP):
        return yes_no(hints.sponsorship)
    if intent is FieldIntent.RELOCATE:
        return yes_no(hints.relocate)
    if intent is FieldIntent.EXPERIENCE:
        return hints.years_experience
    return None


def contact_value(context: str, candidate: CandidateProfile) -> str | None:
    """Identity fields are answered from the profile before intent classification."""
    ctx = normalize_context(context)
    if "email" in ctx:
        return candidate.email
    if "phone" in ctx or "mobile" in ctx or "cell" in ctx or re.search(r"\btel\b", ctx):
        return candidate.phone
    if "name" in ctx and not any(k in ctx for k in ("company", "employer", "school", "reference", "user")):
        parts = candidate.name.split()
        if "first" in ctx or "given" in ctx:
            return parts[0] if parts else candidate.name
        if "last" in ctx or "family" in ctx or "surname" in ctx:
            return parts[-1] if parts else candidate.name
        return candidate.name
    return None


def preferred_boolean_answer(question: str, hints: AnswerHints) -> str:
    """Lowercase "yes"/"no" for a radio-group question."""
    q = normalize_context(question)
    if "sponsor" in q:
        return yes_no(hints.sponsorship).lower()
    if "relocat" in q:
        return yes_no(hints.relocate).lower()
    if "visa" in q or "work authorization" in q or "work permit" in q:
        return "yes" if hints.visa.strip().lower() == "yes" else "no"
    return "yes"


def choose_select_option(
    options: list[dict[str, str]],
    context: str,
    hints: AnswerHints,
) -> str | None:
    """Value of the option matching a known preference, or None."""
    ctx = normalize_context(context)
    if "sponsor" in ctx or "visa" in ctx:
        wanted = preferred_boolean_answer(ctx, hints)
    elif "relocat" in ctx:
        wanted = yes_no(hints.relocate).lower()
    elif "experience" in ctx:
        wanted = hints.years_experience
    else:
        return None
    for option in options:
        text = normalize_context(option.get("text"))
        value = (option.get("value") or "").strip()
        if value and wanted in text:
            return value
    return None


def first_real_option(options: list[dict[str, str]]) -> str | None:
    for option in options:
        value = (option.get("value") or "").strip()
        text = normalize_context(option.get("text"))
        if value and not text.startswith("select") and not value.lower().startswith("select"):
            return value
    return None


def clean_model_answer(raw: str | None, declared_type: str) -> str | None:
    text = _WS.sub(" ", (raw or "").strip().strip("\"'`")).strip()
    if not text:
        return None
    if (declared_type or "").lower() == "number":
        match = _NUMBER.search(text)
        return match.group(0) if match else None
    return text[:MAX_ANSWER_CHARS]


def is_answer_compatible(value: str, intent: FieldIntent, declared_type: str) -> bool:
    lowered = value.strip().lower()
    if not lowered:
        return False
    if intent is FieldIntent.LOCATION and _SALARY_SIGNAL.search(lowered):
        return False
    if intent is FieldIntent.SALARY:
        return bool(_SALARY_SIGNAL.search(lowered) or re.search(r"\d", lowered))
    if intent is FieldIntent.EXPERIENCE or declared_type == "number":
        return bool(re.fullmatch(r"-?\d+(\.\d+)?", lowered))
    if intent in YES_NO_INTENTS:
        return lowered in ("yes", "no")
    return True


def build_field_prompt(
    context: str,
    declared_type: str,
    intent: FieldIntent,
    candidate: CandidateProfile,
    hints: AnswerHints,
    job: JobContext | None,
) -> str:
    job = job or JobContext()
    return f"""You answer job application form fields for the candidate.
Return only the exact value to type into the field. No explanation, no quotes.

Field hint: {context}
Field type: {declared_type}
Detected intent: {intent.value}

CANDIDATE PROFILE:
- Name: {candidate.name}
- Current location: {hints.current_location or "Not specified"}
- Years of experience: {hints.years_experience}
- Requires sponsorship: {yes_no(hints.sponsorship)}
- Willing to relocate: {yes_no(hints.relocate)}
- Visa status: {hints.visa}
- Skills: {", ".join(candidate.primary_skills) or "Not specified"}
- LinkedIn: {hints.linkedin_url or "Not specified"}
- Portfolio: {hints.portfolio_url or "Not specified"}

JOB CONTEXT:
- Title: {job.title}
- Company: {job.company}
- Location: {job.location}
- Description: {job.description[:1200]}

If the field is numeric, answer with a number only. If it is yes/no, answer Yes or No."""


class InferredAnswerCache:
    """Per-job answers keyed by declared field type and field context."""

    def __init__(self) -> None:
        self._answers: dict[str, tuple[str, str]] = {}

    @staticmethod
    def key(declared_type: str, context: str) -> str:
        return f"{declared_type}:{context}"[:MAX_CACHE_KEY_CHARS].lower()

    def get(self, declared_type: str, context: str) -> str | None:
        entry = self._answers.get(self.key(declared_type, context))
        if entry is None or entry[0] != declared_type.lower():
            return None
        return entry[1]

    def put(self, declared_type: str, context: str, value: str) -> None:
        self._answers[self.key(declared_type, context)] = (declared_type.lower(), value)

    def clear(self) -> None:
        self._answers.clear()

    def __len__(self) -> int:
        return len(self._answers)


class FieldAnswerResolver:
    def __init__(
        self,
        candidate: CandidateProfile,
        hints: AnswerHints,
        llm: Any = None,
        llm_enabled: bool = True,
    ) -> None:
        self.candidate = candidate
        self.hints = hints
        self.llm = llm
        self.llm_enabled = llm_enabled
        self.llm_available = False
        self.job = JobContext()
        self.cache = InferredAnswerCache()

    @property
    def model_ready(self) -> bool:
        return self.llm is not None and self.llm_enabled and self.llm_available

    def start_job(self, job: JobContext) -> None:
        self.job = job
        self.cache.clear()

    def resolve(self, context: str, declared_type: str = "text") -> str | None:
        kind = (declared_type or "text").lower()
        ctx = normalize_context(context)
        intent = classify_intent(ctx, kind)
        heuristic = heuristic_answer(intent, self.hints, self.job)

        if intent in HEURISTIC_PREFERRED:
            return heuristic

        cached = self.cache.get(kind, ctx)
        if cached is not None:
            return cached

        answer = heuristic
        if self.model_ready:
            candidate = self._ask_model(ctx, kind, intent)
            if candidate is not None and is_answer_compatible(candidate, intent, kind):
                answer = candidate
            elif candidate is not None:
                log.info("[LLM] Rejected %s answer %r for %s", intent.value, candidate, ctx[:80])

        if answer:
            self.cache.put(kind, ctx, answer)
        return answer

    def _ask_model(self, context: str, declared_type: str, intent: FieldIntent) -> str | None:
        prompt = build_field_prompt(context, declared_type, intent, self.candidate, self.hints, self.job)
        try:
            response = self.llm.generate(prompt)
        except Exception as exc:
            log.warning("[LLM] Field inference failed: %s", exc)
            return None
        if not response.success:
            return None
        return clean_model_answer(response.data, declared_type)
