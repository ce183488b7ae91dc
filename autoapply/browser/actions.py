"""Rank clickable controls on a third-party application page and pick the next one to press."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from autoapply.browser.surfaces import (
    body_text,
    iter_surfaces,
    normalize_space,
    safe_count,
    safe_visible,
)
from autoapply.log import get_logger

log = get_logger(__name__)

ACTION_SELECTORS: list[str] = [
    "form button[type='submit']",
    "form input[type='submit']",
    "button[type='submit']",
    "input[type='submit']",
    "form button",
    "form input[type='button']",
    "button",
    "input[type='button']",
    "a[role='button']",
    "a:has-text('Apply')",
    "a:has-text('Continue')",
    "a:has-text('Next')",
]

JS_CONTROL_META = """(el) => ({
  text: (el.innerText || el.textContent || '').trim(),
  aria: el.getAttribute('aria-label') || '',
  value: el.getAttribute('value') || '',
  type: (el.getAttribute('type') || '').toLowerCase(),
  href: (el.getAttribute('href') || '').toLowerCase(),
  tag: el.tagName.toLowerCase(),
  inForm: !!el.closest('form'),
})"""

INFORMATIONAL_KEYWORDS = (
    "how to apply", "learn more", "read more", "view details", "job details", "about this role", "faq",
)
AUTH_KEYWORDS = (
    "sign in", "log in", "login", "create account", "register",
    "continue with google", "continue with linkedin",
    "with linkedin", "with google", "with apple", "with indeed",
)
NEGATIVE_KEYWORDS = ("cancel", "close", "discard", "back", "previous")
UTILITY_KEYWORDS = (
    "toggle flyout", "remove file", "dropbox", "google drive", "attach",
    "upload from", "enter manually", "share", "copy link",
)

REJECTIONS: list[tuple[str, tuple[str, ...]]] = [
    ("informational", INFORMATIONAL_KEYWORDS),
    ("auth", AUTH_KEYWORDS),
    ("negative", NEGATIVE_KEYWORDS),
    ("utility", UTILITY_KEYWORDS),
]

PRIMARY_INTENT = (
    "submit", "apply", "continue", "next", "review", "start", "begin", "proceed", "finish", "complete", "send",
)
SECONDARY_INTENT = ("i accept", "accept", "agree")

# (predicate on lowercased label, bonus); first match wins.
KEYWORD_TIERS: list[tuple[Any, int]] = [
    (lambda t: "submit application" in t, 120),
    (lambda t: "submit" in t, 110),
    (lambda t: "complete application" in t or "finish application" in t, 100),
    (lambda t: "start application" in t or "begin application" in t, 95),
    (lambda t: "apply now" in t, 90),
    (lambda t: t == "apply" or t.startswith("apply "), 80),
    (lambda t: "send" in t, 78),
    (lambda t: "continue" in t or "next" in t, 70),
    (lambda t: "review" in t, 65),
    (lambda t: "apply" in t, 45),
]

HELP_HREF_FRAGMENTS = ("how-to-apply", "candidate-how-to-apply", "/help", "/faq")

TOP_CANDIDATES = 8
SIGNATURE_CHARS = 120

_ACTION_SYSTEM_PROMPT = """You are selecting the single next button on a job application page.
Prefer controls that submit the application or move the form forward.
Never pick sign-in, account creation, informational, cancel, or file-picker controls.
Return JSON: {"choice": <index or -1>, "intent": "submit|progress|start|none", "reason": "<short reason>"}"""


@dataclass
class ActionCandidate:
    locator: Any
    label: str
    score: int
    signature: str


def normalize_signature(label: str) -> str:
    return normalize_space(label).lower()[:SIGNATURE_CHARS]


def combined_label(meta: dict[str, Any]) -> str:
    parts = [meta.get("text") or "", meta.get("aria") or "", meta.get("value") or ""]
    return normalize_space(" ".join(p for p in parts if p))


def rejection_reason(label: str) -> str | None:
    lowered = label.lower()
    for reason, keywords in REJECTIONS:
        if any(k in lowered for k in keywords):
            return reason
    return None


def has_action_intent(label: str, tag: str, control_type: str) -> bool:
    lowered = label.lower()
    if any(k in lowered for k in PRIMARY_INTENT) or any(k in lowered for k in SECONDARY_INTENT):
        return True
    return control_type == "submit" or (tag == "button" and len(lowered) <= 24 and "submit" in lowered)


def score_action(label: str, tag: str = "", control_type: str = "", href: str = "", in_form: bool = False) -> int | None:
    """Heuristic score, or None when the control is excluded outright."""
    text = normalize_space(label).lower()
    if not text or rejection_reason(text) or not has_action_intent(text, tag, control_type):
        return None

    score = 0
    if in_form:
        score += 25
    if tag in ("button", "input"):
        score += 10
    if control_type == "submit":
        score += 40
    for predicate, bonus in KEYWORD_TIERS:
        if predicate(text):
            score += bonus
            break

    href = (href or "").lower()
    if any(fragment in href for fragment in HELP_HREF_FRAGMENTS):
        score -= 100
    elif href.startswith("http") and "apply" not in href and "job" not in href and not in_form:
        score -= 40
    return score


class ActionRanker:
    def __init__(self, llm: Any = None, llm_enabled: bool = True) -> None:
        self.llm = llm
        self.llm_enabled = llm_enabled
        self.llm_available = False

    @property
    def model_ready(self) -> bool:
        return self.llm is not None and self.llm_enabled and self.llm_available

    def collect(self, page: Any, exclude: Iterable[str] = ()) -> list[ActionCandidate]:
        excluded = set(exclude)
        seen: set[str] = set()
        candidates: list[ActionCandidate] = []
        for surface in iter_surfaces(page):
            for selector in ACTION_SELECTORS:
                try:
                    group = surface.locator(selector)
                except Exception:
                    continue
                for i in range(safe_count(group)):
                    candidate = self._inspect(group.nth(i), excluded, seen)
                    if candidate is not None:
                        candidates.append(candidate)
        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates[:TOP_CANDIDATES]

    def _inspect(self, locator: Any, excluded: set[str], seen: set[str]) -> ActionCandidate | None:
        if not safe_visible(locator, timeout=300):
            return None
        try:
            if locator.is_disabled(timeout=300):
                return None
            meta = locator.evaluate(JS_CONTROL_META) or {}
        except Exception:
            return None
        label = combined_label(meta)
        signature = normalize_signature(label)
        if not signature or signature in excluded or signature in seen:
            return None
        score = score_action(
            label,
            tag=meta.get("tag") or "",
            control_type=meta.get("type") or "",
            href=meta.get("href") or "",
            in_form=bool(meta.get("inForm")),
        )
        if score is None or score <= 0:
            return None
        seen.add(signature)
        return ActionCandidate(locator=locator, label=label[:SIGNATURE_CHARS], score=score, signature=signature)

    def find_best_action(self, page: Any, exclude: Iterable[str] = ()) -> ActionCandidate | None:
        candidates = self.collect(page, exclude)
        if not candidates:
            return None
        log.info(
            "[External] Candidates: %s",
            ", ".join(f"{c.label!r}={c.score}" for c in candidates),
        )
        if self.model_ready:
            chosen = self._choose_with_model(page, candidates)
            if chosen is not None:
                return chosen
        return candidates[0]

    def _choose_with_model(self, page: Any, candidates: list[ActionCandidate]) -> ActionCandidate | None:
        listing = "\n".join(f"{i}. {c.label} (score {c.score})" for i, c in enumerate(candidates))
        snippet = normalize_space(body_text(page, timeout=1500))[:1500]
        user_prompt = f"PAGE TEXT:\n{snippet}\n\nCANDIDATE CONTROLS:\n{listing}\n\nWhich control should be clicked next?"
        try:
            response = self.llm.generate_json(_ACTION_SYSTEM_PROMPT, user_prompt)
        except Exception as exc:
            log.warning("[External][LLM] Action choice failed: %s", exc)
            return None
        if not response.success or not isinstance(response.data, dict):
            return None
        choice = response.data.get("choice")
        try:
            index = int(choice)
        except (TypeError, ValueError):
            return None
        if not 0 <= index < len(candidates):
            return None
        log.info(
            "[External][LLM] Picked %r (%s): %s",
            candidates[index].label,
            response.data.get("intent", "progress"),
            str(response.data.get("reason", ""))[:200],
        )
        return candidates[index]
