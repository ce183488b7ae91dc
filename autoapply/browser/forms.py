"""Fill application forms: Easy Apply modal steps and third-party pages (plus their frames)."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from autoapply.browser.fields import (
    FieldAnswerResolver,
    FieldIntent,
    choose_select_option,
    classify_intent,
    contact_value,
    first_real_option,
    normalize_context,
    preferred_boolean_answer,
)
from autoapply.browser.surfaces import iter_surfaces, safe_count, safe_visible
from autoapply.config import AnswerHints, CandidateProfile
from autoapply.log import get_logger

log = get_logger(__name__)

TEXT_INPUT_SELECTOR = (
    "input:not([type='hidden']):not([type='checkbox']):not([type='radio'])"
    ":not([type='file']):not([type='submit']):not([type='button']), textarea"
)
CHECKBOX_SELECTOR = "input[type='checkbox']"
SELECT_SELECTOR = "select"
FILE_INPUT_SELECTOR = "input[type='file']"
BOOLEAN_GROUP_SELECTOR = "fieldset, [role='group'], [role='radiogroup']"
FOLLOW_COMPANY_SELECTOR = "label:has-text('Follow') input[type='checkbox'], input#follow-company-checkbox"

FILLABLE_TYPES = ("", "text", "number", "search", "url", "tel", "email")
CONSENT_KEYWORDS = ("terms", "privacy", "consent", "agree", "policy")

JS_FIELD_META = """(el) => {
  const clean = (s) => (s || '').replace(/\\s+/g, ' ').trim();
  const parts = [el.getAttribute('aria-label'), el.getAttribute('placeholder')];
  if (el.id) {
    const forLabel = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
    if (forLabel) parts.push(forLabel.innerText);
  }
  const wrap = el.closest('label');
  if (wrap) parts.push(wrap.innerText);
  if (el.parentElement) parts.push((el.parentElement.innerText || '').slice(0, 160));
  const legend = el.closest('fieldset') && el.closest('fieldset').querySelector('legend');
  if (legend) parts.push(legend.innerText);
  return {
    tag: el.tagName.toLowerCase(),
    type: (el.getAttribute('type') || (el.tagName.toLowerCase() === 'textarea' ? 'textarea' : 'text')).toLowerCase(),
    name: el.getAttribute('name') || '',
    id: el.id || '',
    label: clean(parts.filter(Boolean).join(' ')).slice(0, 260),
    required: el.required || el.getAttribute('aria-required') === 'true',
    value: el.value || '',
    checked: !!el.checked,
    disabled: !!el.disabled || el.readOnly === true,
  };
}"""

JS_SELECT_OPTIONS = "(el) => Array.from(el.options).map((o) => ({ value: o.value, text: o.text }))"

JS_RADIO_LABEL = """(el) => {
  const clean = (s) => (s || '').replace(/\\s+/g, ' ').trim();
  if (el.id) {
    const forLabel = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
    if (forLabel) return clean(forLabel.innerText);
  }
  const wrap = el.closest('label');
  return clean(wrap ? wrap.innerText : el.value);
}"""

JS_UNRESOLVED_REQUIRED = """(node) => {
  const root = node || document;
  const fields = Array.from(root.querySelectorAll(
    "input[required], textarea[required], select[required], [aria-required='true']"));
  return fields.some((el) => {
    if (el.disabled || el.offsetParent === null) return false;
    const type = (el.getAttribute('type') || '').toLowerCase();
    if (type === 'checkbox') return !el.checked;
    if (type === 'radio') {
      const group = el.name ? root.querySelectorAll(`input[type='radio'][name="${CSS.escape(el.name)}"]`) : [el];
      return !Array.from(group).some((r) => r.checked);
    }
    return !(el.value || '').trim();
  });
}"""


def field_context(meta: dict[str, Any]) -> str:
    return normalize_context(" ".join(
        str(meta.get(key) or "") for key in ("name", "id", "label")
    ))


def read_meta(locator: Any) -> dict[str, Any] | None:
    try:
        return locator.evaluate(JS_FIELD_META)
    except Exception:
        return None


def _each(root: Any, selector: str) -> list[Any]:
    try:
        group = root.locator(selector)
    except Exception:
        return []
    return [group.nth(i) for i in range(safe_count(group))]


class FormFiller:
    """Fills the empty, eligible fields of a surface; returns {field context: value} filled."""

    def __init__(self, candidate: CandidateProfile, hints: AnswerHints, resolver: FieldAnswerResolver) -> None:
        self.candidate = candidate
        self.hints = hints
        self.resolver = resolver

    def _fill(self, locator: Any, value: str, context: str, filled: dict[str, str]) -> None:
        try:
            locator.fill(value, timeout=3000)
            filled[context[:80] or "field"] = value
        except Exception as exc:
            log.debug("Could not fill %s: %s", context[:60], exc)

    def _modal_value(self, meta: dict[str, Any], context: str) -> str | None:
        value = contact_value(context, self.candidate)
        if value:
            return value
        intent = classify_intent(context, meta.get("type") or "text")
        if intent in (FieldIntent.LOCATION, FieldIntent.LINKEDIN, FieldIntent.PORTFOLIO):
            return self.resolver.resolve(context, meta.get("type") or "text")
        if meta.get("required") and (meta.get("type") or "") in FILLABLE_TYPES + ("textarea",):
            return self.resolver.resolve(context, meta.get("type") or "text")
        return None

    def _external_value(self, meta: dict[str, Any], context: str) -> str | None:
        value = contact_value(context, self.candidate)
        if value:
            return value
        kind = meta.get("type") or "text"
        intent = classify_intent(context, kind)
        if meta.get("required") or intent in (
            FieldIntent.LINKEDIN, FieldIntent.PORTFOLIO, FieldIntent.LOCATION, FieldIntent.EXPERIENCE,
        ):
            return self.resolver.resolve(context, kind)
        return None

    def fill_text_fields(self, root: Any, *, external: bool) -> dict[str, str]:
        filled: dict[str, str] = {}
        for field in _each(root, TEXT_INPUT_SELECTOR):
            if not safe_visible(field, timeout=200):
                continue
            meta = read_meta(field)
            if not meta or meta.get("disabled") or (meta.get("value") or "").strip():
                continue
            context = field_context(meta)
            if not context:
                continue
            value = self._external_value(meta, context) if external else self._modal_value(meta, context)
            if value:
                self._fill(field, value, context, filled)
        return filled

    def fill_selects(self, root: Any) -> dict[str, str]:
        filled: dict[str, str] = {}
        for select in _each(root, SELECT_SELECTOR):
            if not safe_visible(select, timeout=200):
                continue
            meta = read_meta(select)
            if not meta or meta.get("disabled"):
                continue
            current = (meta.get("value") or "").strip().lower()
            if current and not current.startswith("select"):
                continue
            try:
                options = select.evaluate(JS_SELECT_OPTIONS) or []
            except Exception:
                continue
            context = field_context(meta)
            value = choose_select_option(options, context, self.hints) or first_real_option(options)
            if not value:
                continue
            try:
                select.select_option(value, timeout=3000)
                filled[context[:80] or "select"] = value
            except Exception as exc:
                log.debug("Could not select %s in %s: %s", value, context[:60], exc)
        return filled

    def check_consent_boxes(self, root: Any) -> dict[str, str]:
        filled: dict[str, str] = {}
        for box in _each(root, CHECKBOX_SELECTOR):
            meta = read_meta(box)
            if not meta or meta.get("checked") or meta.get("disabled"):
                continue
            context = field_context(meta)
            if "follow" in context:
                continue
            if meta.get("required") or any(k in context for k in CONSENT_KEYWORDS):
                try:
                    box.check(timeout=3000)
                    filled[context[:80] or "checkbox"] = "checked"
                except Exception:
                    continue
        return filled

    def answer_required_boolean_questions(self, root: Any) -> int:
        """Give every radio group an answer; groups a human already answered are left alone."""
        answered = 0
        for group in _each(root, BOOLEAN_GROUP_SELECTOR):
            radios = _each(group, "input[type='radio']")
            if not radios:
                continue
            if any(self._is_checked(r) for r in radios):
                continue
            try:
                question = group.inner_text(timeout=1000) or ""
            except Exception:
                question = ""
            preferred = preferred_boolean_answer(question, self.hints)
            target = radios[0]
            for radio in radios:
                try:
                    label = normalize_context(radio.evaluate(JS_RADIO_LABEL))
                except Exception:
                    continue
                if re.search(rf"\b{preferred}\b", label):
                    target = radio
                    break
            if self._select_radio(target):
                answered += 1
        return answered

    @staticmethod
    def _is_checked(radio: Any) -> bool:
        try:
            return bool(radio.is_checked(timeout=500))
        except Exception:
            return False

    @staticmethod
    def _select_radio(radio: Any) -> bool:
        try:
            radio.check(timeout=3000)
            return True
        except Exception:
            pass
        try:
            radio.click(timeout=3000, force=True)
            return True
        except Exception:
            return False

    def attach_resume(self, root: Any) -> int:
        path = Path(self.hints.resume_path or self.candidate.resume_path)
        if not path.is_file():
            return 0
        attached = 0
        for file_input in _each(root, FILE_INPUT_SELECTOR):
            try:
                if file_input.is_disabled(timeout=500) or file_input.input_value(timeout=500):
                    continue
                file_input.set_input_files(str(path), timeout=5000)
                attached += 1
            except Exception as exc:
                log.debug("Resume upload skipped: %s", exc)
        if attached:
            log.info("Attached resume %s to %d file input(s)", path.name, attached)
        return attached

    def uncheck_follow_company(self, root: Any) -> None:
        for box in _each(root, FOLLOW_COMPANY_SELECTOR):
            try:
                if box.is_checked(timeout=500):
                    box.uncheck(timeout=2000)
            except Exception:
                continue

    def fill_modal_step(self, root: Any) -> dict[str, str]:
        filled = self.fill_text_fields(root, external=False)
        filled.update(self.fill_selects(root))
        self.answer_required_boolean_questions(root)
        self.attach_resume(root)
        return filled

    def fill_external_page(self, page: Any) -> dict[str, str]:
        """Fill every surface of *page*; one broken frame never stops the rest."""
        filled: dict[str, str] = {}
        for surface in iter_surfaces(page):
            try:
                filled.update(self.fill_text_fields(surface, external=True))
                filled.update(self.fill_selects(surface))
                filled.update(self.check_consent_boxes(surface))
                self.attach_resume(surface)
            except Exception as exc:
                log.warning("[External] Form fill error on a frame: %s", str(exc)[:160])
        if filled:
            log.info("[External] Filled %d field(s)", len(filled))
        return filled

    def has_unresolved_required_fields(self, root: Any) -> bool:
        try:
            return bool(root.evaluate(JS_UNRESOLVED_REQUIRED))
        except Exception:
            return False
