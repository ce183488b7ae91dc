"""
Execute one application for a posting URL.

Without a browser the executor runs a dry fill: it resolves answers for the
common application questions and reports what it would type. With a browser
it opens the posting, fills every surface and, only when auto-submit is
enabled and the safety gate passes, drives the external flow to submission.
"""
from __future__ import annotations

from typing import Any

from autoapply.browser.fields import FieldAnswerResolver, contact_value
from autoapply.browser.surfaces import iter_surfaces, wait_for_dom
from autoapply.config import Settings
from autoapply.log import get_logger
from autoapply.models import ExecutionResult, Job, JobContext
from autoapply.safety import BrowserAction, FormFieldSpec, evaluate_action, validate_before_submit

log = get_logger(__name__)

COMMON_FIELDS: list[tuple[str, str]] = [
    ("full name", "text"),
    ("email", "email"),
    ("phone", "tel"),
    ("current location", "text"),
    ("linkedin profile", "url"),
    ("portfolio website", "url"),
    ("years of experience", "number"),
    ("expected salary", "text"),
    ("notice period", "text"),
    ("do you require visa sponsorship", "text"),
    ("are you willing to relocate", "text"),
]

JS_FORM_FIELDS = """() => Array.from(document.querySelectorAll(
  "form input:not([type='hidden']):not([type='submit']):not([type='button']), form textarea, form select"
)).map((el) => ({
  name: el.getAttribute('name') || el.id || '',
  label: (el.getAttribute('aria-label') || el.getAttribute('placeholder') || '').trim(),
  required: !!el.required,
}))"""


class ExecutorAgent:
    def __init__(self, settings: Settings, llm: Any = None, session: Any = None) -> None:
        self.settings = settings
        self.llm = llm
        self.session = session

    def dry_fill(self, job: Job) -> dict[str, str]:
        resolver = FieldAnswerResolver(self.settings.candidate, self.settings.hints, llm=self.llm)
        resolver.llm_available = self.llm is not None
        resolver.start_job(JobContext(job.title, job.company, job.location, job.description))
        filled: dict[str, str] = {}
        for context, kind in COMMON_FIELDS:
            value = contact_value(context, self.settings.candidate) or resolver.resolve(context, kind)
            if value:
                filled[context] = value
        return filled

    def execute_application(self, url: str, job: Job) -> ExecutionResult:
        log.info("Executing application for: %s", job.title)
        if self.session is None:
            filled = self.dry_fill(job)
            rate = round(len(filled) / len(COMMON_FIELDS) * 100)
            log.info("Dry run filled %d/%d common fields (%d%%)", len(filled), len(COMMON_FIELDS), rate)
            return ExecutionResult(
                success=True,
                message=f"Dry run. Filled {len(filled)} fields. Fill rate: {rate}%",
                filled_fields=filled,
            )
        return self._execute_in_browser(url, job)

    def _execute_in_browser(self, url: str, job: Job) -> ExecutionResult:
        session = self.session
        errors: list[str] = []
        filled: dict[str, str] = {}
        try:
            page = session.require_page()
            session.start_job(JobContext(job.title, job.company, job.location, job.description))
            page.goto(url, wait_until="domcontentloaded", timeout=self.settings.browser.timeout)
            wait_for_dom(page)

            fields: list[FormFieldSpec] = []
            for surface in iter_surfaces(page):
                try:
                    fields.extend(FormFieldSpec(**f) for f in surface.evaluate(JS_FORM_FIELDS) or [])
                except Exception:
                    continue
            if not fields:
                raise RuntimeError("No application forms found on page")

            filled = session.filler.fill_external_page(page)
            rate = round(min(len(filled), len(fields)) / len(fields) * 100)
            log.info("Form fill rate: %d%%", rate)

            check = validate_before_submit(fields, filled)
            if self.settings.agent.enable_auto_submit and rate > 50 and check.can_submit:
                action = BrowserAction(type="click", description="submit application")
                risk = evaluate_action(action)
                log.warning("Auto-submit is ENABLED (%s risk: %s)", risk.risk_level, risk.reason)
                from autoapply.browser.external import ExternalApplyDriver

                status = ExternalApplyDriver(session).complete_external_application(page)
                log.info("Auto-submit finished: %s", status.value)
            else:
                log.info("Auto-submit is DISABLED or the form is incomplete; leaving it for review")
                if check.missing_fields:
                    errors.append("Missing required fields: " + ", ".join(check.missing_fields[:10]))

            return ExecutionResult(
                success=not errors,
                message=f"Application processed. Filled {len(filled)} fields. Fill rate: {rate}%",
                filled_fields=filled,
                errors=errors,
            )
        except Exception as exc:
            log.error("Application execution failed: %s", str(exc)[:200])
            errors.append(str(exc)[:300])
            return ExecutionResult(
                success=False,
                message=f"Application failed: {str(exc)[:200]}",
                filled_fields=filled,
                errors=errors,
            )
