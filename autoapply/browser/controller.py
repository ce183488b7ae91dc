"""Walk the job-board result list card by card and dispatch each posting to an apply flow."""
from __future__ import annotations

from typing import Any

from autoapply.browser.easy_apply import EasyApplyDriver
from autoapply.browser.external import ExternalApplyDriver, ExternalStatus
from autoapply.browser.surfaces import (
    first_visible,
    locator_text,
    normalize_space,
    page_url,
    pause,
    safe_count,
    script_click,
)
from autoapply.log import get_logger
from autoapply.models import ApplicationOutcome, CardResult, JobContext, SessionCounters

log = get_logger(__name__)

JOB_CARD_SELECTORS = [
    "a.job-card-list__title",
    "a.job-card-container__link",
    "li.jobs-search-results__list-item",
    "li.scaffold-layout__list-item",
    "li[data-occludable-job-id]",
]
APPLY_BUTTON_SELECTOR = (
    "button.jobs-apply-button, a.jobs-apply-button, div.jobs-apply-button--top-card button, "
    "button[aria-label*='Apply'], a[aria-label*='Apply'], "
    "button:has-text('Apply'), a:has-text('Apply')"
)
TITLE_SELECTOR = "h1, .job-details-jobs-unified-top-card__job-title, .t-24"
COMPANY_SELECTOR = (
    ".job-details-jobs-unified-top-card__company-name a, "
    ".jobs-unified-top-card__company-name a, .t-14.t-black--light"
)
LOCATION_SELECTOR = (
    ".job-details-jobs-unified-top-card__primary-description-container, "
    ".jobs-unified-top-card__bullet"
)
DESCRIPTION_SELECTOR = ".jobs-description__content, .jobs-box__html-content, .jobs-description-content__text"

DESCRIPTION_CHARS = 3000
OUTCOME_BY_EXTERNAL = {
    ExternalStatus.SUBMITTED: ApplicationOutcome.APPLIED,
    ExternalStatus.FAILED: ApplicationOutcome.FAILED,
    ExternalStatus.SKIPPED: ApplicationOutcome.SKIPPED,
}


def is_easy_apply_label(label: str) -> bool:
    return "easy apply" in label.lower()


def is_external_apply_label(label: str) -> bool:
    lowered = label.lower()
    if "easy apply" in lowered:
        return False
    return any(k in lowered for k in ("company website", "external", "apply"))


class JobCardController:
    def __init__(
        self,
        session: Any,
        easy_apply: EasyApplyDriver | None = None,
        external: ExternalApplyDriver | None = None,
        tracker: Any = None,
    ) -> None:
        self.session = session
        self.easy_apply = easy_apply or EasyApplyDriver(session)
        self.external = external or ExternalApplyDriver(session)
        self.tracker = tracker

    # -- card list -------------------------------------------------------

    def job_cards(self, page: Any) -> Any | None:
        for selector in JOB_CARD_SELECTORS:
            cards = page.locator(selector)
            if safe_count(cards):
                return cards
        return None

    def open_card(self, card: Any, page: Any) -> bool:
        try:
            card.scroll_into_view_if_needed(timeout=3000)
            card.click(timeout=7000)
        except Exception as exc:
            log.warning("Could not open job card: %s", str(exc)[:120])
            return False
        pause(page, 1800)
        return True

    def _text(self, page: Any, selector: str, limit: int = 200) -> str:
        node = first_visible(page.locator(selector), timeout=800)
        if node is None:
            return ""
        try:
            return normalize_space(node.inner_text(timeout=1500))[:limit]
        except Exception:
            return ""

    def capture_job_context(self, page: Any, fallback_title: str = "") -> JobContext:
        """Read the detail pane; the card label stands in when no title is shown."""
        return JobContext(
            title=self._text(page, TITLE_SELECTOR) or normalize_space(fallback_title)[:200],
            company=self._text(page, COMPANY_SELECTOR),
            location=self._text(page, LOCATION_SELECTOR),
            description=self._text(page, DESCRIPTION_SELECTOR, DESCRIPTION_CHARS),
        )

    # -- apply actions ---------------------------------------------------

    def find_apply_actions(self, page: Any) -> tuple[Any | None, Any | None]:
        """(easy apply control, external apply control) on the open posting."""
        easy = external = None
        buttons = page.locator(APPLY_BUTTON_SELECTOR)
        for i in range(safe_count(buttons)):
            button = buttons.nth(i)
            try:
                if not button.is_visible(timeout=500):
                    continue
            except Exception:
                continue
            label = locator_text(button)
            if easy is None and is_easy_apply_label(label):
                easy = button
            elif external is None and is_external_apply_label(label):
                external = button
        return easy, external

    def open_easy_apply(self, button: Any, page: Any) -> bool:
        """Plain, forced and script-level clicks until the modal shows."""
        strategies = (
            lambda: button.click(timeout=5000),
            lambda: button.click(timeout=5000, force=True),
            lambda: script_click(button),
        )
        for attempt, strategy in enumerate(strategies, start=1):
            try:
                strategy()
            except Exception as exc:
                log.debug("Easy Apply click attempt %d failed: %s", attempt, exc)
            pause(page, 900)
            if self.easy_apply.wait_for_modal(page, timeout=2000 if attempt < 3 else 6000):
                return True
        return False

    # -- per card --------------------------------------------------------

    def process_card(self, card: Any) -> CardResult:
        session = self.session
        page = session.require_page()
        label = locator_text(card)
        if not self.open_card(card, page):
            return CardResult(ApplicationOutcome.SKIPPED, "card could not be opened")

        job = self.capture_job_context(page, label)
        url = page_url(page)
        session.start_job(job)
        if session.is_duplicate(job):
            return CardResult(ApplicationOutcome.SKIPPED, "duplicate card", job, url)
        if self.tracker is not None and url and self.tracker.has_applied_before(url):
            return CardResult(ApplicationOutcome.SKIPPED, "already attempted", job, url)

        log.info("Job: %s @ %s (%s)", job.title or "?", job.company or "?", job.location or "?")
        easy, external = self.find_apply_actions(page)

        if easy is not None:
            if self.open_easy_apply(easy, page):
                outcome = self.easy_apply.run()
                self.easy_apply.dismiss(session.page)
                return CardResult(outcome, "easy apply", job, url)
            log.warning("Easy Apply modal never opened")
            if external is None:
                return CardResult(ApplicationOutcome.SKIPPED, "easy apply modal did not open", job, url)

        if external is not None:
            status = self.external.handle(external)
            return CardResult(OUTCOME_BY_EXTERNAL[status], f"external {status.value}", job, url)

        log.info("No apply control on this posting")
        return CardResult(ApplicationOutcome.SKIPPED, "no apply control", job, url)

    def apply_to_jobs(self, max_applications: int) -> SessionCounters:
        counters = SessionCounters()
        self.session.start_search()
        page = self.session.ensure_active_board_page()
        cards = self.job_cards(page)
        available = safe_count(cards) if cards is not None else 0
        attempts = min(available, max(max_applications * 4, max_applications))
        log.info("Found %d job cards; will try up to %d", available, attempts)

        for index in range(attempts):
            if counters.applied >= max_applications:
                break
            page = self.session.ensure_active_board_page()
            cards = self.job_cards(page)
            if cards is None or index >= safe_count(cards):
                log.info("Card %d no longer present; stopping", index + 1)
                break

            log.info("Card %d/%d", index + 1, attempts)
            try:
                result = self.process_card(cards.nth(index))
            except Exception as exc:
                log.error("Card %d failed: %s", index + 1, str(exc)[:200])
                result = CardResult(ApplicationOutcome.FAILED, f"error: {str(exc)[:160]}", self.session.job)
                try:
                    self.easy_apply.dismiss(self.session.page)
                except Exception:
                    pass

            counters.add(result)
            self._record(result)
            log.info("Card %d -> %s (%s)", index + 1, result.outcome.value, result.reason)

        log.info(
            "Session done: applied=%d failed=%d manual_help=%d skipped=%d",
            counters.applied, counters.failed, counters.manual_help, counters.skipped,
        )
        return counters

    def _record(self, result: CardResult) -> None:
        if self.tracker is None or not result.url or result.reason in ("duplicate card", "already attempted"):
            return
        job = result.job or JobContext()
        try:
            self.tracker.record_application(
                company_name=job.company,
                job_title=job.title,
                job_url=result.url,
                status=result.outcome.value,
                notes=result.reason,
            )
        except Exception as exc:
            log.warning("Could not record outcome: %s", exc)
