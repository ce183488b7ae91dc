"""
Easy Apply modal driver.

    WAITING_FOR_MODAL -> FILLING_STEP -> NEXT_STEP | AWAITING_MANUAL_HELP -> SUBMITTED | FAILED

Submission takes priority over filling: a wizard may show "Submit" next to
optional fields that are fine to leave empty.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from autoapply.browser.surfaces import (
    click_primary_action,
    first_visible,
    pause,
    safe_visible,
)
from autoapply.log import get_logger
from autoapply.models import ApplicationOutcome

log = get_logger(__name__)

MODAL_SELECTOR = ".jobs-easy-apply-modal, div[role='dialog']"
SUBMIT_SELECTOR = (
    "button[aria-label*='Submit application'], "
    "button:has-text('Submit application'), "
    "button:has-text('Submit')"
)
NEXT_SELECTOR = (
    "button[aria-label*='Continue to next step'], "
    "button[aria-label*='Review your application'], "
    "button:has-text('Next'), "
    "button:has-text('Review'), "
    "button[aria-label*='Continue']"
)
SUCCESS_SELECTOR = (
    "text=Application submitted, "
    "text=Your application was sent, "
    "button:has-text('Done')"
)
VALIDATION_ERROR_SELECTOR = (
    ".artdeco-inline-feedback--error, "
    ".jobs-easy-apply-form-section__grouping .t-14.t-black--light"
)
DISMISS_SELECTOR = (
    "button[aria-label='Dismiss'], button[aria-label*='Close'], "
    "button:has-text('Close'), button:has-text('Done')"
)
DISCARD_SELECTOR = "button:has-text('Discard'), button[data-control-name='discard_application_confirm_btn']"

MAX_STEPS = 8
MODAL_TIMEOUT_MS = 6000


class ModalState(str, Enum):
    WAITING_FOR_MODAL = "waiting-for-modal"
    FILLING_STEP = "filling-step"
    NEXT_STEP = "next-step"
    AWAITING_MANUAL_HELP = "awaiting-manual-help"
    SUBMITTED = "submitted"
    FAILED = "failed"


class EasyApplyDriver:
    def __init__(self, session: Any, max_steps: int = MAX_STEPS) -> None:
        self.session = session
        self.max_steps = max_steps
        self.state = ModalState.WAITING_FOR_MODAL

    def _enter(self, state: ModalState) -> None:
        if state is not self.state:
            log.debug("[EasyApply] %s -> %s", self.state.value, state.value)
        self.state = state

    def modal(self, page: Any) -> Any:
        return page.locator(MODAL_SELECTOR).first

    def wait_for_modal(self, page: Any, timeout: int = MODAL_TIMEOUT_MS) -> bool:
        try:
            page.locator(MODAL_SELECTOR).first.wait_for(state="visible", timeout=timeout)
            return True
        except Exception:
            return False

    def modal_open(self, page: Any) -> bool:
        return safe_visible(self.modal(page), timeout=800)

    def is_submitted(self, page: Any) -> bool:
        return first_visible(page.locator(SUCCESS_SELECTOR), timeout=1800) is not None

    def has_validation_errors(self, page: Any) -> bool:
        return first_visible(self.modal(page).locator(VALIDATION_ERROR_SELECTOR), timeout=400) is not None

    def _finish(self, used_manual_help: bool) -> ApplicationOutcome:
        self._enter(ModalState.SUBMITTED)
        if used_manual_help:
            log.info("[EasyApply] Submitted with manual help")
            return ApplicationOutcome.MANUAL_HELP
        log.info("[EasyApply] Application submitted")
        return ApplicationOutcome.APPLIED

    def run(self) -> ApplicationOutcome:
        page = self.session.require_page()
        filler = self.session.filler
        self._enter(ModalState.WAITING_FOR_MODAL)
        if not self.wait_for_modal(page):
            log.warning("[EasyApply] Modal did not open")
            self._enter(ModalState.FAILED)
            return ApplicationOutcome.FAILED

        used_manual_help = False
        for step in range(1, self.max_steps + 1):
            modal = self.modal(page)
            log.info("[EasyApply] Step %d/%d", step, self.max_steps)

            submit = first_visible(modal.locator(SUBMIT_SELECTOR))
            if submit is not None:
                filler.uncheck_follow_company(modal)
                if click_primary_action(submit, page):
                    pause(page, 2200)
                    if self.is_submitted(page) or not self.modal_open(page):
                        return self._finish(used_manual_help)
                    log.info("[EasyApply] Submit click did not close the modal; re-checking the step")
                else:
                    log.info("[EasyApply] Submit click was not accepted")
                    pause(page, 900)

            self._enter(ModalState.FILLING_STEP)
            filler.fill_modal_step(modal)
            filler.uncheck_follow_company(modal)

            nxt = first_visible(modal.locator(NEXT_SELECTOR))
            if nxt is not None:
                self._enter(ModalState.NEXT_STEP)
                if click_primary_action(nxt, page):
                    pause(page, 1200)
                    continue

            if filler.has_unresolved_required_fields(modal):
                used_manual_help = True
                self._enter(ModalState.AWAITING_MANUAL_HELP)
                self.session.wait_for_user(
                    "Manual help needed. Complete required fields in the browser, then press Enter"
                )
                continue

            if self.has_validation_errors(page):
                used_manual_help = True
                self._enter(ModalState.AWAITING_MANUAL_HELP)
                self.session.wait_for_user(
                    "Validation requires manual response in Easy Apply. Complete in browser, then press Enter"
                )
                continue

            if submit is None:
                break

        self._enter(ModalState.FAILED)
        if used_manual_help:
            log.warning("[EasyApply] Not submitted after manual help")
            return ApplicationOutcome.MANUAL_HELP
        log.warning("[EasyApply] Step limit reached without submission")
        return ApplicationOutcome.FAILED

    def dismiss(self, page: Any | None = None) -> None:
        """Close a stray modal, confirming the discard prompt if one appears."""
        page = page or self.session.page
        if page is None or not self.modal_open(page):
            return
        button = first_visible(page.locator(DISMISS_SELECTOR), timeout=800)
        if button is None:
            return
        click_primary_action(button, page)
        pause(page, 700)
        discard = first_visible(page.locator(DISCARD_SELECTOR), timeout=1200)
        if discard is not None:
            click_primary_action(discard, page)
            pause(page, 700)
