"""
External application driver: the apply button leaves the job board for a
company site or ATS (new tab, popup, or same-tab navigation).
"""
from __future__ import annotations

import time
from enum import Enum
from typing import Any, Callable

from autoapply.browser.surfaces import (
    body_text,
    bring_to_front,
    click_primary_action,
    is_closed,
    iter_surfaces,
    normalize_space,
    page_fingerprint,
    page_url,
    pause,
    wait_for_dom,
)
from autoapply.log import get_logger

log = get_logger(__name__)

MAX_STEPS = 14
NO_PROGRESS_LIMIT = 3
POPUP_TIMEOUT_S = 9.0
NAVIGATION_TIMEOUT_S = 7.0
POLL_MS = 250

LOGIN_URL_TOKENS = ("login", "sign-in", "signin", "auth")
SIGN_IN_CUES = ("sign in", "log in", "create account", "forgot password")
CREDENTIAL_CUES = ("password", "continue with google", "continue with linkedin")
VERIFICATION_CUES = ("captcha", "verify you are human", "security check", "cloudflare", "unusual traffic")
SUBMITTED_TEXTS = (
    "application submitted",
    "thank you for applying",
    "your application has been received",
    "application received",
    "submission complete",
    "thanks for your interest",
    "we received your application",
)
SUBMITTED_URL_FRAGMENTS = (
    "thank-you", "thankyou", "application-confirmation", "/submitted/",
    "application-submitted", "submission-complete",
)


class ExternalStatus(str, Enum):
    SUBMITTED = "submitted"
    FAILED = "failed"
    SKIPPED = "skipped"


def looks_like_login_wall(url: str, text: str) -> bool:
    url = (url or "").lower()
    text = (text or "").lower()
    if not any(token in url for token in LOGIN_URL_TOKENS):
        return False
    return any(c in text for c in SIGN_IN_CUES) and any(c in text for c in CREDENTIAL_CUES)


def looks_like_verification_gate(text: str) -> bool:
    text = (text or "").lower()
    return any(c in text for c in VERIFICATION_CUES)


def looks_submitted(url: str, text: str) -> bool:
    url = (url or "").lower()
    if any(fragment in url for fragment in SUBMITTED_URL_FRAGMENTS):
        return True
    text = normalize_space(text).lower()
    return any(t in text for t in SUBMITTED_TEXTS)


class ExternalApplyDriver:
    def __init__(
        self,
        session: Any,
        max_steps: int = MAX_STEPS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.session = session
        self.max_steps = max_steps
        self.clock = clock

    def _is_external(self, page: Any) -> bool:
        return not is_closed(page) and not self.session.is_board_url(page_url(page))

    def external_pages(self) -> list[Any]:
        context = self.session.context
        if context is None:
            return []
        return [p for p in context.pages if self._is_external(p)]

    # -- page resolution -------------------------------------------------

    def resolve_external_page(self, trigger: Any) -> Any | None:
        """Click *trigger* and return whichever page the application landed on."""
        page = self.session.require_page()
        context = self.session.context
        before = list(context.pages)
        opened: list[Any] = []
        on_page = opened.append
        context.on("page", on_page)
        try:
            if not click_primary_action(trigger, page):
                log.warning("[External] Apply trigger could not be clicked")
                return None
            start = self.clock()
            while self.clock() - start < POPUP_TIMEOUT_S:
                if opened:
                    return self._adopt(opened[0])
                if self.clock() - start < NAVIGATION_TIMEOUT_S and self._is_external(page):
                    log.info("[External] Same-tab navigation to %s", page_url(page)[:120])
                    return page
                pause(page, POLL_MS)
        finally:
            try:
                context.remove_listener("page", on_page)
            except Exception:
                pass

        pause(page, 1800)
        fresh = [p for p in context.pages if p not in before and self._is_external(p)]
        if fresh:
            return self._adopt(fresh[-1])
        if self._is_external(page):
            return page
        log.info("[External] No external page opened")
        return None

    def _adopt(self, page: Any) -> Any:
        wait_for_dom(page, timeout=15_000)
        bring_to_front(page)
        log.info("[External] Adopted page %s", page_url(page)[:120])
        return page

    def adopt_newest_page(self, current: Any) -> Any:
        pages = self.external_pages()
        if not pages:
            return current
        newest = pages[-1]
        if newest is not current:
            log.info("[External] Switching to newer page %s", page_url(newest)[:120])
            bring_to_front(newest)
        return newest

    # -- checks ----------------------------------------------------------

    def is_login_required(self, page: Any) -> bool:
        return looks_like_login_wall(page_url(page), body_text(page))

    def is_verification_gate(self, page: Any) -> bool:
        return looks_like_verification_gate(body_text(page))

    def is_submitted(self, page: Any) -> bool:
        if is_closed(page):
            return True
        url = page_url(page)
        return any(looks_submitted(url, body_text(surface)) for surface in iter_surfaces(page))

    # -- main loop -------------------------------------------------------

    def complete_external_application(self, page: Any) -> ExternalStatus:
        filler = self.session.filler
        ranker = self.session.ranker
        tried: dict[str, set[str]] = {}
        clicked_any = False
        no_progress = 0

        for step in range(1, self.max_steps + 1):
            page = self.adopt_newest_page(page)
            if is_closed(page):
                log.info("[External] Page closed during flow; treating as submitted")
                return ExternalStatus.SUBMITTED
            log.info("[External] Step %d/%d - URL: %s", step, self.max_steps, page_url(page)[:160])

            if self.is_login_required(page):
                log.info("[External] Login wall; skipping")
                return ExternalStatus.SKIPPED
            if self.is_verification_gate(page):
                log.info("[External] Verification gate; skipping")
                return ExternalStatus.SKIPPED

            try:
                filler.fill_external_page(page)
            except Exception as exc:
                log.warning("[External] Fill failed: %s", str(exc)[:160])

            if self.is_submitted(page):
                log.info("[External] Submission confirmed")
                return ExternalStatus.SUBMITTED

            before = page_fingerprint(page)
            excluded = tried.setdefault(before, set())
            try:
                action = ranker.find_best_action(page, excluded)
            except Exception as exc:
                log.warning("[External] Action search failed: %s", str(exc)[:160])
                action = None

            if action is None:
                pause(page, 1500)
                if self.is_submitted(page):
                    return ExternalStatus.SUBMITTED
                log.info("[External] No actionable control found")
                break

            log.info("[External] Clicking %r (score %d)", action.label, action.score)
            if not click_primary_action(action.locator, page):
                excluded.add(action.signature)
                log.info("[External] Click on %r failed", action.label)
                break
            clicked_any = True
            pause(page, 1300)

            page = self.adopt_newest_page(page)
            if is_closed(page):
                log.info("[External] Page closed after click; treating as submitted")
                return ExternalStatus.SUBMITTED
            after = page_fingerprint(page)
            if after == before:
                excluded.add(action.signature)
                no_progress += 1
                log.info("[External] No progress after %r (%d/%d)", action.label, no_progress, NO_PROGRESS_LIMIT)
                if no_progress >= NO_PROGRESS_LIMIT:
                    break
            else:
                no_progress = 0

        if self.is_submitted(page):
            return ExternalStatus.SUBMITTED
        return ExternalStatus.FAILED if clicked_any else ExternalStatus.SKIPPED

    # -- cleanup ---------------------------------------------------------

    def restore(self, original: Any) -> None:
        """Close external tabs and put the driving page back on the job board."""
        session = self.session
        for extra in self.external_pages():
            if extra is original:
                continue
            try:
                extra.close()
            except Exception:
                pass

        if original is None or is_closed(original):
            reusable = session.board_pages()
            if reusable:
                session.page = reusable[0]
            elif session.context is not None:
                session.page = session.context.new_page()
                self._goto_search(session.page)
        else:
            session.page = original
            if not session.is_board_url(page_url(original)):
                self._goto_search(original)
        if session.page is not None:
            bring_to_front(session.page)

    def _goto_search(self, page: Any) -> None:
        try:
            page.goto(self.session.last_search_url, wait_until="domcontentloaded", timeout=30_000)
        except Exception as exc:
            log.warning("[External] Could not return to search results: %s", str(exc)[:160])

    def handle(self, trigger: Any) -> ExternalStatus:
        original = self.session.require_page()
        try:
            target = self.resolve_external_page(trigger)
            if target is None:
                return ExternalStatus.SKIPPED
            return self.complete_external_application(target)
        except Exception as exc:
            log.error("[External] Flow error: %s", str(exc)[:200])
            return ExternalStatus.FAILED
        finally:
            self.restore(original)
