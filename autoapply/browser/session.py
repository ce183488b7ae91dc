"""
Browser session: one persistent Chromium profile, the page currently being driven,
and the per-job state shared by the Easy Apply and external flows.
"""
from __future__ import annotations

import time
from typing import Any, Callable
from urllib.parse import urlencode

from autoapply.browser.actions import ActionRanker
from autoapply.browser.fields import FieldAnswerResolver
from autoapply.browser.forms import FormFiller
from autoapply.browser.surfaces import (
    body_text,
    bring_to_front,
    is_closed,
    page_url,
    pause,
    wait_for_dom,
)
from autoapply.config import Settings
from autoapply.log import get_logger
from autoapply.models import JobContext

log = get_logger(__name__)

CHROME_ARGS = [
    "--profile-directory=Default",
    "--no-first-run",
    "--no-default-browser-check",
    "--start-maximized",
]

SIGN_IN_MARKERS = ("/login", "/checkpoint", "/authwall", "/uas/")
LOGIN_POLL_SECONDS = 3
LOGIN_WAIT_SECONDS = 600


class BrowserNotReadyError(RuntimeError):
    """A browser operation was attempted before ``initialize()``."""


class BrowserSession:
    def __init__(
        self,
        settings: Settings,
        llm: Any = None,
        prompt: Callable[[str], str] = input,
    ) -> None:
        self.settings = settings
        self.candidate = settings.candidate
        self.hints = settings.hints
        self.board_domain = settings.browser.board_domain
        self.llm = llm
        self.prompt = prompt
        self.resolver = FieldAnswerResolver(
            self.candidate, self.hints, llm=llm, llm_enabled=settings.llm.browser_thinking,
        )
        self.ranker = ActionRanker(llm=llm, llm_enabled=settings.llm.browser_thinking)
        self.filler = FormFiller(self.candidate, self.hints, self.resolver)
        self.job = JobContext()
        self.last_search_url = settings.browser.board_home_url
        self.processed_job_keys: set[str] = set()
        self._playwright: Any = None
        self.context: Any = None
        self.page: Any = None

    # -- lifecycle -------------------------------------------------------

    def initialize(self) -> None:
        from playwright.sync_api import sync_playwright

        cfg = self.settings.browser
        self.check_model()
        self._playwright = sync_playwright().start()
        options: dict[str, Any] = {
            "headless": cfg.headless,
            "slow_mo": cfg.slow_mo,
            "args": CHROME_ARGS,
            "no_viewport": True,
        }
        if cfg.executable_path:
            options["executable_path"] = cfg.executable_path
        log.info("Launching persistent browser profile at %s", cfg.user_data_dir)
        self.context = self._playwright.chromium.launch_persistent_context(cfg.user_data_dir, **options)
        self.context.set_default_timeout(cfg.timeout)
        self.page = self.context.pages[0] if self.context.pages else self.context.new_page()

    def attach(self, context: Any, page: Any) -> None:
        """Drive an already-open context (used by tests and embedding callers)."""
        self.context = context
        self.page = page

    def check_model(self) -> bool:
        available = False
        if self.llm is not None and self.settings.llm.browser_thinking:
            try:
                available = bool(self.llm.health_check())
            except Exception as exc:
                log.warning("Model health check failed: %s", exc)
        self.resolver.llm_available = available
        self.ranker.llm_available = available
        log.info("Browser model assistance: %s", "on" if available else "off (heuristics only)")
        return available

    def require_page(self) -> Any:
        if self.context is None or self.page is None:
            raise BrowserNotReadyError("Browser not initialized; call initialize() first")
        return self.page

    def close(self) -> None:
        if self.context is not None:
            try:
                self.context.close()
            except Exception as exc:
                log.debug("Context close failed: %s", exc)
            self.context = None
            self.page = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
        log.info("Browser closed")

    def keep_open(self) -> None:
        log.info("Browser left open for manual work. Press Ctrl+C to exit.")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            log.info("Stopping manual mode")

    # -- job board -------------------------------------------------------

    def is_board_url(self, url: str) -> bool:
        return self.board_domain in (url or "").lower()

    def build_search_url(self, title: str, location: str) -> str:
        query = urlencode({"keywords": title, "location": location, "f_AL": "true"})
        return f"https://www.{self.board_domain}/jobs/search/?{query}"

    def needs_sign_in(self, page: Any | None = None) -> bool:
        page = page or self.require_page()
        url = page_url(page).lower()
        if any(marker in url for marker in SIGN_IN_MARKERS):
            return True
        text = body_text(page, timeout=1500).lower()
        return "sign in" in text and "join now" in text and "/jobs/search" not in url

    def wait_for_login(self, timeout_seconds: int = LOGIN_WAIT_SECONDS) -> bool:
        page = self.require_page()
        log.info("Sign-in required. Log in to the job board in the browser window (waiting up to %d min)",
                 timeout_seconds // 60)
        deadline = time.monotonic() + timeout_seconds
        while time.monotonic() < deadline:
            if not self.needs_sign_in(page):
                log.info("Sign-in detected")
                return True
            pause(page, LOGIN_POLL_SECONDS * 1000)
        log.error("Timed out waiting for sign-in")
        return False

    def search_jobs(self, title: str, location: str) -> bool:
        page = self.require_page()
        url = self.build_search_url(title, location)
        self.last_search_url = url
        log.info("Searching jobs: %s in %s", title, location)
        try:
            page.goto(url, wait_until="domcontentloaded", timeout=self.settings.browser.timeout)
        except Exception as exc:
            log.error("Search navigation failed: %s", str(exc)[:160])
            return False
        pause(page, 2500)
        if self.needs_sign_in(page):
            if not self.wait_for_login():
                return False
            try:
                page.goto(url, wait_until="domcontentloaded", timeout=self.settings.browser.timeout)
            except Exception as exc:
                log.error("Search navigation failed after sign-in: %s", str(exc)[:160])
                return False
            pause(page, 2500)
        return True

    def board_pages(self) -> list[Any]:
        if self.context is None:
            return []
        return [p for p in self.context.pages if not is_closed(p) and self.is_board_url(page_url(p))]

    def ensure_active_board_page(self) -> Any:
        """Re-point the driving page at the job board; reopen a tab if it was closed."""
        if self.context is None:
            raise BrowserNotReadyError("Browser not initialized; call initialize() first")
        page = self.page
        if page is None or is_closed(page):
            reusable = self.board_pages()
            page = reusable[0] if reusable else self.context.new_page()
            self.page = page
        if not self.is_board_url(page_url(page)):
            log.info("Driving page drifted to %s; returning to search", page_url(page)[:120])
            try:
                page.goto(self.last_search_url, wait_until="domcontentloaded", timeout=self.settings.browser.timeout)
            except Exception as exc:
                log.warning("Could not return to search results: %s", str(exc)[:160])
            wait_for_dom(page)
        bring_to_front(page)
        return page

    # -- per-job state ---------------------------------------------------

    def start_search(self) -> None:
        """Forget the postings seen during an earlier application session."""
        self.processed_job_keys.clear()

    def start_job(self, job: JobContext) -> None:
        self.job = job
        self.resolver.start_job(job)

    def is_duplicate(self, job: JobContext) -> bool:
        key = job.identity_key()
        if key in self.processed_job_keys:
            return True
        self.processed_job_keys.add(key)
        return False

    # -- human channel ---------------------------------------------------

    def wait_for_user(self, message: str) -> None:
        """Block until a human confirms in the console; there is no timeout."""
        log.warning("%s", message)
        try:
            self.prompt(f"{message}\n> ")
        except EOFError:
            log.warning("No console attached; continuing without manual confirmation")
