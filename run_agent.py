#!/usr/bin/env python3
"""Entry point: run the agent over sample postings, board samples, or a live browser session."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from autoapply.config import ensure_dirs, load_settings
from autoapply.llm import get_llm_client
from autoapply.log import get_logger
from autoapply.models import SessionCounters
from autoapply.tracker import ApplicationTracker

log = get_logger(__name__)


def _print_config(settings) -> None:
    c = settings.candidate
    log.info("Candidate: %s <%s> | %s | %d yrs", c.name, c.email, c.current_location, c.years_experience)
    log.info("Search: %s in %s (max %d)", " | ".join(settings.search.terms), settings.search.location,
             settings.search.max_jobs_to_apply)
    log.info("Model: %s via %s (%s)", settings.llm.model, settings.llm.provider, settings.llm.base_url)
    log.info("Auto-submit: %s | DB: %s", settings.agent.enable_auto_submit, settings.memory.db_path)


def print_summary(counters: SessionCounters) -> None:
    log.info("=" * 60)
    log.info("  Applied:      %d", counters.applied)
    log.info("  Failed:       %d", counters.failed)
    log.info("  Manual help:  %d", counters.manual_help)
    log.info("  Skipped:      %d", counters.skipped)
    log.info("  Success rate: %.1f%%", counters.success_rate)
    log.info("=" * 60)


def run_pipeline(settings, mode: str, real: bool) -> int:
    from autoapply.executor import ExecutorAgent
    from autoapply.orchestrator import JobApplicationOrchestrator
    from autoapply.sources import get_source

    llm = get_llm_client(settings.llm)
    if not llm.health_check():
        log.warning("Model unavailable; relevance falls back to heuristic scoring")
        llm = None

    session = None
    if real:
        from autoapply.browser.session import BrowserSession

        session = BrowserSession(settings, llm=llm)
        session.initialize()

    source = get_source(mode)
    try:
        with ApplicationTracker(settings.memory.db_path) as tracker:
            orchestrator = JobApplicationOrchestrator(
                settings, tracker, llm=llm, executor=ExecutorAgent(settings, llm, session=session),
            )
            for term in settings.search.terms:
                jobs = source.search(term, settings.search.location, limit=settings.search.max_jobs_to_apply)
                tracker.record_search(f"{term} @ {settings.search.location}", len(jobs))
                orchestrator.process_batch(jobs)
            orchestrator.statistics()
    finally:
        if session is not None:
            session.close()
    return 0


def run_browser(settings, manual: bool = False) -> int:
    from autoapply.browser.controller import JobCardController
    from autoapply.browser.session import BrowserSession
    from autoapply.browser.surfaces import pause

    llm = get_llm_client(settings.llm)
    session = BrowserSession(settings, llm=llm)
    try:
        session.initialize()
    except ImportError:
        log.error("Playwright not installed. Run: pip install playwright && playwright install chromium")
        return 1

    total = SessionCounters()
    try:
        with ApplicationTracker(settings.memory.db_path) as tracker:
            controller = JobCardController(session, tracker=tracker)
            remaining = settings.search.max_jobs_to_apply
            for term in settings.search.terms:
                if remaining <= 0:
                    break
                if not session.search_jobs(term, settings.search.location):
                    log.error("Search failed for %s", term)
                    continue
                tracker.record_search(f"{term} @ {settings.search.location}", 0)
                counters = controller.apply_to_jobs(remaining)
                for result in counters.results:
                    total.add(result)
                remaining = settings.search.max_jobs_to_apply - total.applied
        print_summary(total)
        if manual:
            session.keep_open()
        else:
            log.info("Closing browser in 5 seconds...")
            if session.page is not None:
                pause(session.page, 5000)
    finally:
        session.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Autonomous job application agent")
    parser.add_argument("--mode", choices=("sample", "scrape", "browser"), default=None,
                        help="sample postings, job-board samples, or live browser (default: APP_MODE)")
    parser.add_argument("--real", action="store_true", help="open postings in a real browser when executing")
    args = parser.parse_args(argv)

    settings = load_settings()
    ensure_dirs(settings)
    _print_config(settings)
    mode = args.mode or settings.search.app_mode
    if mode not in ("sample", "scrape", "browser"):
        log.error("Unknown APP_MODE %r", mode)
        return 1
    log.info("Mode: %s", mode)

    if mode == "browser":
        return run_browser(settings)
    return run_pipeline(settings, mode, args.real)


if __name__ == "__main__":
    sys.exit(main())
