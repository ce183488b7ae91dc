"""
Sample/scrape mode pipeline: source -> dedupe -> relevance -> plan -> execute -> record.
"""
from __future__ import annotations

import time
from typing import Any, Callable

from autoapply.config import Settings
from autoapply.executor import ExecutorAgent
from autoapply.log import get_logger
from autoapply.models import Job
from autoapply.planner import RELEVANCE_THRESHOLD, Planner
from autoapply.tracker import ApplicationTracker

log = get_logger(__name__)

FILL_RATE_APPLIED = 70
# Dry fills report against this nominal form size
NOMINAL_FORM_FIELDS = 10


class JobApplicationOrchestrator:
    def __init__(
        self,
        settings: Settings,
        tracker: ApplicationTracker,
        llm: Any = None,
        executor: ExecutorAgent | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.tracker = tracker
        self.planner = Planner(settings, llm)
        self.executor = executor or ExecutorAgent(settings, llm)
        self.sleep = sleep

    def process_job(self, job: Job) -> str:
        """Run one posting through the pipeline; returns the status recorded (or why it was skipped)."""
        url = job.url
        log.info("=" * 60)
        log.info("Processing Job: %s @ %s", job.title, job.company)
        log.info("URL: %s", url)

        if self.tracker.has_applied_before(url):
            log.info("Already applied to this job. Skipping.")
            return "duplicate"
        if self.tracker.is_job_rejected(url):
            log.info("Job was previously rejected. Skipping.")
            return "previously-rejected"

        relevance = self.planner.analyze_relevance(job)
        if not relevance.is_relevant or relevance.relevance_score < RELEVANCE_THRESHOLD:
            log.warning("Job not relevant (score: %.0f%%). Rejecting.", relevance.relevance_score)
            self.tracker.record_rejected_job(url, job.company or "Unknown", relevance.reasoning)
            return "rejected"
        log.info("Job is relevant (score: %.0f%%)", relevance.relevance_score)

        plan = self.planner.plan_application(job)
        if not plan.should_apply:
            log.info("Plan decided not to apply. Rejecting.")
            self.tracker.record_rejected_job(url, job.company or "Unknown", "Planning phase decided not to apply")
            return "rejected"

        result = self.executor.execute_application(url, job)
        if not result.success:
            log.error("Application execution failed: %s", "; ".join(result.errors))
            self.tracker.record_application(
                company_name=job.company,
                job_title=job.title,
                job_url=url,
                status="failed",
                relevance_score=relevance.relevance_score,
                notes=f"Execution failed: {result.errors[0] if result.errors else result.message}",
                form_data_filled=result.filled_fields,
                error_log="\n".join(result.errors),
            )
            return "failed"

        fill_rate = min(100, round(len(result.filled_fields) / NOMINAL_FORM_FIELDS * 100))
        status = "applied" if fill_rate >= FILL_RATE_APPLIED else "pending"
        if status == "pending":
            log.warning("Form completion below %d%% threshold", FILL_RATE_APPLIED)
        record = self.tracker.record_application(
            company_name=job.company,
            job_title=job.title,
            job_url=url,
            status=status,
            relevance_score=relevance.relevance_score,
            fill_rating=fill_rate,
            notes=result.message,
            form_data_filled=result.filled_fields,
        )
        log.info("Application %s recorded as %s (fill %d%%)", record.id, status, fill_rate)
        return status

    def process_batch(self, jobs: list[Job], delay_seconds: float = 2.0) -> dict[str, int]:
        limit = self.settings.search.max_jobs_to_apply
        summary: dict[str, int] = {}
        for i, job in enumerate(jobs[:limit]):
            try:
                outcome = self.process_job(job)
            except Exception as exc:
                log.error("Error processing job %s: %s", job.url, str(exc)[:200])
                outcome = "error"
            summary[outcome] = summary.get(outcome, 0) + 1
            if i < min(len(jobs), limit) - 1:
                self.sleep(delay_seconds)
        log.info("Batch complete: %s", ", ".join(f"{k}={v}" for k, v in sorted(summary.items())))
        return summary

    def statistics(self) -> dict[str, float]:
        stats = self.tracker.get_statistics()
        log.info(
            "Total applications: %d | applied: %d | failed: %d | companies: %d | success rate: %.1f%%",
            stats["total_applications"], stats["applied_count"], stats["failed_count"],
            stats["unique_companies"], stats["success_rate"],
        )
        return stats
