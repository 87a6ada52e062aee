"""Webhook job queue worker with bounded retries."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from agentline.core.exceptions import InvalidJobTransitionError
from agentline.core.logging import get_logger
from agentline.domain.entities.jobs import JobStatus, JobType, next_status_after_failure
from agentline.domain.entities.routing import PhoneStatus
from agentline.domain.services.routing_service import RoutingService
from agentline.infrastructure.database.models import WebhookJob
from agentline.infrastructure.database.repositories import WebhookJobRepository
from agentline.infrastructure.retell.client import RetellClient

logger = get_logger(__name__)

FALLBACK_NICKNAME = "Number - Out of Minutes"


@dataclass
class JobRunResult:
    job_id: int
    status: JobStatus
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"job_id": self.job_id, "status": self.status.value}
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class WorkerReport:
    processed: int = 0
    failed: int = 0
    results: list[JobRunResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


class JobQueueWorker:
    """Runs one pass over pending webhook jobs.

    Jobs are taken oldest first and executed one at a time with a fixed
    pause between them. Each execution is bounded by a timeout; a timed-out
    call is cancelled and counts as a transient failure. Jobs stuck in
    `processing` longer than `stale_after_seconds` are released first.
    """

    def __init__(
        self,
        jobs: WebhookJobRepository,
        retell: RetellClient | None,
        routing: RoutingService | None,
        *,
        batch_size: int = 10,
        max_retries: int = 3,
        job_delay_seconds: float = 2.0,
        job_timeout_seconds: float = 25.0,
        failure_alert_threshold: int = 3,
        stale_after_seconds: float | None = None,
    ):
        self._jobs = jobs
        self._retell = retell
        self._routing = routing
        self._batch_size = batch_size
        self._max_retries = max_retries
        self._job_delay = job_delay_seconds
        self._job_timeout = job_timeout_seconds
        self._failure_alert_threshold = failure_alert_threshold
        self._stale_after = (
            stale_after_seconds if stale_after_seconds is not None else job_timeout_seconds * 2
        )

    async def run_pass(self) -> WorkerReport:
        report = WorkerReport()
        cutoff = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(seconds=self._stale_after)
        await self._jobs.reclaim_stale(cutoff, self._max_retries)

        pending = await self._jobs.fetch_pending(self._batch_size)
        if not pending:
            return report

        logger.info("Processing webhook jobs", count=len(pending))

        for index, job in enumerate(pending):
            if index and self._job_delay > 0:
                await asyncio.sleep(self._job_delay)

            run = await self._process(job)
            if run is None:
                continue
            report.processed += 1
            report.results.append(run)
            if run.error is not None:
                report.failed += 1

        if report.failed > self._failure_alert_threshold:
            logger.critical(
                "High webhook job failure rate",
                failed=report.failed,
                processed=report.processed,
            )

        logger.info(
            "Webhook job pass finished",
            processed=report.processed,
            failed=report.failed,
        )
        return report

    async def _process(self, job: WebhookJob) -> JobRunResult | None:
        try:
            await self._jobs.transition(job.id, JobStatus.PENDING, JobStatus.PROCESSING)
        except InvalidJobTransitionError:
            logger.info("Job already claimed", job_id=job.id)
            return None
        except Exception as e:
            logger.error("Failed to claim job", job_id=job.id, error=str(e))
            return None

        try:
            await asyncio.wait_for(self._execute(job), timeout=self._job_timeout)
        except asyncio.TimeoutError:
            return await self._fail(job, f"Job timeout after {self._job_timeout}s")
        except Exception as e:
            return await self._fail(job, str(e) or type(e).__name__)

        error = await self._settle(job, JobStatus.COMPLETED)
        if error is not None:
            return JobRunResult(job.id, JobStatus.PROCESSING, error=error)
        logger.info("Job completed", job_id=job.id, job_type=job.job_type.value)
        return JobRunResult(job.id, JobStatus.COMPLETED)

    async def _fail(self, job: WebhookJob, message: str) -> JobRunResult:
        retry_count = job.retry_count + 1
        status = next_status_after_failure(message, retry_count, self._max_retries)

        logger.error(
            "Job failed",
            job_id=job.id,
            job_type=job.job_type.value,
            retry_count=retry_count,
            next_status=status.value,
            error=message,
        )
        error = await self._settle(job, status, retry_count=retry_count, error_message=message)
        if error is not None:
            return JobRunResult(job.id, JobStatus.PROCESSING, error=error)
        return JobRunResult(job.id, status, error=message)

    async def _settle(
        self,
        job: WebhookJob,
        status: JobStatus,
        *,
        retry_count: int | None = None,
        error_message: str | None = None,
    ) -> str | None:
        """Write the outcome of a processed job.

        A failed write leaves the job in `processing` until a later pass
        reclaims it; the rest of the batch still runs.

        Returns:
            Error message if the write failed, else None
        """
        try:
            await self._jobs.transition(
                job.id,
                JobStatus.PROCESSING,
                status,
                retry_count=retry_count,
                error_message=error_message,
            )
        except Exception as e:
            logger.error(
                "Failed to record job status",
                job_id=job.id,
                target_status=status.value,
                error=str(e),
            )
            return f"Status update failed: {e}"
        return None

    async def _execute(self, job: WebhookJob) -> None:
        payload = job.payload or {}

        if job.job_type is JobType.REASSIGN_NUMBER:
            if self._retell is None:
                raise RuntimeError("Retell client unavailable for reassign_number")
            agent_id = payload["fallback_agent_id"]
            await self._retell.update_phone_number(
                payload["phone_number"],
                inbound_agent_id=agent_id,
                outbound_agent_id=agent_id,
                inbound_agent_version=None,
                outbound_agent_version=None,
                nickname=FALLBACK_NICKNAME,
            )
            return

        if job.job_type in (JobType.SUSPEND_NUMBER, JobType.RESTORE_NUMBER):
            if self._routing is None:
                raise RuntimeError(f"Routing service unavailable for {job.job_type.value}")
            wanted = (
                PhoneStatus.INACTIVE
                if job.job_type is JobType.SUSPEND_NUMBER
                else PhoneStatus.ACTIVE
            )
            outcome = await self._routing.reapply(payload["phone_number_id"], wanted)
            logger.info("Routing job applied", job_id=job.id, outcome=outcome)
            return

        raise ValueError(f"Unknown job type: {job.job_type}")
