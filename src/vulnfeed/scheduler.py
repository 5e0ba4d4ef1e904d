"""Sync scheduler — one cron job driving the sync cycle, persisted in sync_task."""

from __future__ import annotations

import logging
import threading
import uuid

from apscheduler.job import Job
from apscheduler.jobstores.base import ConflictingIdError, JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from vulnfeed.jobs import run_sync_cycle
from vulnfeed.storage import sync_task
from vulnfeed.storage.connection import get_connection

logger = logging.getLogger(__name__)

MIN_INTERVAL_MINUTES = 1
MAX_INTERVAL_MINUTES = 60


class SchedulerError(RuntimeError):
    """Raised when the live scheduler cannot be brought in line with the stored state."""


def validate_interval(interval_minutes: int) -> None:
    if not MIN_INTERVAL_MINUTES <= interval_minutes <= MAX_INTERVAL_MINUTES:
        raise ValueError(
            f"interval_minutes must be between {MIN_INTERVAL_MINUTES} and "
            f"{MAX_INTERVAL_MINUTES}, got {interval_minutes}"
        )


class SyncScheduler:
    """Owns the single periodic sync job and keeps sync_task.job_id pointing at it.

    ``reconfigure`` and ``disable`` are serialized with a lock and run their
    database work in one write transaction, so at most one live job exists
    and the persisted handle always names it.
    """

    def __init__(
        self,
        database_path: str,
        *,
        page_limit: int = 1,
        default_interval: int = 30,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._database_path = database_path
        self._page_limit = page_limit
        self._default_interval = default_interval
        self._scheduler = scheduler if scheduler is not None else AsyncIOScheduler()
        self._lock = threading.Lock()

    @property
    def scheduler(self) -> AsyncIOScheduler:
        return self._scheduler

    def live_job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    def _trigger(self, interval_minutes: int) -> CronTrigger:
        # A step of 60 exceeds the minute field's range; top of the hour is the same cadence.
        minute = "0" if interval_minutes == MAX_INTERVAL_MINUTES else f"*/{interval_minutes}"
        return CronTrigger(second=0, minute=minute)

    def _install(self, interval_minutes: int, job_id: str | None = None) -> Job:
        try:
            return self._scheduler.add_job(
                run_sync_cycle,
                trigger=self._trigger(interval_minutes),
                args=[self._database_path, self._page_limit],
                id=job_id or str(uuid.uuid4()),
                name=f"Vulnerability sync every {interval_minutes} min",
                max_instances=1,
                coalesce=True,
            )
        except (ValueError, ConflictingIdError) as exc:
            raise SchedulerError(f"failed to install sync job: {exc}") from exc

    def _remove(self, job_id: str) -> None:
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError as exc:
            raise SchedulerError(f"failed to remove job {job_id}: {exc}") from exc

    def reconfigure(self, interval_minutes: int) -> Job:
        """Replace the live job with one firing every ``interval_minutes`` minutes.

        Raises ValueError for an out-of-range interval and SchedulerError when
        the previously persisted job cannot be removed or the new one cannot be
        installed. If anything fails after the old job was removed, the old job
        is put back under its persisted id, so the stored handle keeps naming a
        live job. Returns the new job.
        """
        validate_interval(interval_minutes)
        with self._lock:
            job = None
            removed: tuple[str, int] | None = None
            try:
                with get_connection(self._database_path, immediate=True) as conn:
                    task = sync_task.first(conn)
                    if task is None:
                        task_id = sync_task.upsert(
                            conn,
                            name=sync_task.DEFAULT_TASK_NAME,
                            interval_minutes=interval_minutes,
                            status=True,
                        )
                        old_job_id = None
                    else:
                        task_id, old_job_id = task.id, task.job_id

                    if old_job_id:
                        self._remove(old_job_id)
                        removed = (old_job_id, task.interval_minutes)
                        logger.info("Removed sync job %s", old_job_id)

                    job = self._install(interval_minutes)
                    sync_task.update_job(
                        conn, task_id, job.id, interval_minutes=interval_minutes, status=True,
                    )
            except Exception:
                if job is not None:
                    self._scheduler.remove_job(job.id)
                if removed is not None:
                    old_job_id, old_interval = removed
                    self._install(old_interval, job_id=old_job_id)
                    logger.warning(
                        "Reconfigure failed; restored sync job %s every %d minute(s)",
                        old_job_id, old_interval,
                    )
                raise

        logger.info("Sync job %s scheduled every %d minute(s)", job.id, interval_minutes)
        return job

    def disable(self) -> None:
        """Remove the live job (if any) and mark the task disabled."""
        with self._lock:
            with get_connection(self._database_path, immediate=True) as conn:
                task = sync_task.first(conn)
                if task is None:
                    sync_task.upsert(
                        conn,
                        name=sync_task.DEFAULT_TASK_NAME,
                        interval_minutes=self._default_interval,
                        status=False,
                    )
                    logger.info("Sync task created disabled")
                    return
                if task.job_id:
                    self._remove(task.job_id)
                    logger.info("Removed sync job %s", task.job_id)
                sync_task.update_job(conn, task.id, None, status=False)
        logger.info("Sync task disabled")

    def init_from_persisted_state(self) -> Job | None:
        """Restore the periodic job from the sync_task row and start the timer.

        Must be called from inside the running event loop.
        """
        job = None
        with get_connection(self._database_path) as conn:
            task = sync_task.first(conn)

        if task is None:
            logger.info("No sync task configured; scheduler idle")
        elif not task.status:
            logger.info("Sync task '%s' is disabled; not scheduling", task.name)
            if task.job_id:
                with get_connection(self._database_path) as conn:
                    sync_task.update_job(conn, task.id, None)
        else:
            job = self._install(task.interval_minutes)
            with get_connection(self._database_path) as conn:
                sync_task.update_job(conn, task.id, job.id)
            logger.info(
                "Sync task '%s' restored: job %s every %d minute(s)",
                task.name, job.id, task.interval_minutes,
            )

        if not self._scheduler.running:
            self._scheduler.start()
        return job

    def shutdown(self) -> None:
        """Stop the timer without waiting for a running sync cycle.

        AsyncIOScheduler applies the stop on its event loop, so ``running``
        only turns False once the caller yields to the loop.
        """
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler shut down")
