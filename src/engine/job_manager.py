"""
JobManager: in-memory store and lifecycle driver for contract scan jobs.

Jobs move Pending -> Running -> Completed | Failed. Every change replaces the
whole (frozen) record under the lock, keyed by id, so overlapping completions
never overwrite each other and readers always get a consistent snapshot.
"""

import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

from engine.activity_log import ActivityLog
from engine.errors import AnalysisError, InvalidTransitionError, NotificationError, ScanNotFoundError
from engine.integrations import IntegrationRegistry
from engine.models import AuditResult, ScanJob, ScanStatus
from tools.base import AnalysisAdapter, NotifierAdapter
from utils.stats import format_critical_alert

ALLOWED_TRANSITIONS = {
    ScanStatus.PENDING: {ScanStatus.RUNNING},
    ScanStatus.RUNNING: {ScanStatus.COMPLETED, ScanStatus.FAILED},
    ScanStatus.COMPLETED: set(),
    ScanStatus.FAILED: set(),
}

JobListener = Callable[[ScanJob], None]


@dataclass
class TargetDelivery:
    target_name: str
    delivered: int = 0
    failed: int = 0


@dataclass
class NotificationOutcome:
    """What one critical-vulnerability pass did for a job."""

    job_id: str
    critical_count: int
    deliveries: List[TargetDelivery] = field(default_factory=list)

    @property
    def notified_targets(self) -> List[str]:
        return [d.target_name for d in self.deliveries if d.delivered]

    @property
    def alert(self) -> Optional[str]:
        if not self.notified_targets:
            return None
        return format_critical_alert(self.critical_count, self.notified_targets)


class JobManager:
    def __init__(
        self,
        analyzer: AnalysisAdapter,
        notifier: NotifierAdapter,
        integrations: Optional[IntegrationRegistry] = None,
        activity_log: Optional[ActivityLog] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.analyzer = analyzer
        self.notifier = notifier
        self.integrations = integrations or IntegrationRegistry()
        self.activity_log = activity_log or ActivityLog()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.jobs: Dict[str, ScanJob] = {}
        # newest first, like the history view
        self._order: List[str] = []
        self._in_flight: Set[str] = set()
        self._tasks: Dict[str, asyncio.Task] = {}
        self._outcomes: Dict[str, NotificationOutcome] = {}
        self._listeners: List[JobListener] = []
        self.lock = threading.Lock()

    # -- read side -----------------------------------------------------

    def get(self, job_id: str) -> ScanJob:
        job = self.jobs.get(job_id)
        if job is None:
            raise ScanNotFoundError(job_id)
        return job

    def list_jobs(self) -> List[ScanJob]:
        with self.lock:
            jobs = self.jobs
            return [jobs[job_id] for job_id in self._order]

    @property
    def in_flight(self) -> Set[str]:
        with self.lock:
            return set(self._in_flight)

    def notification_outcome(self, job_id: str) -> Optional[NotificationOutcome]:
        return self._outcomes.get(job_id)

    def subscribe(self, listener: JobListener) -> Callable[[], None]:
        """Call `listener` with every replaced record. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- commands ------------------------------------------------------

    def submit(self, address: str) -> Optional[ScanJob]:
        """
        Create a job for `address` and start its analysis in the background.

        Returns None (and does nothing) for a blank address. Must be called
        from inside a running event loop.
        """
        address = (address or "").strip()
        if not address:
            logging.info("Ignoring scan submission with an empty address.")
            return None

        loop = asyncio.get_running_loop()
        job = ScanJob(id=str(uuid.uuid4()), target_address=address, submitted_at=self._clock())
        with self.lock:
            self.jobs = {**self.jobs, job.id: job}
            self._order.insert(0, job.id)
        self._publish(job)
        logging.info(f"[job_id={job.id}] Submitted scan job. address={address}")

        job = self.mark_running(job.id)
        task = loop.create_task(self._run_job(job.id, address))
        self._tasks[job.id] = task
        task.add_done_callback(lambda _, job_id=job.id: self._tasks.pop(job_id, None))
        return job

    async def scan(self, address: str) -> Optional[ScanJob]:
        """Submit and wait; raises AnalysisError if the analysis fails."""
        job = self.submit(address)
        if job is None:
            return None
        return await self.wait(job.id)

    async def wait(self, job_id: str) -> ScanJob:
        """
        Block until the job and its notification pass are finished.

        A failed analysis is surfaced here as AnalysisError, once per caller.
        """
        self.get(job_id)
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        job = self.get(job_id)
        if job.status is ScanStatus.FAILED:
            raise AnalysisError(job.error or "Scan failed", address=job.target_address)
        return job

    async def drain(self) -> None:
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def mark_running(self, job_id: str) -> ScanJob:
        job = self._transition(job_id, ScanStatus.RUNNING)
        with self.lock:
            self._in_flight.add(job_id)
        logging.info(f"[job_id={job_id}] Started scan job.")
        return job

    def mark_completed(self, job_id: str, result: AuditResult) -> ScanJob:
        job = self._transition(job_id, ScanStatus.COMPLETED, completed_at=self._clock(), result=result)
        logging.info(f"[job_id={job_id}] Completed scan job. stats={result.summary.model_dump()}")
        return job

    def mark_failed(self, job_id: str, error: str) -> ScanJob:
        job = self._transition(job_id, ScanStatus.FAILED, completed_at=self._clock(), error=error)
        logging.error(f"[job_id={job_id}] Scan job failed: {error}")
        return job

    # -- internals -----------------------------------------------------

    def _transition(self, job_id: str, status: ScanStatus, **changes) -> ScanJob:
        with self.lock:
            current = self.jobs.get(job_id)
            if current is None:
                raise ScanNotFoundError(job_id)
            if status not in ALLOWED_TRANSITIONS[current.status]:
                raise InvalidTransitionError(job_id, current.status, status)
            updated = ScanJob.model_validate({**current.model_dump(), **changes, "status": status})
            self.jobs = {**self.jobs, job_id: updated}
            if updated.is_terminal:
                self._in_flight.discard(job_id)
        self._publish(updated)
        return updated

    def _publish(self, job: ScanJob) -> None:
        for listener in list(self._listeners):
            try:
                listener(job)
            except Exception as e:
                logging.error(f"[job_id={job.id}] Job listener failed: {e}")

    async def _run_job(self, job_id: str, address: str) -> None:
        try:
            result = await self.analyzer.analyze(address)
        except AnalysisError as e:
            self.mark_failed(job_id, str(e))
            return
        except Exception as e:
            logging.exception(f"[job_id={job_id}] Unexpected error from audit service")
            self.mark_failed(job_id, f"Unexpected audit failure: {e}")
            return

        job = self.mark_completed(job_id, result)
        # separate failure domain: nothing below can turn the job back into Failed
        outcome = await self._notify_criticals(job)
        if outcome is not None:
            self._outcomes[job_id] = outcome
            if outcome.alert:
                logging.info(f"[job_id={job_id}] {outcome.alert}")

    async def _notify_criticals(self, job: ScanJob) -> Optional[NotificationOutcome]:
        criticals = job.result.criticals()
        if not criticals:
            return None
        outcome = NotificationOutcome(job_id=job.id, critical_count=len(criticals))
        for target in self.integrations.connected_targets():
            delivery = TargetDelivery(target_name=target.name)
            # one call at a time per target, and one target at a time
            for vulnerability in criticals:
                try:
                    await self.notifier.notify(vulnerability, target.name, target.project_id)
                    delivery.delivered += 1
                except NotificationError as e:
                    delivery.failed += 1
                    logging.warning(f"[job_id={job.id}] Notification to {target.name} failed: {e}")
                except Exception as e:
                    delivery.failed += 1
                    logging.warning(f"[job_id={job.id}] Unexpected notifier error for {target.name}: {e}")
            outcome.deliveries.append(delivery)
            self.activity_log.append(self._delivery_message(job, delivery, len(criticals)), source=target.name)
        return outcome

    @staticmethod
    def _delivery_message(job: ScanJob, delivery: TargetDelivery, critical_count: int) -> str:
        if not delivery.failed:
            return (
                f"Created {delivery.delivered} task(s) for critical vulnerabilities "
                f"found in {job.target_address}."
            )
        return (
            f"Created {delivery.delivered} of {critical_count} task(s) for critical vulnerabilities "
            f"found in {job.target_address}; {delivery.failed} failed."
        )
