# src/engine/scan_service.py
"""
ScanService: wires the job store, history query, comparison, activity log and
integration targets together. Consumers get one injected instance.
"""
from typing import List, Optional, Sequence

from engine.activity_log import ActivityLog
from engine.comparison import compare_scans
from engine.config import NOTIFIER_WEBHOOK, Settings
from engine.errors import InsufficientSelectionError
from engine.integrations import ASANA, MONDAY, IntegrationRegistry
from engine.job_manager import JobManager
from engine.models import IntegrationTarget, ScanComparison, ScanStatus
from engine.query import ScanQuery
from tools.audit_adapter import HttpAuditAdapter
from tools.base import AnalysisAdapter, NotifierAdapter
from tools.task_notifier import SimulatedTaskNotifier, WebhookTaskNotifier


class ScanService:
    def __init__(self, job_manager: JobManager, query: Optional[ScanQuery] = None):
        self.job_manager = job_manager
        self.query = query or ScanQuery()

    @property
    def activity_log(self) -> ActivityLog:
        return self.job_manager.activity_log

    @property
    def integrations(self) -> IntegrationRegistry:
        return self.job_manager.integrations

    async def aclose(self) -> None:
        """Release the adapters' HTTP clients."""
        for adapter in (self.job_manager.analyzer, self.job_manager.notifier):
            close = getattr(adapter, "aclose", None)
            if close is not None:
                await close()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        analyzer: Optional[AnalysisAdapter] = None,
        notifier: Optional[NotifierAdapter] = None,
    ) -> "ScanService":
        if analyzer is None:
            analyzer = HttpAuditAdapter(settings.analyzer_url)
        if notifier is None:
            if settings.notifier == NOTIFIER_WEBHOOK:
                notifier = WebhookTaskNotifier(settings.webhook_url or "")
            else:
                notifier = SimulatedTaskNotifier(delay=settings.notify_delay)
        integrations = IntegrationRegistry([
            _target(ASANA, settings.asana_project_id),
            _target(MONDAY, settings.monday_project_id),
        ])
        job_manager = JobManager(
            analyzer,
            notifier,
            integrations=integrations,
            activity_log=ActivityLog(limit=settings.activity_log_limit),
        )
        return cls(job_manager, ScanQuery(page_size=settings.page_size))

    def toggle_selection(self, job_id: str) -> bool:
        self.job_manager.get(job_id)
        return self.query.toggle_selection(job_id)

    def compare(self, job_ids: Optional[Sequence[str]] = None) -> List[ScanComparison]:
        """
        Compare the given jobs in order (first is the baseline), or when no ids
        are given, the selected completed jobs oldest first.
        """
        if job_ids:
            completed = [self.job_manager.get(job_id) for job_id in job_ids]
            unfinished = [job.id for job in completed if job.status is not ScanStatus.COMPLETED]
            if unfinished:
                raise InsufficientSelectionError(f"Only completed scans can be compared: {', '.join(unfinished)}")
        else:
            jobs = self.query.selected_jobs(self.job_manager.list_jobs())
            jobs.sort(key=lambda job: job.submitted_at)
            completed = [job for job in jobs if job.status is ScanStatus.COMPLETED]
        if len(completed) < 2:
            raise InsufficientSelectionError("Please select at least two completed scans to compare.")
        return compare_scans(completed)


def _target(name: str, project_id: Optional[str]) -> IntegrationTarget:
    return IntegrationTarget(name=name, connected=bool(project_id), project_id=project_id or "")
