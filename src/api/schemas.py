from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from engine.models import (
    AuditResult,
    ComparedVulnerability,
    ComparisonStatus,
    IntegrationTarget,
    NotificationEvent,
    ScanComparison,
    ScanJob,
    ScanStatus,
)
from engine.query import SortKey


class ScanSubmitRequest(BaseModel):
    address: str = Field(..., description="Smart contract address to audit")
    wait: bool = Field(False, description="Block until the scan finishes")


class FilterUpdate(BaseModel):
    address: Optional[str] = Field(None, description="Case-insensitive substring of the contract address")
    status: Optional[str] = Field(None, description="'All' or a scan status")
    severity: Optional[str] = Field(None, description="'All' or a severity")
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class SortRequest(BaseModel):
    key: SortKey


class PageRequest(BaseModel):
    page: int = Field(..., ge=1)


class CompareRequest(BaseModel):
    job_ids: Optional[List[str]] = Field(None, description="Ordered ids; the first is the baseline")


class IntegrationUpdate(BaseModel):
    project_id: str


class ScanJobView(BaseModel):
    id: str
    target_address: str
    status: ScanStatus
    submitted_at: datetime
    completed_at: Optional[datetime] = None
    result: Optional[AuditResult] = None
    error: Optional[str] = None
    selected: bool = False

    @classmethod
    def from_job(cls, job: ScanJob, selected: bool = False) -> "ScanJobView":
        return cls(**job.model_dump(exclude={"result"}), result=job.result, selected=selected)


class HistoryView(BaseModel):
    items: List[ScanJobView]
    page: int
    page_size: int
    page_count: int
    total: int
    sort_key: str
    sort_direction: str
    selected_ids: List[str]


class ComparisonView(BaseModel):
    job_id: str
    target_address: str
    submitted_at: datetime
    is_baseline: bool
    new: int
    resolved: int
    unchanged: int
    vulnerabilities: List[ComparedVulnerability]

    @classmethod
    def from_comparison(cls, comparison: ScanComparison) -> "ComparisonView":
        return cls(
            job_id=comparison.job.id,
            target_address=comparison.job.target_address,
            submitted_at=comparison.job.submitted_at,
            is_baseline=comparison.is_baseline,
            new=comparison.count(ComparisonStatus.NEW),
            resolved=comparison.count(ComparisonStatus.RESOLVED),
            unchanged=comparison.count(ComparisonStatus.UNCHANGED),
            vulnerabilities=comparison.vulnerabilities,
        )


class ActivityView(BaseModel):
    events: List[NotificationEvent]


class IntegrationsView(BaseModel):
    targets: List[IntegrationTarget]
