from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Severity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def _missing_(cls, value):
        # audit services are inconsistent about case ("CRITICAL", "high")
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


# Shared by sorting and grouping; lower rank sorts first.
SEVERITY_RANK: Dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


def severity_rank(severity: Severity) -> int:
    return SEVERITY_RANK[severity]


class ScanStatus(str, Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"


TERMINAL_STATUSES = frozenset({ScanStatus.COMPLETED, ScanStatus.FAILED})


class ComparisonStatus(str, Enum):
    NEW = "New"
    RESOLVED = "Resolved"
    UNCHANGED = "Unchanged"


class Vulnerability(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    severity: Severity
    title: str
    description: str = ""
    recommendation: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, value):
        if isinstance(value, str) and not isinstance(value, Severity):
            return Severity(value)
        return value


class SeveritySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low


class AuditMetrics(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    execution_speed: float = Field(0.0, alias="executionSpeed", description="Execution speed in seconds")
    test_coverage: float = Field(0.0, alias="testCoverage", description="Test coverage in percent")
    defect_density: float = Field(0.0, alias="defectDensity", description="Defects per 1k lines of code")


class AuditResult(BaseModel):
    """
    Structured outcome of one contract audit. Immutable once attached to a job.
    """
    model_config = ConfigDict(frozen=True)

    vulnerabilities: List[Vulnerability] = Field(default_factory=list)
    summary: Optional[SeveritySummary] = None
    metrics: AuditMetrics = Field(default_factory=AuditMetrics)

    @model_validator(mode="after")
    def _fill_summary(self):
        if self.summary is None:
            from utils.stats import calculate_vulnerability_stats
            object.__setattr__(self, "summary", calculate_vulnerability_stats(self.vulnerabilities))
        return self

    def criticals(self) -> List[Vulnerability]:
        return [v for v in self.vulnerabilities if v.severity is Severity.CRITICAL]

    def has_severity(self, severity: Severity) -> bool:
        return any(v.severity is severity for v in self.vulnerabilities)


class ScanJob(BaseModel):
    """
    One audit run against a target address.

    Records are frozen: the job manager replaces a whole record to change it,
    so a reader holding a job never sees it half-updated.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    target_address: str
    status: ScanStatus = ScanStatus.PENDING
    submitted_at: datetime
    completed_at: Optional[datetime] = None
    result: Optional[AuditResult] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _result_matches_status(self):
        if (self.result is not None) != (self.status is ScanStatus.COMPLETED):
            raise ValueError(f"result must be present iff status is Completed (status={self.status.value})")
        if self.error is not None and self.status is not ScanStatus.FAILED:
            raise ValueError("error is only recorded on failed jobs")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ComparedVulnerability(Vulnerability):
    comparison_status: ComparisonStatus


class ScanComparison(BaseModel):
    """Classified vulnerabilities of one scan relative to the baseline."""
    model_config = ConfigDict(frozen=True)

    job: ScanJob
    is_baseline: bool = False
    vulnerabilities: List[ComparedVulnerability] = Field(default_factory=list)

    def count(self, status: ComparisonStatus) -> int:
        return sum(1 for v in self.vulnerabilities if v.comparison_status is status)


class IntegrationTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    connected: bool = False
    project_id: str = ""

    @property
    def accepts_notifications(self) -> bool:
        return self.connected and bool(self.project_id.strip())


class NotificationEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    message: str
    source: str

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be empty")
        return value
