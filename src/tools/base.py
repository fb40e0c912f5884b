from abc import ABC, abstractmethod

from engine.models import AuditResult, Vulnerability


class AnalysisAdapter(ABC):
    @abstractmethod
    async def analyze(self, address: str) -> AuditResult:
        """Audit the contract at `address`; raise AnalysisError when no result can be produced."""


class NotifierAdapter(ABC):
    @abstractmethod
    async def notify(self, vulnerability: Vulnerability, target_name: str, project_id: str) -> None:
        """Create one task for `vulnerability`; raise NotificationError on failure."""


def task_title(vulnerability: Vulnerability) -> str:
    return f"Critical Vulnerability Found: {vulnerability.title}"


def task_payload(vulnerability: Vulnerability, target_name: str, project_id: str) -> dict:
    return {
        "tool": target_name,
        "project_id": project_id,
        "title": task_title(vulnerability),
        "severity": vulnerability.severity.value,
        "details": vulnerability.description,
        "recommendation": vulnerability.recommendation,
    }
