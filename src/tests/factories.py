"""
Builders and fake collaborators shared by the scan core tests.
"""

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from engine.errors import AnalysisError, NotificationError
from engine.models import AuditResult, ScanJob, ScanStatus, Vulnerability
from tools.base import AnalysisAdapter, NotifierAdapter

_ids = itertools.count(1)
T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def vuln(severity: str, title: str, description: str = "", recommendation: str = "") -> Vulnerability:
    return Vulnerability(
        id=f"vuln-{next(_ids)}",
        severity=severity,
        title=title,
        description=description or f"{title} description",
        recommendation=recommendation or f"Fix {title}",
    )


def result(*vulnerabilities: Vulnerability) -> AuditResult:
    return AuditResult(vulnerabilities=list(vulnerabilities))


def completed_job(job_id: str, *vulnerabilities: Vulnerability, address: str = "0xABC", minutes: int = 0) -> ScanJob:
    return ScanJob(
        id=job_id,
        target_address=address,
        status=ScanStatus.COMPLETED,
        submitted_at=T0 + timedelta(minutes=minutes),
        completed_at=T0 + timedelta(minutes=minutes, seconds=30),
        result=result(*vulnerabilities),
    )


def job(job_id: str, status: ScanStatus, address: str = "0xABC", minutes: int = 0) -> ScanJob:
    return ScanJob(
        id=job_id,
        target_address=address,
        status=status,
        submitted_at=T0 + timedelta(minutes=minutes),
        completed_at=T0 + timedelta(minutes=minutes, seconds=30) if status is ScanStatus.FAILED else None,
        error="boom" if status is ScanStatus.FAILED else None,
    )


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


class FakeAnalyzer(AnalysisAdapter):
    def __init__(self, results: Optional[Dict[str, AuditResult]] = None):
        self.results = results or {}
        self.failures: Dict[str, str] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[str] = []

    def fail(self, address: str, message: str = "model returned an invalid response"):
        self.failures[address] = message

    def gate(self, address: str) -> asyncio.Event:
        self.gates[address] = asyncio.Event()
        return self.gates[address]

    async def analyze(self, address: str) -> AuditResult:
        self.calls.append(address)
        if address in self.gates:
            await self.gates[address].wait()
        if address in self.failures:
            raise AnalysisError(self.failures[address], address=address)
        return self.results.get(address, AuditResult())


class RecordingNotifier(NotifierAdapter):
    def __init__(self):
        self.calls = []
        self.events = []
        self.failing = set()

    async def notify(self, vulnerability: Vulnerability, target_name: str, project_id: str) -> None:
        self.events.append(("start", target_name, vulnerability.title))
        # yield so overlapping calls would interleave in the event list
        await asyncio.sleep(0)
        if (target_name, vulnerability.title) in self.failing:
            self.events.append(("fail", target_name, vulnerability.title))
            raise NotificationError("task API unavailable", target_name=target_name)
        self.calls.append((target_name, project_id, vulnerability.title))
        self.events.append(("end", target_name, vulnerability.title))
