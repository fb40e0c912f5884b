from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from engine.models import (
    SEVERITY_RANK,
    AuditResult,
    ScanJob,
    ScanStatus,
    Severity,
    SeveritySummary,
    Vulnerability,
    severity_rank,
)
from factories import result, vuln
from utils.stats import calculate_vulnerability_stats, format_critical_alert

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def test_severity_rank_is_a_total_order():
    ordered = sorted(Severity, key=severity_rank)
    assert ordered == [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]
    assert sorted(SEVERITY_RANK.values()) == [0, 1, 2, 3]


def test_severity_parsing_ignores_case():
    assert Vulnerability(id="v1", severity="CRITICAL", title="x").severity is Severity.CRITICAL
    assert Severity("low") is Severity.LOW
    with pytest.raises(ValidationError):
        Vulnerability(id="v1", severity="Info", title="x")


def test_result_requires_completed_status():
    with pytest.raises(ValidationError):
        ScanJob(id="j", target_address="0x1", status=ScanStatus.FAILED, submitted_at=NOW, result=AuditResult())
    with pytest.raises(ValidationError):
        ScanJob(id="j", target_address="0x1", status=ScanStatus.COMPLETED, submitted_at=NOW)


def test_jobs_are_immutable():
    job = ScanJob(id="j", target_address="0x1", status=ScanStatus.RUNNING, submitted_at=NOW)
    with pytest.raises(ValidationError):
        job.status = ScanStatus.COMPLETED


def test_missing_summary_is_computed():
    audit = result(vuln("Critical", "a"), vuln("Critical", "b"), vuln("Low", "c"))

    assert audit.summary == SeveritySummary(critical=2, high=0, medium=0, low=1)
    assert audit.summary.total == 3


def test_audit_payload_with_camel_case_metrics():
    audit = AuditResult.model_validate({
        "summary": {"critical": 1, "high": 0, "medium": 0, "low": 0},
        "metrics": {"executionSpeed": 1.5, "testCoverage": 82.0, "defectDensity": 0.4},
        "vulnerabilities": [{
            "id": "vuln-1",
            "severity": "Critical",
            "title": "Reentrancy",
            "description": "withdraw() calls out before updating balances",
            "recommendation": "Use checks-effects-interactions",
        }],
    })

    assert audit.metrics.test_coverage == 82.0
    assert [v.title for v in audit.criticals()] == ["Reentrancy"]
    assert audit.has_severity(Severity.CRITICAL) and not audit.has_severity(Severity.LOW)


def test_stats_and_alert_text():
    stats = calculate_vulnerability_stats([vuln("High", "a"), vuln("Medium", "b")])
    assert (stats.high, stats.medium) == (1, 1)

    assert format_critical_alert(1, ["Asana"]) == "Found 1 critical vulnerability and created tasks in Asana."
    assert format_critical_alert(3, ["Asana", "Monday.com"]) == (
        "Found 3 critical vulnerabilities and created tasks in Asana & Monday.com."
    )
