from collections import Counter
from typing import Iterable

from engine.models import Severity, SeveritySummary


def calculate_vulnerability_stats(vulnerabilities: Iterable):
    """
    Count vulnerabilities by severity (CRITICAL, HIGH, MEDIUM, LOW).
    """
    counts = Counter(v.severity for v in vulnerabilities)
    return SeveritySummary(
        critical=counts[Severity.CRITICAL],
        high=counts[Severity.HIGH],
        medium=counts[Severity.MEDIUM],
        low=counts[Severity.LOW],
    )


def format_critical_alert(critical_count: int, target_names) -> str:
    """
    Human-readable summary of a notification pass, e.g.
    "Found 2 critical vulnerabilities and created tasks in Asana & Monday.com."
    """
    noun = "vulnerability" if critical_count == 1 else "vulnerabilities"
    return f"Found {critical_count} critical {noun} and created tasks in {' & '.join(target_names)}."
