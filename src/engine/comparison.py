"""
Cross-scan vulnerability comparison.

Vulnerabilities are matched by title: ids are regenerated on every run and
mean nothing across scans of the same contract.
"""

from typing import Dict, List, Sequence

from engine.models import (
    ComparedVulnerability,
    ComparisonStatus,
    ScanComparison,
    ScanJob,
    Vulnerability,
    severity_rank,
)


def _by_title(vulnerabilities: Sequence[Vulnerability]) -> Dict[str, Vulnerability]:
    # a repeated title keeps its first position and its last value
    return {v.title: v for v in vulnerabilities}


def _classify(vulnerability: Vulnerability, status: ComparisonStatus) -> ComparedVulnerability:
    return ComparedVulnerability(**vulnerability.model_dump(), comparison_status=status)


def _sorted(vulnerabilities: List[ComparedVulnerability]) -> List[ComparedVulnerability]:
    # sorted() is stable, so equal severities keep their relative order
    return sorted(vulnerabilities, key=lambda v: severity_rank(v.severity))


def compare_scans(jobs: Sequence[ScanJob]) -> List[ScanComparison]:
    """
    Classify every scan's vulnerabilities against the first scan (the baseline).

    The baseline's own list is tagged Unchanged for display symmetry and keeps
    its reported order. A later scan gets New for titles the baseline lacks,
    Unchanged for shared titles and Resolved (with the baseline's copy) for
    baseline titles it no longer has, sorted by severity.
    A scan without a result, or any scan when the baseline has none, yields an
    empty list. Never raises.
    """
    if not jobs:
        return []

    baseline = jobs[0]
    if baseline.result is None:
        return [ScanComparison(job=job, is_baseline=index == 0) for index, job in enumerate(jobs)]

    baseline_vulns = _by_title(baseline.result.vulnerabilities)
    comparisons = [
        ScanComparison(
            job=baseline,
            is_baseline=True,
            vulnerabilities=[_classify(v, ComparisonStatus.UNCHANGED) for v in baseline.result.vulnerabilities],
        )
    ]

    for job in jobs[1:]:
        if job.result is None:
            comparisons.append(ScanComparison(job=job))
            continue

        current_vulns = _by_title(job.result.vulnerabilities)
        classified = [
            _classify(v, ComparisonStatus.UNCHANGED if title in baseline_vulns else ComparisonStatus.NEW)
            for title, v in current_vulns.items()
        ]
        classified.extend(
            _classify(v, ComparisonStatus.RESOLVED)
            for title, v in baseline_vulns.items()
            if title not in current_vulns
        )
        comparisons.append(ScanComparison(job=job, vulnerabilities=_sorted(classified)))

    return comparisons
