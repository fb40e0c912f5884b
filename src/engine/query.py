"""
ScanQuery: filter, sort and paginate the scan history, plus the multi-select
set used to pick scans for comparison.

The selection is keyed by job id and is untouched by filter, sort and page
changes, so a job that drops out of the visible page stays selected.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional, Sequence, Set, Union

from engine.models import ScanJob, ScanStatus, Severity

ALL = "All"
DEFAULT_PAGE_SIZE = 10


class SortKey(str, Enum):
    ADDRESS = "address"
    STATUS = "status"
    SUBMITTED_AT = "submittedAt"


class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


@dataclass(frozen=True)
class Page:
    items: List[ScanJob]
    page: int
    page_size: int
    page_count: int
    total: int


def _sort_value(job: ScanJob, key: SortKey):
    if key is SortKey.ADDRESS:
        return job.target_address
    if key is SortKey.STATUS:
        return job.status.value
    # datetimes compare by instant
    return job.submitted_at


class ScanQuery:
    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE):
        if page_size < 1:
            raise ValueError("page size must be at least 1")
        self.page_size = page_size
        self.filter_address = ""
        self.filter_status: Union[ScanStatus, str] = ALL
        self.filter_severity: Union[Severity, str] = ALL
        self.filter_start_date: Optional[date] = None
        self.filter_end_date: Optional[date] = None
        self.sort_key = SortKey.SUBMITTED_AT
        self.sort_direction = SortDirection.DESCENDING
        self.current_page = 1
        self.selected_ids: Set[str] = set()

    # -- filters (each one resets the page) ----------------------------

    def set_filter_address(self, text: str) -> None:
        self.filter_address = text or ""
        self.current_page = 1

    def set_filter_status(self, status) -> None:
        self.filter_status = ALL if status in (None, ALL) else ScanStatus(status)
        self.current_page = 1

    def set_filter_severity(self, severity) -> None:
        self.filter_severity = ALL if severity in (None, ALL) else Severity(severity)
        self.current_page = 1

    def set_date_range(self, start: Optional[date] = None, end: Optional[date] = None) -> None:
        self.filter_start_date = start
        self.filter_end_date = end
        self.current_page = 1

    def matches(self, job: ScanJob) -> bool:
        if self.filter_address and self.filter_address.lower() not in job.target_address.lower():
            return False
        if self.filter_status != ALL and job.status is not self.filter_status:
            return False
        if self.filter_severity != ALL:
            if job.result is None or not job.result.has_severity(self.filter_severity):
                return False
        if self.filter_start_date is not None:
            start = datetime.combine(self.filter_start_date, time.min, tzinfo=job.submitted_at.tzinfo)
            if job.submitted_at < start:
                return False
        if self.filter_end_date is not None:
            end = datetime.combine(self.filter_end_date, time.max, tzinfo=job.submitted_at.tzinfo)
            if job.submitted_at > end:
                return False
        return True

    # -- sorting (never resets the page) -------------------------------

    def request_sort(self, key) -> None:
        key = SortKey(key)
        if key is self.sort_key and self.sort_direction is SortDirection.ASCENDING:
            self.sort_direction = SortDirection.DESCENDING
        else:
            self.sort_direction = SortDirection.ASCENDING
        self.sort_key = key

    # -- views ---------------------------------------------------------

    def apply(self, jobs: Sequence[ScanJob]) -> List[ScanJob]:
        """Filtered and sorted jobs, all pages."""
        filtered = [job for job in jobs if self.matches(job)]
        return sorted(
            filtered,
            key=lambda job: _sort_value(job, self.sort_key),
            reverse=self.sort_direction is SortDirection.DESCENDING,
        )

    def page_count(self, jobs: Sequence[ScanJob]) -> int:
        return math.ceil(len(self.apply(jobs)) / self.page_size)

    def set_page(self, page: int) -> None:
        self.current_page = max(1, int(page))

    def page(self, jobs: Sequence[ScanJob]) -> Page:
        ordered = self.apply(jobs)
        start = (self.current_page - 1) * self.page_size
        return Page(
            items=ordered[start:start + self.page_size],
            page=self.current_page,
            page_size=self.page_size,
            page_count=math.ceil(len(ordered) / self.page_size),
            total=len(ordered),
        )

    # -- selection -----------------------------------------------------

    def toggle_selection(self, job_id: str) -> bool:
        """Flip membership of `job_id`; returns True if it is now selected."""
        if job_id in self.selected_ids:
            self.selected_ids.discard(job_id)
            return False
        self.selected_ids.add(job_id)
        return True

    def is_selected(self, job_id: str) -> bool:
        return job_id in self.selected_ids

    def clear_selection(self) -> None:
        self.selected_ids.clear()

    def selected_jobs(self, jobs: Sequence[ScanJob]) -> List[ScanJob]:
        """Selected jobs from the full collection, regardless of filters."""
        return [job for job in jobs if job.id in self.selected_ids]
