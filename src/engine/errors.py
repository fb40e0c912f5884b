"""
Exception taxonomy for the scan core.
"""

from typing import Optional


class ScanError(Exception):
    """Base class for every error raised by the scan core."""


class AnalysisError(ScanError):
    """The audit service could not produce a result for an address."""

    def __init__(self, message: str, address: Optional[str] = None):
        super().__init__(message)
        self.address = address


class NotificationError(ScanError):
    """A task could not be created in an integration target."""

    def __init__(self, message: str, target_name: Optional[str] = None):
        super().__init__(message)
        self.target_name = target_name


class InvalidTransitionError(ScanError):
    def __init__(self, job_id: str, current, requested):
        super().__init__(f"Scan job {job_id} cannot move from {current.value} to {requested.value}")
        self.job_id = job_id
        self.current = current
        self.requested = requested


class ScanNotFoundError(ScanError):
    def __init__(self, job_id: str):
        super().__init__(f"Scan job {job_id} not found")
        self.job_id = job_id


class InsufficientSelectionError(ScanError):
    """Comparison needs at least two completed scans."""


class IntegrationError(ScanError):
    pass
