# readiness/errors.py
from typing import Optional


class ReadinessError(Exception):
    """Base class for errors surfaced to site visitors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReadinessError):
    """Form input rejected before any network call."""


class RemoteServiceError(ReadinessError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuditServiceError(RemoteServiceError):
    pass


class CrawlServiceError(RemoteServiceError):
    pass


class ExportAbortedError(ReadinessError):
    """Nothing could be placed in the report; no document was produced."""

    def __init__(self, message: str, reason: str = "no-sections"):
        super().__init__(message)
        self.reason = reason


class ExportInProgressError(ReadinessError):
    pass


class DuplicateUserError(ReadinessError):
    pass


class UserNotFoundError(ReadinessError):
    pass
