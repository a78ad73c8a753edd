"""Custom exception classes for the assessment engine."""

from datetime import datetime
from typing import Optional


class BaseAssessmentException(Exception):
    """Base exception for all application-specific errors."""
    pass

class ConfigError(BaseAssessmentException):
    """Error related to configuration loading or values."""
    pass

class APIError(BaseAssessmentException):
    """Error interacting with the repository hosting API."""
    def __init__(self, message: str, status_code: int | None = None, service: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.service = service

    def __str__(self) -> str:
        base = super().__str__()
        details = []
        if self.service:
            details.append(f"Service: {self.service}")
        if self.status_code:
            details.append(f"Status Code: {self.status_code}")
        if details:
            return f"{base} ({', '.join(details)})"
        return base

class UpstreamUnavailable(APIError):
    """The hosting API could not be reached at all (network failure, timeout)."""
    pass

class PolicyRejection(BaseAssessmentException):
    """A submission arrived after the grace deadline and must not be scored."""
    def __init__(self, submitted_at: datetime, deadline: Optional[datetime], grace_deadline: Optional[datetime]):
        super().__init__("Deadline has passed. The grace period has expired.")
        self.submitted_at = submitted_at
        self.deadline = deadline
        self.grace_deadline = grace_deadline

    def __str__(self) -> str:
        base = super().__str__()
        if self.grace_deadline:
            return f"{base} (submitted {self.submitted_at.isoformat()}, grace ended {self.grace_deadline.isoformat()})"
        return base

class MalformedInput(BaseAssessmentException):
    """Input is structurally invalid (bad answer key, bad deadline window)."""
    pass

class InvalidDeadlineWindow(MalformedInput, ValueError):
    """The deadline precedes the availability instant."""
    pass

class InvalidAnswerKey(MalformedInput):
    """A question does not have exactly one option flagged correct."""
    def __init__(self, question_id: str, correct_count: int):
        super().__init__(
            f"Question {question_id} must have exactly one correct option, found {correct_count}."
        )
        self.question_id = question_id
        self.correct_count = correct_count

class CertificateIneligible(BaseAssessmentException):
    """Raised when issuance is requested for a student who does not qualify."""
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

