"""Deadline windows, grace periods and late-submission classification.

Every assignment opens at ``available_at`` and may close at ``deadline``. When
a deadline exists, a grace window of the same length follows it: submissions
inside the grace window are accepted at reduced credit, anything after it is
rejected outright.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

import config
from utils.logger import get_logger
from utils.error_handler import InvalidDeadlineWindow, PolicyRejection

logger = get_logger()


class SubmissionTiming(str, Enum):
    ON_TIME = "on_time"
    LATE = "late"
    CLOSED = "closed"


@dataclass(frozen=True)
class DeadlineWindow:
    available_at: datetime
    deadline: Optional[datetime] = None
    grace_deadline: Optional[datetime] = None

    @property
    def grace_duration(self) -> Optional[timedelta]:
        if self.deadline is None or self.grace_deadline is None:
            return None
        return self.grace_deadline - self.deadline

    def classify(self, submitted_at: datetime) -> SubmissionTiming:
        return classify_submission(self, submitted_at)

    def time_remaining(self, now: datetime) -> Optional[timedelta]:
        """Time left until the next boundary (deadline, then grace deadline).

        Returns None when there is no deadline, and a zero delta once the
        window is closed.
        """
        if self.deadline is None:
            return None
        _require_comparable(now, self.deadline, "current time and deadline")
        if now <= self.deadline:
            return self.deadline - now
        if self.grace_deadline is not None and now <= self.grace_deadline:
            return self.grace_deadline - now
        return timedelta(0)


def _is_aware(instant: datetime) -> bool:
    return instant.tzinfo is not None and instant.utcoffset() is not None


def _require_comparable(first: datetime, second: datetime, what: str):
    """Raises InvalidDeadlineWindow when one instant carries a UTC offset and the other does not."""
    if _is_aware(first) != _is_aware(second):
        raise InvalidDeadlineWindow(
            f"Cannot compare {what}: {first.isoformat()} and {second.isoformat()} mix timezone-aware and naive times"
        )


def default_available_at(now: Optional[datetime] = None) -> datetime:
    """Today at local noon."""
    now = now or datetime.now()
    return now.replace(hour=config.DEFAULT_AVAILABLE_HOUR, minute=0, second=0, microsecond=0)


def compute_deadline_window(
    available_at: Optional[datetime] = None,
    deadline: Optional[datetime] = None,
) -> DeadlineWindow:
    """Builds the availability/deadline/grace window for an assignment.

    The grace deadline is ``deadline + (deadline - available_at)``: the second
    window always lasts exactly as long as the first.

    Args:
        available_at: When the assignment opens. Defaults to today at noon,
            in the deadline's timezone when the deadline is timezone-aware.
        deadline: Optional deadline. Without it nothing is ever late.

    Raises:
        InvalidDeadlineWindow: If the deadline precedes ``available_at``, or
            only one of the two is timezone-aware.
    """
    if available_at is None:
        tz = deadline.tzinfo if deadline is not None else None
        available_at = default_available_at(datetime.now(tz))

    if deadline is None:
        return DeadlineWindow(available_at=available_at)

    _require_comparable(available_at, deadline, "availability and deadline")
    if deadline < available_at:
        raise InvalidDeadlineWindow(
            f"Deadline {deadline.isoformat()} is before availability {available_at.isoformat()}"
        )

    grace_deadline = deadline + (deadline - available_at)
    logger.debug(f"Deadline window: open {available_at}, due {deadline}, grace until {grace_deadline}")
    return DeadlineWindow(available_at=available_at, deadline=deadline, grace_deadline=grace_deadline)


def classify_submission(window: Optional[DeadlineWindow], submitted_at: datetime) -> SubmissionTiming:
    if window is None or window.deadline is None:
        return SubmissionTiming.ON_TIME
    _require_comparable(submitted_at, window.deadline, "submission and deadline")
    if submitted_at <= window.deadline:
        return SubmissionTiming.ON_TIME
    if window.grace_deadline is not None and submitted_at <= window.grace_deadline:
        return SubmissionTiming.LATE
    return SubmissionTiming.CLOSED


def ensure_accepting(window: Optional[DeadlineWindow], submitted_at: datetime) -> SubmissionTiming:
    """Classifies a submission and rejects it when the window is closed.

    Raises:
        PolicyRejection: If ``submitted_at`` is past the grace deadline.
    """
    timing = classify_submission(window, submitted_at)
    if timing is SubmissionTiming.CLOSED:
        logger.info(f"Rejecting submission at {submitted_at.isoformat()}: grace period expired.")
        raise PolicyRejection(submitted_at, window.deadline, window.grace_deadline)
    return timing
