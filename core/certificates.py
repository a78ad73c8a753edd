"""Course completion certificates and the policy violations that gate them."""

import random
import string
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol, Tuple

import config
from utils.logger import get_logger
from utils.error_handler import CertificateIneligible
from core.similarity import SimilarityResult, violation_severity

logger = get_logger()

STATUS_ISSUED = "issued"
STATUS_REVOKED = "revoked"

NOT_PASSING_REASON = "Student has not achieved a passing grade"
VIOLATIONS_REASON = "Student has unresolved policy violations"

PLAGIARISM = "plagiarism"

_BASE36 = string.digits + string.ascii_uppercase


@dataclass(frozen=True)
class ViolationRecord:
    student_id: str
    course_id: str
    violation_type: str
    severity: str = "warning"
    description: str = ""
    strike_count: int = 1
    resolved: bool = False


@dataclass(frozen=True)
class CertificateRecord:
    student_id: str
    course_id: str
    certificate_number: str
    final_score: float
    status: str = STATUS_ISSUED
    issued_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ISSUED


class CertificateStore(Protocol):
    """Persistence for certificates, supplied by the caller."""

    def find(self, student_id: str, course_id: str) -> Optional[CertificateRecord]:
        ...

    def create(self, record: CertificateRecord) -> CertificateRecord:
        ...

    def update(self, record: CertificateRecord) -> CertificateRecord:
        ...


def count_unresolved(
    violations: Iterable[ViolationRecord],
    student_id: str,
    course_id: str,
    violation_type: Optional[str] = None,
) -> int:
    return sum(
        1 for v in violations
        if v.student_id == student_id and v.course_id == course_id and not v.resolved
        and (violation_type is None or v.violation_type == violation_type)
    )


def build_plagiarism_violation(
    existing_violations: Iterable[ViolationRecord],
    student_id: str,
    course_id: str,
    result: SimilarityResult,
) -> ViolationRecord:
    """Builds the violation to record for a flagged similarity result.

    Each unresolved plagiarism violation the student already has in the course
    counts as one strike; the new record is the next strike. Severity follows
    the similarity score.
    """
    strikes = count_unresolved(existing_violations, student_id, course_id, PLAGIARISM)
    violation = ViolationRecord(
        student_id=student_id,
        course_id=course_id,
        violation_type=PLAGIARISM,
        severity=violation_severity(result.score),
        description=(
            f"Code similarity: {result.score:g}% - "
            f"Matched against {len(result.matched_source_ids)} submission(s)"
        ),
        strike_count=strikes + 1,
    )
    logger.warning(f"Plagiarism strike {violation.strike_count} for {student_id} in {course_id}: {violation.description}")
    return violation


def eligibility_reason(overall_score: float, unresolved_violation_count: int) -> Optional[str]:
    """Why a student is not eligible, or None when they are."""
    if overall_score < config.CERTIFICATE_PASSING_SCORE:
        return NOT_PASSING_REASON
    if unresolved_violation_count >= config.CERTIFICATE_VIOLATION_LIMIT:
        return VIOLATIONS_REASON
    return None


def check_certificate_eligibility(overall_score: float, unresolved_violation_count: int) -> bool:
    """A certificate needs an overall score of at least 70 and fewer than 3 unresolved violations."""
    return eligibility_reason(overall_score, unresolved_violation_count) is None


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding needs a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_certificate_number(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    """Returns ``DC-<epoch millis in base36>-<6 random base36 chars>``, upper-case."""
    now = now or datetime.now(timezone.utc)
    rng = rng or random.SystemRandom()
    millis = int(now.timestamp() * 1000)
    suffix = "".join(rng.choice(_BASE36) for _ in range(6))
    return f"{config.CERTIFICATE_PREFIX}-{to_base36(millis)}-{suffix}"


def issue_certificate(
    store: CertificateStore,
    student_id: str,
    course_id: str,
    overall_score: float,
    unresolved_violation_count: int,
    now: Optional[datetime] = None,
) -> CertificateRecord:
    """Issues a certificate, or returns the one already issued for this student and course.

    Raises:
        CertificateIneligible: If the score or violation count rules it out.
    """
    existing = store.find(student_id, course_id)
    if existing is not None:
        logger.info(f"Certificate already issued to {student_id} for {course_id}: {existing.certificate_number}")
        return existing

    reason = eligibility_reason(overall_score, unresolved_violation_count)
    if reason:
        logger.info(f"Certificate refused for {student_id}/{course_id}: {reason}")
        raise CertificateIneligible(reason)

    now = now or datetime.now(timezone.utc)
    record = CertificateRecord(
        student_id=student_id,
        course_id=course_id,
        certificate_number=generate_certificate_number(now),
        final_score=overall_score,
        status=STATUS_ISSUED,
        issued_at=now,
    )
    created = store.create(record)
    logger.info(f"Issued certificate {created.certificate_number} to {student_id} for {course_id}")
    return created


def revoke_certificate(store: CertificateStore, record: CertificateRecord, reason: str) -> Tuple[CertificateRecord, ViolationRecord]:
    """Marks a certificate revoked and returns the critical violation to record for it."""
    revoked = store.update(replace(record, status=STATUS_REVOKED))
    violation = ViolationRecord(
        student_id=record.student_id,
        course_id=record.course_id,
        violation_type="policy_violation",
        severity="critical",
        description=f"Certificate revoked: {reason}",
    )
    logger.warning(f"Revoked certificate {record.certificate_number}: {reason}")
    return revoked, violation
