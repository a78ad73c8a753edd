"""Scores quiz and exam submissions against their answer keys."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import config
from utils.logger import get_logger
from utils.error_handler import InvalidAnswerKey
from core.deadlines import DeadlineWindow, SubmissionTiming, ensure_accepting

logger = get_logger()


@dataclass(frozen=True)
class AnswerOption:
    id: str
    is_correct: bool = False


@dataclass(frozen=True)
class Question:
    id: str
    options: Tuple[AnswerOption, ...] = ()
    # None falls back to config.DEFAULT_QUESTION_POINTS
    points: Optional[int] = None

    @property
    def point_value(self) -> int:
        return config.DEFAULT_QUESTION_POINTS if self.points is None else self.points

    @property
    def correct_option_ids(self) -> Tuple[str, ...]:
        return tuple(option.id for option in self.options if option.is_correct)


@dataclass(frozen=True)
class GradingPolicy:
    """Per-assessment grading settings."""
    passing_threshold: int = config.PASSING_THRESHOLD
    late_ceiling: int = config.LATE_SCORE_CEILING


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    selected_option_id: Optional[str]
    is_correct: bool
    points_awarded: int


@dataclass(frozen=True)
class ScoreResult:
    earned_points: int
    total_points: int
    percentage: int
    passed: bool
    per_question: Tuple[QuestionResult, ...] = field(default_factory=tuple)
    timing: SubmissionTiming = SubmissionTiming.ON_TIME
    max_score_percentage: int = 100

    @property
    def is_late(self) -> bool:
        return self.timing is SubmissionTiming.LATE


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def validate_question(question: Question) -> Question:
    """Checks that exactly one option is flagged correct.

    Meant for question authoring; grading itself tolerates imperfect keys.

    Raises:
        InvalidAnswerKey: If zero or several options are flagged correct.
    """
    correct = len(question.correct_option_ids)
    if correct != 1:
        raise InvalidAnswerKey(question.id, correct)
    return question


def validate_questions(questions: Iterable[Question]) -> List[Question]:
    return [validate_question(q) for q in questions]


def grade_answers(
    questions: Sequence[Question],
    submitted_answers: Mapping[str, Optional[str]],
    submitted_at: Optional[datetime] = None,
    window: Optional[DeadlineWindow] = None,
    policy: Optional[GradingPolicy] = None,
) -> ScoreResult:
    """Scores a submission. All-or-nothing per question, no partial credit.

    Args:
        questions: Ordered question set with the answer key.
        submitted_answers: Question id -> selected option id. Omitted
            questions count as incorrect.
        submitted_at: Submission instant. Defaults to now.
        window: Deadline window of the assessment, if any. Exams are graded
            without one and are never late.
        policy: Passing threshold and late ceiling. Defaults from config.

    Returns:
        The ScoreResult for the submission.

    Raises:
        PolicyRejection: If the submission is past the grace deadline.
    """
    policy = policy or GradingPolicy()
    if submitted_at is None:
        tz = window.deadline.tzinfo if window is not None and window.deadline is not None else None
        submitted_at = datetime.now(tz)
    timing = ensure_accepting(window, submitted_at)

    earned = 0
    total = 0
    results: List[QuestionResult] = []
    for question in questions:
        points = question.point_value
        total += points
        selected = submitted_answers.get(question.id)
        is_correct = selected is not None and selected in question.correct_option_ids
        if is_correct:
            earned += points
        results.append(QuestionResult(question.id, selected, is_correct, points if is_correct else 0))

    if total > 0:
        percentage = round_half_up(earned / total * 100)
    else:
        logger.warning("Assessment has no points defined; scoring as 0%.")
        percentage = 0

    max_score_percentage = 100
    if timing is SubmissionTiming.LATE:
        max_score_percentage = policy.late_ceiling
        percentage = round_half_up(percentage * policy.late_ceiling / 100)

    percentage = min(100, max(0, percentage))
    passed = percentage >= policy.passing_threshold
    logger.debug(f"Graded {len(results)} questions: {earned}/{total} points, {percentage}% ({timing.value})")

    return ScoreResult(
        earned_points=earned,
        total_points=total,
        percentage=percentage,
        passed=passed,
        per_question=tuple(results),
        timing=timing,
        max_score_percentage=max_score_percentage,
    )
