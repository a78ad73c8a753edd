"""Daily and course-level score roll-ups.

Both roll-ups are recomputed from the complete set of graded records every
time; nothing here is maintained incrementally.
"""

from dataclasses import dataclass, replace
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import config
from utils.logger import get_logger
from core.answer_key import round_half_up

logger = get_logger()


@dataclass(frozen=True)
class DailyProgress:
    student_id: str
    module_id: str
    day_number: int
    course_id: Optional[str] = None
    lecture_completed: bool = False
    quiz_score: Optional[float] = None
    lab_score: Optional[float] = None

    @property
    def overall_day_score(self) -> float:
        return compute_daily_score(self.quiz_score, self.lab_score)

    @property
    def key(self) -> Tuple[str, str, int]:
        return (self.student_id, self.module_id, self.day_number)


@dataclass(frozen=True)
class ProgressStats:
    total_days: int
    completed_lectures: int
    avg_quiz_score: int
    avg_lab_score: int
    overall_score: int
    quiz_count: int
    lab_count: int


@dataclass(frozen=True)
class CourseScore:
    overall_score: float
    is_passing: bool
    exam_mean: float


@dataclass(frozen=True)
class CourseGradeSummary:
    student_id: str
    course_id: str
    lab_score: float
    quiz_score: float
    exam_scores: Tuple[float, ...]
    overall_score: float
    is_passing: bool


def average(values: Iterable[Optional[float]]) -> float:
    """Mean over the non-None values; 0 for an empty set."""
    present = [v for v in values if v is not None]
    if not present:
        return 0.0
    return sum(present) / len(present)


def compute_daily_score(quiz: Optional[float] = None, lab: Optional[float] = None) -> float:
    """40% quiz + 60% lab, rounded to 2 decimals. A missing component counts as 0."""
    quiz = quiz if quiz is not None else 0.0
    lab = lab if lab is not None else 0.0
    return round(quiz * config.DAILY_QUIZ_WEIGHT + lab * config.DAILY_LAB_WEIGHT, 2)


def compute_course_score(
    lab: Optional[float],
    quiz: Optional[float],
    exam1: Optional[float] = None,
    exam2: Optional[float] = None,
    exam3: Optional[float] = None,
    exam4: Optional[float] = None,
) -> CourseScore:
    """42% labs + 28% quizzes + 30% mean of the four exam slots.

    An exam slot that was never taken counts as 0 in the mean.
    """
    exams = [exam1, exam2, exam3, exam4]
    exam_mean = sum(e if e is not None else 0.0 for e in exams) / config.EXAM_SLOTS
    overall = round(
        (lab or 0.0) * config.COURSE_LAB_WEIGHT
        + (quiz or 0.0) * config.COURSE_QUIZ_WEIGHT
        + exam_mean * config.COURSE_EXAM_WEIGHT,
        2,
    )
    return CourseScore(
        overall_score=overall,
        is_passing=overall >= config.COURSE_PASSING_SCORE,
        exam_mean=exam_mean,
    )


def build_course_summary(
    student_id: str,
    course_id: str,
    lab_scores: Iterable[Optional[float]],
    quiz_scores: Iterable[Optional[float]],
    exam_scores: Mapping[int, Optional[float]],
) -> CourseGradeSummary:
    """Recomputes a student's course summary from their graded records.

    Args:
        student_id: Student identifier.
        course_id: Course identifier.
        lab_scores: Scores of every graded lab submission.
        quiz_scores: Scores of every quiz submission.
        exam_scores: Exam slot number (1-4) -> latest score in that slot.
            Slots outside 1-4 are ignored.
    """
    lab = round(average(lab_scores), 2)
    quiz = round(average(quiz_scores), 2)
    slots = []
    for slot in range(1, config.EXAM_SLOTS + 1):
        score = exam_scores.get(slot)
        slots.append(float(score) if score is not None else 0.0)

    course = compute_course_score(lab, quiz, *slots)
    logger.debug(f"Course summary for {student_id}/{course_id}: lab={lab} quiz={quiz} exams={slots} -> {course.overall_score}")
    return CourseGradeSummary(
        student_id=student_id,
        course_id=course_id,
        lab_score=lab,
        quiz_score=quiz,
        exam_scores=tuple(slots),
        overall_score=course.overall_score,
        is_passing=course.is_passing,
    )


def upsert_daily_progress(
    rows: Sequence[DailyProgress],
    student_id: str,
    module_id: str,
    day_number: int,
    **updates,
) -> List[DailyProgress]:
    """Returns a new row list with the (student, module, day) row created or updated.

    Only the fields passed in ``updates`` change; at most one row exists per key.
    """
    key = (student_id, module_id, day_number)
    result: List[DailyProgress] = []
    found = False
    for row in rows:
        if row.key == key:
            if not found:
                result.append(replace(row, **updates))
                found = True
            # duplicate rows for the same key are dropped
            continue
        result.append(row)
    if not found:
        result.append(DailyProgress(student_id=student_id, module_id=module_id, day_number=day_number, **updates))
    return result


def summarize_progress(rows: Iterable[DailyProgress]) -> ProgressStats:
    rows = list(rows)
    quiz_scores = [r.quiz_score for r in rows if r.quiz_score is not None]
    lab_scores = [r.lab_score for r in rows if r.lab_score is not None]

    avg_quiz = round_half_up(average(quiz_scores))
    avg_lab = round_half_up(average(lab_scores))
    if quiz_scores or lab_scores:
        overall = round_half_up(avg_quiz * config.DAILY_QUIZ_WEIGHT + avg_lab * config.DAILY_LAB_WEIGHT)
    else:
        overall = 0

    return ProgressStats(
        total_days=len(rows),
        completed_lectures=sum(1 for r in rows if r.lecture_completed),
        avg_quiz_score=avg_quiz,
        avg_lab_score=avg_lab,
        overall_score=overall,
        quiz_count=len(quiz_scores),
        lab_count=len(lab_scores),
    )
