"""
Test: Answer-key grading, late ceiling and answer-key validation.
"""
from datetime import datetime, timedelta

import pytest

from core.answer_key import (
    AnswerOption, GradingPolicy, Question, grade_answers,
    round_half_up, validate_question, validate_questions,
)
from core.deadlines import SubmissionTiming, compute_deadline_window
from utils.error_handler import InvalidAnswerKey, PolicyRejection

OPEN = datetime(2024, 1, 1, 12, 0)
DUE = datetime(2024, 1, 3, 12, 0)


def answers(*correct_ids, wrong=()):
    selected = {qid: "a" for qid in correct_ids}
    selected.update({qid: "b" for qid in wrong})
    return selected


class TestGradeAnswers:
    def test_all_correct(self, four_questions):
        result = grade_answers(four_questions, answers("q1", "q2", "q3", "q4"))
        assert result.earned_points == 40
        assert result.total_points == 40
        assert result.percentage == 100
        assert result.passed

    def test_three_of_four_passes(self, four_questions):
        result = grade_answers(four_questions, answers("q1", "q2", "q3", wrong=("q4",)))
        assert result.percentage == 75
        assert result.passed

    def test_half_fails(self, four_questions):
        result = grade_answers(four_questions, answers("q1", "q2"))
        assert result.percentage == 50
        assert not result.passed

    def test_omitted_questions_are_incorrect(self, four_questions):
        result = grade_answers(four_questions, {})
        assert result.earned_points == 0
        assert all(not r.is_correct for r in result.per_question)
        assert all(r.selected_option_id is None for r in result.per_question)

    def test_per_question_results_in_order(self, four_questions):
        result = grade_answers(four_questions, answers("q2", wrong=("q1",)))
        assert [r.question_id for r in result.per_question] == ["q1", "q2", "q3", "q4"]
        assert [r.is_correct for r in result.per_question] == [False, True, False, False]
        assert result.per_question[1].points_awarded == 10

    def test_custom_point_values(self):
        questions = [
            Question("big", (AnswerOption("a", True), AnswerOption("b")), points=30),
            Question("small", (AnswerOption("a", True), AnswerOption("b"))),
        ]
        result = grade_answers(questions, {"big": "a", "small": "b"})
        assert (result.earned_points, result.total_points, result.percentage) == (30, 40, 75)

    def test_rounds_half_up(self):
        questions = [Question(f"q{i}", (AnswerOption("a", True),)) for i in range(8)]
        result = grade_answers(questions, {"q0": "a"})
        # 1/8 = 12.5%
        assert result.percentage == 13

    def test_two_thirds(self):
        questions = [Question(f"q{i}", (AnswerOption("a", True),)) for i in range(3)]
        assert grade_answers(questions, {"q0": "a", "q1": "a"}).percentage == 67

    def test_no_questions_scores_zero(self):
        result = grade_answers([], {})
        assert result.percentage == 0
        assert result.total_points == 0
        assert not result.passed

    def test_zero_point_questions_score_zero(self):
        questions = [Question("q1", (AnswerOption("a", True),), points=0)]
        assert grade_answers(questions, {"q1": "a"}).percentage == 0

    def test_any_flagged_option_matches(self):
        q = Question("q1", (AnswerOption("a", True), AnswerOption("b", True), AnswerOption("c")))
        assert grade_answers([q], {"q1": "b"}).percentage == 100

    def test_key_without_correct_option_never_matches(self):
        q = Question("q1", (AnswerOption("a"), AnswerOption("b")))
        assert grade_answers([q], {"q1": "a"}).percentage == 0

    def test_adding_a_correct_answer_never_lowers_score(self, four_questions):
        before = grade_answers(four_questions, answers("q1"))
        after = grade_answers(four_questions, answers("q1", "q2"))
        assert after.earned_points >= before.earned_points
        assert 0 <= after.percentage <= 100

    def test_custom_passing_threshold(self, four_questions):
        policy = GradingPolicy(passing_threshold=50)
        assert grade_answers(four_questions, answers("q1", "q2"), policy=policy).passed


class TestLateSubmissions:
    @pytest.fixture
    def window(self):
        return compute_deadline_window(OPEN, DUE)

    def test_on_time_keeps_full_score(self, four_questions, window):
        result = grade_answers(four_questions, answers("q1", "q2", "q3", "q4"), submitted_at=DUE, window=window)
        assert result.timing is SubmissionTiming.ON_TIME
        assert result.percentage == 100
        assert result.max_score_percentage == 100
        assert not result.is_late

    def test_late_full_marks_capped_at_ceiling(self, four_questions, window):
        late = DUE + timedelta(seconds=1)
        result = grade_answers(four_questions, answers("q1", "q2", "q3", "q4"), submitted_at=late, window=window)
        assert result.is_late
        assert result.percentage == 60
        assert result.max_score_percentage == 60
        # passed is evaluated after the late penalty
        assert not result.passed

    def test_late_score_scaled_by_ceiling(self, four_questions, window):
        late = DUE + timedelta(hours=5)
        result = grade_answers(four_questions, answers("q1", "q2", "q3"), submitted_at=late, window=window)
        assert result.percentage == 45

    def test_after_grace_is_rejected(self, four_questions, window):
        with pytest.raises(PolicyRejection):
            grade_answers(
                four_questions, answers("q1"),
                submitted_at=window.grace_deadline + timedelta(seconds=1), window=window,
            )

    def test_exam_without_window_is_never_late(self, four_questions):
        result = grade_answers(four_questions, answers("q1", "q2", "q3", "q4"), submitted_at=datetime(2099, 1, 1))
        assert result.timing is SubmissionTiming.ON_TIME
        assert result.percentage == 100


class TestValidateQuestion:
    def test_exactly_one_correct(self):
        q = Question("q1", (AnswerOption("a", True), AnswerOption("b")))
        assert validate_question(q) is q

    def test_no_correct_option(self):
        with pytest.raises(InvalidAnswerKey) as exc:
            validate_question(Question("q1", (AnswerOption("a"), AnswerOption("b"))))
        assert exc.value.correct_count == 0

    def test_several_correct_options(self):
        with pytest.raises(InvalidAnswerKey) as exc:
            validate_question(Question("q9", (AnswerOption("a", True), AnswerOption("b", True))))
        assert exc.value.question_id == "q9"
        assert exc.value.correct_count == 2

    def test_validate_questions(self, four_questions):
        assert validate_questions(four_questions) == four_questions


class TestRoundHalfUp:
    def test_half(self):
        assert round_half_up(12.5) == 13
        assert round_half_up(0.5) == 1

    def test_below_half(self):
        assert round_half_up(66.49) == 66
