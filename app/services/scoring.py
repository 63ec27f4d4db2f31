from dataclasses import dataclass
from typing import Iterable

from app.models.exam_answer import ExamAnswer
from app.models.exam_attempt import ExamAttempt
from app.schemas.exam_attempt import ExamResult


@dataclass(frozen=True)
class ScoreSummary:
    correct: int
    incorrect: int
    unanswered: int


def score_answers(answers: Iterable[ExamAnswer]) -> ScoreSummary:
    correct = incorrect = unanswered = 0
    for answer in answers:
        if answer.user_answer is None:
            unanswered += 1
        elif answer.is_correct:
            correct += 1
        else:
            incorrect += 1
    return ScoreSummary(correct=correct, incorrect=incorrect, unanswered=unanswered)


def build_result(attempt: ExamAttempt, answers: Iterable[ExamAnswer], auto_submitted: bool = False) -> ExamResult:
    summary = score_answers(answers)
    return ExamResult(
        exam_attempt_id=attempt.id,
        score=attempt.score,
        total_questions=attempt.total_questions,
        passing_score=attempt.passing_score,
        passed=bool(attempt.passed),
        percentage=attempt.percentage or 0.0,
        correct_answers=summary.correct,
        incorrect_answers=summary.incorrect,
        unanswered=summary.unanswered,
        time_taken_minutes=attempt.time_taken_minutes or 0,
        auto_submitted=auto_submitted,
    )


def result_message(result: ExamResult) -> str:
    if result.passed:
        return (f"Congratulations! You passed with {result.score}/{result.total_questions} "
                f"({result.percentage}%).")
    return (f"You scored {result.score}/{result.total_questions}. "
            f"You need {result.passing_score} to pass. Keep practicing!")
