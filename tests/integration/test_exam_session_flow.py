import random
from datetime import timedelta
import pytest
from sqlalchemy.orm import Session

from app.core.constants import ExamAttemptStatusEnum
from app.core.exceptions import (
    AttemptsExhausted, ExamNotFound, IncompleteExamExists, InsufficientQuestions, InvalidAnswer,
    InvalidLanguage, QuestionNotInAttempt
)
from app.models.exam_answer import ExamAnswer
from app.models.exam_attempt import ExamAttempt
from app.models.question import Question
from app.services.entitlement import EntitlementService
from app.services.exam_session import ExamSessionService
from app.services.question_sampler import QuestionSampler
from tests.helpers.factories import context_for


@pytest.fixture
def exams(clock):
    return ExamSessionService(
        entitlement=EntitlementService(clock=clock),
        sampler=QuestionSampler(rng=random.Random(7)),
        clock=clock,
    )


@pytest.fixture
def candidate(user, plan_factory, subscription_factory):
    subscription = subscription_factory(user, plan_factory(exam_limit=5))
    return context_for(user), subscription


def _answers(db_session: Session, attempt_id: int):
    return (
        db_session.query(ExamAnswer)
        .filter(ExamAnswer.exam_attempt_id == attempt_id)
        .order_by(ExamAnswer.question_number)
        .all()
    )


def _wrong_letter(correct: str) -> str:
    return next(letter for letter in "abcd" if letter != correct)


def test_full_exam_lifecycle(db_session: Session, exams, candidate, seed_bank, clock):
    """Start, answer 15 of 20 correctly, submit, then review."""
    context, subscription = candidate
    seed_bank()

    session = exams.start(db_session, context, "EN")

    assert session.language == "en"
    assert session.status == ExamAttemptStatusEnum.IN_PROGRESS.value
    assert session.total_questions == 20
    assert session.picture_questions_count >= 4
    assert sorted(q.question_number for q in session.questions) == list(range(1, 21))
    assert len({q.question_id for q in session.questions}) == 20
    assert session.start_time == clock()
    assert session.deadline - session.start_time == timedelta(minutes=20)
    for question in session.questions:
        assert [option.letter for option in question.options] == ["a", "b", "c", "d"]
        assert question.user_answer is None

    db_session.refresh(subscription)
    assert subscription.exam_attempts_used == 1

    answers = _answers(db_session, session.exam_attempt_id)
    for index, answer in enumerate(answers):
        clock.advance(seconds=30)
        letter = answer.correct_answer if index < 15 else _wrong_letter(answer.correct_answer)
        response = exams.submit_answer(db_session, context, session.exam_attempt_id, answer.question_id, letter.upper())
        assert response.answered is True

    result = exams.submit(db_session, context, session.exam_attempt_id)

    assert result.score == 15
    assert result.passed is True
    assert result.correct_answers == 15
    assert result.incorrect_answers == 5
    assert result.unanswered == 0
    assert result.percentage == 75.0
    assert result.time_taken_minutes == 10
    assert result.auto_submitted is False

    review = exams.review(db_session, context, session.exam_attempt_id)
    assert review.score == 15
    assert len(review.questions) == 20
    assert sum(1 for q in review.questions if q.is_correct) == 15
    assert all(q.user_answer is not None for q in review.questions)

    stats = exams.get_stats(db_session, context)
    assert stats.total_exams == 1
    assert stats.passed_exams == 1
    assert stats.pass_rate == 100.0


def test_answers_can_be_changed_until_submit(db_session: Session, exams, candidate, seed_bank):
    context, _ = candidate
    seed_bank()
    session = exams.start(db_session, context, "en")
    answer = _answers(db_session, session.exam_attempt_id)[0]

    exams.submit_answer(db_session, context, session.exam_attempt_id, answer.question_id,
                        _wrong_letter(answer.correct_answer))
    exams.submit_answer(db_session, context, session.exam_attempt_id, answer.question_id, answer.correct_answer)

    result = exams.submit(db_session, context, session.exam_attempt_id)
    assert result.score == 1
    assert result.unanswered == 19
    assert result.passed is False


def test_attempts_run_out_at_the_plan_limit(db_session: Session, exams, candidate, seed_bank):
    """Five exams on a five-exam plan, then the sixth is refused."""
    context, subscription = candidate
    seed_bank()

    for _ in range(5):
        session = exams.start(db_session, context, "en")
        exams.submit(db_session, context, session.exam_attempt_id)

    with pytest.raises(AttemptsExhausted) as exc_info:
        exams.start(db_session, context, "en")

    assert exc_info.value.details == {"attempts_used": 5, "exam_limit": 5}
    db_session.refresh(subscription)
    assert subscription.exam_attempts_used == 5
    assert db_session.query(ExamAttempt).filter(ExamAttempt.user_id == context.user.id).count() == 5


def test_late_answer_auto_submits_the_exam(db_session: Session, exams, candidate, seed_bank, clock):
    context, _ = candidate
    seed_bank()
    session = exams.start(db_session, context, "en")
    answers = _answers(db_session, session.exam_attempt_id)
    for answer in answers[:13]:
        exams.submit_answer(db_session, context, session.exam_attempt_id, answer.question_id, answer.correct_answer)

    clock.advance(minutes=21)
    response = exams.submit_answer(
        db_session, context, session.exam_attempt_id, answers[13].question_id, answers[13].correct_answer
    )

    assert response.answered is False
    assert response.auto_submitted is True
    assert response.result.score == 13
    assert response.result.passed is True
    assert response.result.unanswered == 7

    attempt = db_session.get(ExamAttempt, session.exam_attempt_id)
    db_session.refresh(attempt)
    assert attempt.status == ExamAttemptStatusEnum.COMPLETED.value
    assert attempt.end_time == clock()
    assert attempt.end_time > attempt.deadline
    assert _answers(db_session, session.exam_attempt_id)[13].user_answer is None


def test_exam_at_exactly_the_time_limit_still_accepts_answers(db_session: Session, exams, candidate, seed_bank,
                                                             clock):
    context, _ = candidate
    seed_bank()
    session = exams.start(db_session, context, "en")
    answer = _answers(db_session, session.exam_attempt_id)[0]

    clock.advance(minutes=20)
    response = exams.submit_answer(db_session, context, session.exam_attempt_id, answer.question_id, "a")

    assert response.answered is True


def test_second_submit_is_rejected(db_session: Session, exams, candidate, seed_bank):
    context, _ = candidate
    seed_bank()
    session = exams.start(db_session, context, "en")

    first = exams.submit(db_session, context, session.exam_attempt_id)
    with pytest.raises(ExamNotFound):
        exams.submit(db_session, context, session.exam_attempt_id)

    attempt = db_session.get(ExamAttempt, session.exam_attempt_id)
    assert attempt.score == first.score


def test_answering_after_submit_is_rejected(db_session: Session, exams, candidate, seed_bank):
    context, _ = candidate
    seed_bank()
    session = exams.start(db_session, context, "en")
    answer = _answers(db_session, session.exam_attempt_id)[0]
    exams.submit(db_session, context, session.exam_attempt_id)

    with pytest.raises(ExamNotFound):
        exams.submit_answer(db_session, context, session.exam_attempt_id, answer.question_id, "a")


def test_open_exam_blocks_a_second_start(db_session: Session, exams, candidate, seed_bank):
    context, subscription = candidate
    seed_bank()
    session = exams.start(db_session, context, "en")

    with pytest.raises(IncompleteExamExists) as exc_info:
        exams.start(db_session, context, "en")

    assert exc_info.value.details == {"exam_attempt_id": session.exam_attempt_id}
    db_session.refresh(subscription)
    assert subscription.exam_attempts_used == 1


def test_invalid_input_is_rejected(db_session: Session, exams, candidate, seed_bank):
    context, subscription = candidate
    seed_bank()

    with pytest.raises(InvalidLanguage):
        exams.start(db_session, context, "de")

    session = exams.start(db_session, context, "en")
    answer = _answers(db_session, session.exam_attempt_id)[0]
    with pytest.raises(InvalidAnswer):
        exams.submit_answer(db_session, context, session.exam_attempt_id, answer.question_id, "e")
    with pytest.raises(QuestionNotInAttempt):
        exams.submit_answer(db_session, context, session.exam_attempt_id, 999999, "a")


def test_other_users_cannot_touch_an_exam(db_session: Session, exams, candidate, seed_bank, user_factory):
    context, _ = candidate
    seed_bank()
    session = exams.start(db_session, context, "en")
    stranger = context_for(user_factory())

    with pytest.raises(ExamNotFound):
        exams.get_attempt(db_session, stranger, session.exam_attempt_id)
    with pytest.raises(ExamNotFound):
        exams.submit(db_session, stranger, session.exam_attempt_id)


def test_review_requires_a_completed_exam(db_session: Session, exams, candidate, seed_bank):
    context, _ = candidate
    seed_bank()
    session = exams.start(db_session, context, "en")

    with pytest.raises(ExamNotFound) as exc_info:
        exams.review(db_session, context, session.exam_attempt_id)

    assert exc_info.value.message == "Completed exam not found."


def test_insufficient_bank_consumes_nothing(db_session: Session, exams, candidate, seed_bank):
    context, subscription = candidate
    seed_bank(pictures=4, texts=10)

    with pytest.raises(InsufficientQuestions):
        exams.start(db_session, context, "en")

    db_session.refresh(subscription)
    assert subscription.exam_attempts_used == 0
    assert db_session.query(ExamAttempt).count() == 0


def test_recently_seen_questions_are_avoided(db_session: Session, exams, candidate, seed_bank):
    context, _ = candidate
    seed_bank(pictures=8, texts=32)

    first = exams.start(db_session, context, "en")
    exams.submit(db_session, context, first.exam_attempt_id)
    second = exams.start(db_session, context, "en")

    first_ids = {q.question_id for q in first.questions}
    second_ids = {q.question_id for q in second.questions}
    assert first_ids.isdisjoint(second_ids)


def test_starting_an_exam_counts_question_usage(db_session: Session, exams, candidate, seed_bank):
    context, _ = candidate
    seed_bank()

    session = exams.start(db_session, context, "en")

    used = db_session.query(Question).filter(Question.usage_count == 1).count()
    assert used == session.total_questions


def test_admin_exams_do_not_consume_attempts(db_session: Session, exams, admin_user, seed_bank):
    context = context_for(admin_user)
    seed_bank()

    session = exams.start(db_session, context, "en")
    with pytest.raises(IncompleteExamExists):
        exams.start(db_session, context, "en")
    result = exams.submit(db_session, context, session.exam_attempt_id)

    assert result.total_questions == 20


def test_submit_that_loses_to_an_auto_submit(db_session: Session, session_factory, exams, candidate, seed_bank,
                                             clock, monkeypatch):
    """A late answer on another connection grades the exam between load and submit."""
    context, _ = candidate
    seed_bank()
    session = exams.start(db_session, context, "en")
    late_answer = _answers(db_session, session.exam_attempt_id)[0]
    clock.advance(minutes=21)

    load_attempt = exams._require_attempt
    raced = []

    def load_then_race(db, ctx, attempt_id, **kwargs):
        attempt = load_attempt(db, ctx, attempt_id, **kwargs)
        if not raced:
            raced.append(True)
            other = session_factory()
            try:
                response = exams.submit_answer(other, ctx, attempt_id, late_answer.question_id, "a")
                assert response.auto_submitted is True
            finally:
                other.close()
        return attempt

    monkeypatch.setattr(exams, "_require_attempt", load_then_race)

    with pytest.raises(ExamNotFound):
        exams.submit(db_session, context, session.exam_attempt_id)

    db_session.expire_all()
    attempt = db_session.get(ExamAttempt, session.exam_attempt_id)
    assert attempt.status == ExamAttemptStatusEnum.COMPLETED.value
    assert attempt.end_time == clock()
    assert attempt.score == 0
