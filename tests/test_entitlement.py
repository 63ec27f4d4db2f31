import pytest
from datetime import datetime, timedelta
from sqlalchemy.orm import Session

from app.core.exceptions import AttemptsExhausted, IncompleteExamExists, NoSubscription, SubscriptionExpired
from app.models.exam_attempt import ExamAttempt
from app.services.entitlement import EntitlementService
from tests.helpers.factories import context_for


@pytest.fixture
def entitlement(clock):
    return EntitlementService(clock=clock)


def test_no_subscription_is_rejected(db_session: Session, user, entitlement):
    with pytest.raises(NoSubscription) as exc_info:
        entitlement.check_can_start_exam(db_session, context_for(user).user)
    assert exc_info.value.status_code == 403


def test_expired_subscription_is_flipped_inactive(db_session: Session, user, plan_factory, subscription_factory,
                                                  entitlement, clock):
    subscription = subscription_factory(user, plan_factory(), end_date=clock() - timedelta(minutes=1))

    with pytest.raises(SubscriptionExpired):
        entitlement.check_can_start_exam(db_session, context_for(user).user)

    db_session.refresh(subscription)
    assert subscription.is_active is False
    with pytest.raises(NoSubscription):
        entitlement.check_can_start_exam(db_session, context_for(user).user)


def test_one_attempt_left_is_allowed(db_session: Session, user, plan_factory, subscription_factory, entitlement):
    subscription = subscription_factory(user, plan_factory(exam_limit=5), used=4)

    decision = entitlement.check_can_start_exam(db_session, context_for(user).user)

    assert decision.allowed is True
    assert decision.subscription.id == subscription.id
    assert decision.warning is not None


def test_used_equal_to_limit_is_exhausted(db_session: Session, user, plan_factory, subscription_factory, entitlement):
    subscription_factory(user, plan_factory(exam_limit=5), used=5)

    with pytest.raises(AttemptsExhausted) as exc_info:
        entitlement.check_can_start_exam(db_session, context_for(user).user)

    assert exc_info.value.details == {"attempts_used": 5, "exam_limit": 5}


@pytest.mark.parametrize("exam_limit", [None, 0])
def test_unlimited_plan_never_runs_out(db_session: Session, user, plan_factory, subscription_factory, entitlement,
                                       exam_limit):
    subscription = subscription_factory(user, plan_factory(exam_limit=exam_limit, duration_days=30), used=500)

    decision = entitlement.check_can_start_exam(db_session, context_for(user).user)
    remaining = entitlement.consume_attempt(db_session, decision.subscription)
    db_session.commit()

    assert remaining is None
    db_session.refresh(subscription)
    assert subscription.exam_attempts_used == 501


def test_in_progress_attempt_blocks_a_new_one(db_session: Session, user, plan_factory, subscription_factory,
                                              entitlement):
    subscription_factory(user, plan_factory())
    attempt = ExamAttempt(
        user_id=user.id, language="en", start_time=datetime.utcnow(), time_limit_minutes=20,
        total_questions=20, picture_questions_count=4, passing_score=12
    )
    db_session.add(attempt)
    db_session.commit()

    with pytest.raises(IncompleteExamExists) as exc_info:
        entitlement.check_can_start_exam(db_session, context_for(user).user)

    assert exc_info.value.details == {"exam_attempt_id": attempt.id}
    assert exc_info.value.code == "INCOMPLETE_EXAM"


def test_admin_bypasses_every_check(db_session: Session, admin_user, entitlement):
    decision = entitlement.check_can_start_exam(db_session, context_for(admin_user).user)

    assert decision.allowed is True
    assert decision.bypassed is True
    assert decision.subscription is None


def test_consume_attempt_stops_at_the_limit(db_session: Session, user, plan_factory, subscription_factory,
                                            entitlement):
    subscription = subscription_factory(user, plan_factory(exam_limit=2), used=1)

    assert entitlement.consume_attempt(db_session, subscription) == 0
    with pytest.raises(AttemptsExhausted):
        entitlement.consume_attempt(db_session, subscription)
    db_session.commit()

    db_session.refresh(subscription)
    assert subscription.exam_attempts_used == 2


def test_evaluate_reports_the_reason_without_raising(db_session: Session, user, plan_factory, subscription_factory,
                                                    entitlement):
    subscription_factory(user, plan_factory(exam_limit=3), used=3)

    decision = entitlement.evaluate(db_session, context_for(user).user)

    assert decision.allowed is False
    assert decision.reason == "ATTEMPTS_EXHAUSTED"
    assert decision.details["attempts_remaining"] == 0
