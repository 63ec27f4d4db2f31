import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.exceptions import (
    AppError, AttemptsExhausted, IncompleteExamExists, NoSubscription, SubscriptionExpired
)
from app.crud.exam_attempt import exam_attempt as crud_exam_attempt
from app.crud.subscription import user_subscription as crud_user_subscription
from app.models.subscription import UserSubscription
from app.schemas.user import User

logger = logging.getLogger(__name__)


@dataclass
class EntitlementDecision:
    allowed: bool
    subscription: Optional[UserSubscription] = None
    error: Optional[AppError] = None
    warning: Optional[str] = None
    bypassed: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> Optional[str]:
        return self.error.code if self.error else None


class EntitlementService:
    """Decides whether a user may start an exam, and consumes attempts."""

    def __init__(self, clock: Callable = utcnow):
        self.clock = clock

    def evaluate(self, db: Session, user: User, check_incomplete: bool = True) -> EntitlementDecision:
        if user.is_admin:
            return EntitlementDecision(allowed=True, bypassed=True)

        now = self.clock()
        subscription = crud_user_subscription.get_latest_active(db, user_id=user.id)
        if not subscription:
            return EntitlementDecision(allowed=False, error=NoSubscription())

        if subscription.end_date < now:
            crud_user_subscription.deactivate(db, db_obj=subscription)
            db.commit()
            logger.info(f"Subscription {subscription.id} of user {user.id} expired on {subscription.end_date}")
            details = {"end_date": subscription.end_date.isoformat()}
            return EntitlementDecision(
                allowed=False, subscription=subscription,
                error=SubscriptionExpired(**details), details=details
            )

        plan = subscription.plan
        details = {
            "subscription_id": subscription.id,
            "plan_type": plan.type,
            "exam_limit": plan.exam_limit if not plan.is_unlimited else None,
            "attempts_used": subscription.exam_attempts_used,
            "attempts_remaining": subscription.attempts_remaining,
            "end_date": subscription.end_date.isoformat(),
        }

        if not plan.is_unlimited and subscription.exam_attempts_used >= plan.exam_limit:
            error = AttemptsExhausted(
                attempts_used=subscription.exam_attempts_used, exam_limit=plan.exam_limit
            )
            return EntitlementDecision(allowed=False, subscription=subscription, error=error, details=details)

        if check_incomplete:
            open_attempt = crud_exam_attempt.get_in_progress(db, user_id=user.id)
            if open_attempt:
                error = IncompleteExamExists(exam_attempt_id=open_attempt.id)
                return EntitlementDecision(allowed=False, subscription=subscription, error=error, details=details)

        warning = None
        remaining = subscription.attempts_remaining
        if remaining is not None and remaining <= settings.EXAM_LOW_ATTEMPTS_WARNING:
            warning = f"Only {remaining} exam attempt(s) remaining."

        return EntitlementDecision(allowed=True, subscription=subscription, warning=warning, details=details)

    def check_can_start_exam(self, db: Session, user: User) -> EntitlementDecision:
        decision = self.evaluate(db, user)
        if not decision.allowed:
            raise decision.error
        return decision

    def consume_attempt(self, db: Session, subscription: UserSubscription) -> Optional[int]:
        """Take one attempt off the subscription; returns the attempts left (None if unlimited)."""
        plan = subscription.plan
        exam_limit = None if plan.is_unlimited else plan.exam_limit
        if not crud_user_subscription.increment_attempts_used(
            db, subscription_id=subscription.id, exam_limit=exam_limit
        ):
            raise AttemptsExhausted(attempts_used=exam_limit, exam_limit=exam_limit)
        db.refresh(subscription)
        return subscription.attempts_remaining


entitlement_service = EntitlementService()
