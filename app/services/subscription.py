import logging
import math
from datetime import timedelta
from typing import Callable, List, Optional, Union
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.constants import PaymentTypeEnum
from app.core.exceptions import PlanNotFound
from app.crud.subscription import (
    subscription_plan as crud_subscription_plan, user_subscription as crud_user_subscription
)
from app.models.payment import Payment
from app.schemas.subscription import (
    ActiveSubscription, EntitlementStatus, LocalizedSubscriptionPlan, SubscriptionPlan,
    SubscriptionPurchaseRequest, UserSubscription
)
from app.schemas.user import UserContext
from app.services.entitlement import EntitlementService, entitlement_service
from app.services.exam_session import parse_language
from app.services.payment import PaymentService, payment_service

logger = logging.getLogger(__name__)


class SubscriptionService:

    def __init__(self, entitlement: Optional[EntitlementService] = None,
                 payments: Optional[PaymentService] = None, clock: Callable = utcnow):
        self.entitlement = entitlement or entitlement_service
        self.payments = payments or payment_service
        self.clock = clock

    def list_plans(self, db: Session, language: Optional[str] = None) -> List[Union[SubscriptionPlan, LocalizedSubscriptionPlan]]:
        plans = crud_subscription_plan.get_active_plans(db)
        if not language:
            return [SubscriptionPlan.model_validate(plan) for plan in plans]

        language = parse_language(language)
        return [
            LocalizedSubscriptionPlan(
                id=plan.id,
                type=plan.type,
                name=plan.localized("name", language),
                description=plan.localized("description", language),
                price=plan.price_for(language),
                currency=plan.currency,
                duration_days=plan.duration_days,
                exam_limit=plan.exam_limit,
                is_unlimited=plan.is_unlimited,
            )
            for plan in plans
        ]

    def get_active(self, db: Session, context: UserContext) -> Optional[ActiveSubscription]:
        now = self.clock()
        subscription = crud_user_subscription.get_valid(db, user_id=context.user.id, now=now)
        if not subscription:
            return None
        days_remaining = max(math.ceil((subscription.end_date - now).total_seconds() / 86400), 0)
        return ActiveSubscription(
            **UserSubscription.model_validate(subscription).model_dump(),
            days_remaining=days_remaining
        )

    def get_history(self, db: Session, context: UserContext, page: int = 1, size: int = 10) -> dict:
        result = crud_user_subscription.get_history_page(db, user_id=context.user.id, page=page, size=size)
        result["items"] = [UserSubscription.model_validate(item) for item in result["items"]]
        return result

    def eligibility(self, db: Session, context: UserContext) -> EntitlementStatus:
        decision = self.entitlement.evaluate(db, context.user)
        subscription = decision.subscription
        plan = subscription.plan if subscription else None
        return EntitlementStatus(
            allowed=decision.allowed,
            reason=decision.reason,
            message=decision.error.message if decision.error else None,
            subscription_id=subscription.id if subscription else None,
            plan_type=plan.type if plan else None,
            exam_limit=plan.exam_limit if plan and not plan.is_unlimited else None,
            attempts_used=subscription.exam_attempts_used if subscription else None,
            attempts_remaining=subscription.attempts_remaining if subscription else None,
            end_date=subscription.end_date if subscription else None,
            warning=decision.warning,
            details=decision.error.details if decision.error else {},
        )

    def purchase(self, db: Session, context: UserContext, request: SubscriptionPurchaseRequest) -> Payment:
        language = parse_language(request.language)
        plan = crud_subscription_plan.get_active_by_type(db, plan_type=request.plan_type)
        if not plan:
            raise PlanNotFound(plan_type=request.plan_type)
        amount = plan.price_for(language)
        if amount is None:
            raise PlanNotFound("This plan is not available in the selected language.", language=language)

        expiry_date = None
        if plan.duration_days:
            expiry_date = (self.clock() + timedelta(days=plan.duration_days)).isoformat()

        return self.payments.create_pending(
            db,
            user_id=context.user.id,
            payment_type=PaymentTypeEnum.SUBSCRIPTION,
            reference_id=plan.id,
            amount=amount,
            payment_method=request.payment_method,
            phone_number=request.phone_number,
            metadata={
                "plan_id": plan.id,
                "plan_type": plan.type,
                "language": language,
                "exam_limit": plan.exam_limit,
                "expiry_date": expiry_date,
            },
        )


subscription_service = SubscriptionService()
