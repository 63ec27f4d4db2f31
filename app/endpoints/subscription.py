from typing import List, Optional, Union
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.crud.base import PaginatedResponse
from app.schemas.payment import PaymentSchema
from app.schemas.response import APIResponse
from app.schemas.subscription import (
    ActiveSubscription, EntitlementStatus, LocalizedSubscriptionPlan, SubscriptionPlan,
    SubscriptionPurchaseRequest, UserSubscription
)
from app.schemas.user import UserContext
from app.services.subscription import subscription_service
from app.utils import deps

router = APIRouter()


@router.get("/plans", response_model=APIResponse[List[Union[LocalizedSubscriptionPlan, SubscriptionPlan]]])
def get_plans(
    db: Session = Depends(deps.get_db),
    language: Optional[str] = Query(None)
):
    plans = subscription_service.list_plans(db, language=language)
    return APIResponse(message="Subscription plans retrieved successfully", data=plans)


@router.get("/active", response_model=APIResponse[Optional[ActiveSubscription]])
def get_active_subscription(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    subscription = subscription_service.get_active(db, context)
    message = "Active subscription retrieved successfully" if subscription else "No active subscription"
    return APIResponse(message=message, data=subscription)


@router.get("/history", response_model=APIResponse[PaginatedResponse[UserSubscription]])
def get_subscription_history(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100)
):
    history = subscription_service.get_history(db, context, page=page, size=size)
    return APIResponse(message="Subscription history retrieved successfully", data=history)


@router.get("/eligibility", response_model=APIResponse[EntitlementStatus])
def get_exam_eligibility(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    eligibility = subscription_service.eligibility(db, context)
    message = "You can start an exam" if eligibility.allowed else eligibility.message
    return APIResponse(message=message, data=eligibility)


@router.post("/purchase", response_model=APIResponse[PaymentSchema], status_code=status.HTTP_201_CREATED)
def purchase_subscription(
    *,
    purchase_in: SubscriptionPurchaseRequest,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    payment = subscription_service.purchase(db, context, purchase_in)
    return APIResponse(
        message="Payment created. Proceed to payment initiation.",
        data=PaymentSchema.model_validate(payment)
    )
