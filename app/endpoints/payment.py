import hashlib
import hmac
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import PaymentStatusEnum
from app.core.exceptions import InvalidWebhookSignature
from app.crud.base import PaginatedResponse
from app.schemas.payment import (
    PaymentCancelRequest, PaymentInitiateRequest, PaymentSchema, PaymentStatus, PaymentWebhook
)
from app.schemas.response import APIResponse
from app.schemas.user import UserContext
from app.services.payment import payment_service, payment_status_of
from app.services.payment_gateway import PaymentGateway
from app.utils import deps

logger = logging.getLogger(__name__)

router = APIRouter()


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: Optional[str]):
    if not secret:
        logger.warning("PAYMENT_WEBHOOK_SECRET is not set, accepting unsigned webhook (development mode)")
        return
    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    if not signature or not hmac.compare_digest(expected, signature):
        raise InvalidWebhookSignature()


@router.post("/initiate", response_model=APIResponse[PaymentSchema])
async def initiate_payment(
    *,
    payment_in: PaymentInitiateRequest,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    gateway: PaymentGateway = Depends(deps.get_payment_gateway)
):
    payment = await payment_service.initiate(db, context, payment_in.payment_id, gateway)
    return APIResponse(message="Payment completed successfully!", data=PaymentSchema.model_validate(payment))


@router.post("/verify", response_model=APIResponse[PaymentStatus])
async def verify_payment(request: Request, db: Session = Depends(deps.get_transactional_db)):
    payload = await request.body()
    verify_webhook_signature(payload, request.headers.get("x-signature"), settings.PAYMENT_WEBHOOK_SECRET)
    try:
        webhook = PaymentWebhook.model_validate_json(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors())

    payment = payment_service.verify(db, webhook.transaction_id, webhook.status)
    message = {
        PaymentStatusEnum.COMPLETED.value: "Payment verified and processed successfully",
        PaymentStatusEnum.FAILED.value: "Payment verification failed",
    }.get(payment.status, f"Payment is {payment.status}")
    return APIResponse(message=message, data=payment_status_of(payment))


@router.get("/history", response_model=APIResponse[PaginatedResponse[PaymentSchema]])
def get_payment_history(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    status: Optional[PaymentStatusEnum] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100)
):
    history = payment_service.get_history(db, context, status=status, page=page, size=size)
    return APIResponse(message="Payment history retrieved successfully", data=history)


@router.get("/{payment_id}/status", response_model=APIResponse[PaymentStatus])
def get_payment_status(
    payment_id: int,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    payment_status = payment_service.get_status(db, context, payment_id)
    return APIResponse(message="Payment status retrieved successfully", data=payment_status)


@router.put("/{payment_id}/cancel", response_model=APIResponse[PaymentSchema])
def cancel_payment(
    payment_id: int,
    cancel_in: Optional[PaymentCancelRequest] = None,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    payment = payment_service.cancel(db, context, payment_id, reason=cancel_in.reason if cancel_in else None)
    return APIResponse(message="Payment cancelled successfully", data=PaymentSchema.model_validate(payment))


@router.post("/{payment_id}/manual-verify", response_model=APIResponse[PaymentSchema])
def manual_verify_payment(
    payment_id: int,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    payment = payment_service.manual_verify(db, context, payment_id)
    return APIResponse(message="Payment manually verified and processed", data=PaymentSchema.model_validate(payment))
