import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.constants import PaymentMethodEnum, PaymentStatusEnum, PaymentTypeEnum
from app.core.exceptions import (
    AlreadyCompleted, AppError, DuplicatePendingPayment, GatewayError, GatewayMethodUnconfigured, InvalidAmount,
    InvalidPaymentMethod, ManualVerifyDisabled, MissingMetadata, PaymentNotFound, PaymentNotPending,
    PlanNotFound, ProductNotFound
)
from app.crud.payment import payment as crud_payment
from app.crud.product import digital_product as crud_product, purchase as crud_purchase
from app.crud.subscription import (
    subscription_plan as crud_subscription_plan, user_subscription as crud_user_subscription
)
from app.crud.user import user as crud_user
from app.models.payment import Payment
from app.schemas.payment import PaymentCreate, PaymentSchema, PaymentStatus
from app.schemas.user import UserContext
from app.services.payment_gateway import PaymentGateway
from app.utils.permission import PermissionHelper as permission_helper
from app.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

SUCCESS_WEBHOOK_STATUSES = {"success", "200"}
EXPIRED_PAYMENT_REASON = "Payment expired after {minutes} minutes of inactivity"


def add_years(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return moment.replace(year=moment.year + years, day=28)


def payment_status_of(payment: Payment) -> PaymentStatus:
    return PaymentStatus(
        payment_id=payment.id,
        status=payment.status,
        payment_type=payment.payment_type,
        amount=payment.amount,
        currency=payment.currency,
        transaction_id=payment.transaction_id,
        created_at=payment.created_at,
        completed_at=payment.completed_at,
        failed_at=payment.failed_at,
        cancelled_at=payment.cancelled_at,
        cancellation_reason=payment.cancellation_reason,
        error_message=payment.error_message,
    )


class PaymentService:
    """Moves payments through pending -> completed|failed|cancelled.

    Every transition out of ``pending`` is a conditional update, and the
    entitlement grant runs only for the caller whose update won.
    """

    def __init__(self, clock: Callable = utcnow):
        self.clock = clock

    def _get_payment(self, db: Session, payment_id: int) -> Payment:
        payment = crud_payment.get(db, id=payment_id)
        if not payment:
            raise PaymentNotFound()
        return payment

    def _get_owned(self, db: Session, context: UserContext, payment_id: int) -> Payment:
        payment = self._get_payment(db, payment_id)
        permission_helper.require_payment_owner(context, payment)
        return payment

    @staticmethod
    def _require_pending(payment: Payment):
        if payment.status == PaymentStatusEnum.COMPLETED.value:
            raise AlreadyCompleted()
        if payment.status != PaymentStatusEnum.PENDING.value:
            raise PaymentNotPending(
                f"Payment is {payment.status} and can no longer be processed.", status=payment.status
            )

    def create_pending(self, db: Session, user_id: int, payment_type: PaymentTypeEnum, reference_id: int,
                       amount: float, payment_method: str, phone_number: str,
                       metadata: Optional[Dict[str, Any]] = None) -> Payment:
        try:
            method = PaymentMethodEnum(payment_method)
        except ValueError:
            raise InvalidPaymentMethod()
        phone = normalize_phone(phone_number)
        if amount is None or not settings.PAYMENT_MIN_AMOUNT <= amount <= settings.PAYMENT_MAX_AMOUNT:
            raise InvalidAmount(
                amount=amount, min_amount=settings.PAYMENT_MIN_AMOUNT, max_amount=settings.PAYMENT_MAX_AMOUNT
            )

        duplicate = crud_payment.get_pending_for_reference(
            db, user_id=user_id, payment_type=payment_type.value, reference_id=reference_id
        )
        if duplicate:
            raise DuplicatePendingPayment(payment_id=duplicate.id)

        payment_in = PaymentCreate(
            user_id=user_id,
            payment_type=payment_type,
            reference_id=reference_id,
            amount=amount,
            payment_method=method,
            phone_number=phone,
            payment_metadata=metadata or {},
        )
        payment = crud_payment.create(db, obj_in={**payment_in.model_dump(), "created_at": self.clock()}, commit=False)
        db.commit()
        db.refresh(payment)
        logger.info(f"Pending {payment_type.value} payment {payment.id} created for user {user_id}: {amount} RWF")
        return payment

    def _apply_subscription(self, db: Session, payment: Payment):
        metadata = payment.payment_metadata or {}
        plan_id = metadata.get("plan_id")
        if not plan_id:
            raise MissingMetadata(payment_id=payment.id)
        plan = crud_subscription_plan.get(db, id=plan_id)
        if not plan:
            raise PlanNotFound(plan_id=plan_id)

        now = self.clock()
        expiry = metadata.get("expiry_date")
        if expiry:
            end_date = datetime.fromisoformat(expiry)
        else:
            end_date = add_years(now, settings.SUBSCRIPTION_COUNT_PLAN_YEARS)

        # Concurrent grants for one user queue here, so only one valid row is ever created.
        crud_user.lock(db, user_id=payment.user_id)
        existing = crud_user_subscription.get_valid(db, user_id=payment.user_id, now=now)
        if existing:
            subscription = crud_user_subscription.update(db, db_obj=existing, obj_in={
                "plan_id": plan.id,
                "start_date": now,
                "end_date": end_date,
                "exam_attempts_used": 0,
                "is_active": True,
            }, commit=False)
            logger.info(f"Subscription {subscription.id} of user {payment.user_id} replaced with plan {plan.type}")
        else:
            subscription = crud_user_subscription.create(db, obj_in={
                "user_id": payment.user_id,
                "plan_id": plan.id,
                "start_date": now,
                "end_date": end_date,
                "exam_attempts_used": 0,
                "is_active": True,
            }, commit=False)
            logger.info(f"Subscription {subscription.id} activated for user {payment.user_id} on plan {plan.type}")
        return subscription

    def _apply_product(self, db: Session, payment: Payment):
        product = crud_product.get(db, id=payment.reference_id)
        if not product:
            raise ProductNotFound(product_id=payment.reference_id)
        purchase = crud_purchase.create(db, obj_in={
            "user_id": payment.user_id,
            "product_id": product.id,
            "payment_id": payment.id,
            "purchase_date": self.clock(),
        }, commit=False)
        logger.info(f"Purchase {purchase.id} of product {product.id} recorded for user {payment.user_id}")
        return purchase

    def apply_entitlement(self, db: Session, payment: Payment):
        """Grant what a completed payment paid for. Callers must have won the pending->completed swap."""
        if payment.payment_type == PaymentTypeEnum.SUBSCRIPTION.value:
            return self._apply_subscription(db, payment)
        if payment.payment_type == PaymentTypeEnum.PRODUCT.value:
            return self._apply_product(db, payment)
        raise ValueError(f"Unknown payment type: {payment.payment_type}")

    def _complete(self, db: Session, payment: Payment, transaction_id: Optional[str] = None) -> bool:
        if not crud_payment.mark_completed(db, payment_id=payment.id, now=self.clock(), transaction_id=transaction_id):
            return False
        db.refresh(payment)
        try:
            self.apply_entitlement(db, payment)
        except AppError as e:
            # Back to pending with the gateway reference kept, so a retry or webhook can finish the grant.
            db.rollback()
            crud_payment.note_error(
                db, payment_id=payment.id, now=self.clock(), error_message=f"Entitlement grant failed: {e.message}"
            )
            db.commit()
            db.refresh(payment)
            logger.error(
                f"Payment {payment.id} (transaction {payment.transaction_id}) is paid but the grant failed: {e.message}"
            )
            raise
        db.commit()
        db.refresh(payment)
        logger.info(f"Payment {payment.id} completed (transaction {payment.transaction_id})")
        return True

    async def initiate(self, db: Session, context: UserContext, payment_id: int, gateway: PaymentGateway) -> Payment:
        payment = self._get_owned(db, context, payment_id)
        self._require_pending(payment)

        if payment.transaction_id:
            # Already charged; only the grant is outstanding.
            logger.info(f"Retrying grant for payment {payment.id} (transaction {payment.transaction_id})")
            if not self._complete(db, payment):
                db.refresh(payment)
                self._require_pending(payment)
            return payment

        credential = gateway.credential_for(payment.payment_method)
        if not credential:
            raise GatewayMethodUnconfigured(payment_method=payment.payment_method)

        # Nothing is held open while the gateway call is in flight.
        db.commit()
        logger.info(f"Initiating payment {payment.id}: {payment.amount} via {payment.payment_method}")
        try:
            response = await gateway.pay(payment.amount, payment.phone_number, credential)
        except GatewayError as e:
            if crud_payment.mark_failed(db, payment_id=payment.id, now=self.clock(), error_message=e.message):
                db.commit()
            logger.warning(f"Payment {payment.id} failed at gateway: {e.message}")
            raise

        crud_payment.record_transaction_id(
            db, payment_id=payment.id, transaction_id=response.transaction_id, now=self.clock()
        )
        db.commit()

        if not self._complete(db, payment):
            db.refresh(payment)
            logger.error(
                f"Gateway accepted payment {payment.id} (transaction {response.transaction_id}) "
                f"but it is already {payment.status}"
            )
            self._require_pending(payment)
        return payment

    def verify(self, db: Session, transaction_id: str, status) -> Payment:
        """Apply a gateway callback. Duplicate and late deliveries are no-ops."""
        payment = crud_payment.get_by_transaction_id(db, transaction_id=transaction_id)
        if not payment:
            raise PaymentNotFound(transaction_id=transaction_id)

        if payment.status != PaymentStatusEnum.PENDING.value:
            logger.info(f"Webhook for payment {payment.id} ignored, already {payment.status}")
            return payment

        if str(status).strip().lower() in SUCCESS_WEBHOOK_STATUSES:
            if not self._complete(db, payment):
                db.refresh(payment)
        else:
            if crud_payment.mark_failed(db, payment_id=payment.id, now=self.clock(),
                                        error_message="Payment failed at gateway"):
                db.commit()
                logger.info(f"Payment {payment.id} failed per gateway callback")
            db.refresh(payment)
        return payment

    def cancel(self, db: Session, context: UserContext, payment_id: int, reason: Optional[str] = None) -> Payment:
        payment = self._get_owned(db, context, payment_id)
        if payment.status != PaymentStatusEnum.PENDING.value:
            raise PaymentNotPending(f"Cannot cancel payment with status: {payment.status}", status=payment.status)
        if payment.transaction_id:
            raise PaymentNotPending(
                "Payment was already charged and is awaiting completion.", status=payment.status,
                transaction_id=payment.transaction_id
            )
        if not crud_payment.mark_cancelled(db, payment_id=payment.id, now=self.clock(),
                                           reason=reason or "Cancelled by user"):
            db.refresh(payment)
            raise PaymentNotPending(f"Cannot cancel payment with status: {payment.status}", status=payment.status)
        db.commit()
        db.refresh(payment)
        logger.info(f"Payment {payment.id} cancelled by user {context.user.id}")
        return payment

    def manual_verify(self, db: Session, context: UserContext, payment_id: int) -> Payment:
        if not (permission_helper.is_admin(context) or settings.PAYMENT_MANUAL_VERIFY_ENABLED):
            raise ManualVerifyDisabled()
        payment = self._get_payment(db, payment_id)
        permission_helper.require_payment_owner_or_admin(context, payment)
        self._require_pending(payment)
        if not self._complete(db, payment):
            db.refresh(payment)
            self._require_pending(payment)
        logger.info(f"Payment {payment.id} manually verified by user {context.user.id}")
        return payment

    def get_status(self, db: Session, context: UserContext, payment_id: int) -> PaymentStatus:
        return payment_status_of(self._get_owned(db, context, payment_id))

    def get_history(self, db: Session, context: UserContext, status: Optional[PaymentStatusEnum] = None,
                    page: int = 1, size: int = 10) -> dict:
        result = crud_payment.get_history_page(
            db, user_id=context.user.id, status=status.value if status else None, page=page, size=size
        )
        result["items"] = [PaymentSchema.model_validate(item) for item in result["items"]]
        return result

    def cancel_expired_pending(self, db: Session, now: Optional[datetime] = None) -> int:
        now = now or self.clock()
        minutes = settings.PAYMENT_PENDING_EXPIRY_MINUTES
        cancelled = crud_payment.cancel_pending_created_before(
            db,
            cutoff=now - timedelta(minutes=minutes),
            now=now,
            reason=EXPIRED_PAYMENT_REASON.format(minutes=minutes),
        )
        db.commit()
        if cancelled:
            logger.info(f"Auto-cancelled {cancelled} expired payment(s)")
        return cancelled


payment_service = PaymentService()
