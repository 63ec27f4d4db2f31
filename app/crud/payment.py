from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from app.core.constants import PaymentStatusEnum
from app.crud.base import CRUDBase, paginate
from app.models.payment import Payment
from app.schemas.payment import PaymentCreate, PaymentSchema


class CRUDPayment(CRUDBase[Payment, PaymentCreate, PaymentSchema]):
    def get_by_transaction_id(self, db: Session, *, transaction_id: str) -> Optional[Payment]:
        return db.query(self.model).filter(self.model.transaction_id == transaction_id).first()

    def get_pending_for_reference(self, db: Session, *, user_id: int, payment_type: str,
                                  reference_id: int) -> Optional[Payment]:
        return (
            db.query(self.model)
            .filter(
                self.model.user_id == user_id,
                self.model.payment_type == payment_type,
                self.model.reference_id == reference_id,
                self.model.status == PaymentStatusEnum.PENDING.value
            )
            .first()
        )

    def transition_from_pending(self, db: Session, *, payment_id: int, values: Dict[str, Any]) -> bool:
        """Compare-and-swap out of ``pending``; only one caller can win."""
        updated = (
            db.query(self.model)
            .filter(
                self.model.id == payment_id,
                self.model.status == PaymentStatusEnum.PENDING.value
            )
            .update(values, synchronize_session=False)
        )
        return updated == 1

    def mark_completed(self, db: Session, *, payment_id: int, now: datetime,
                       transaction_id: Optional[str] = None) -> bool:
        values = {
            self.model.status: PaymentStatusEnum.COMPLETED.value,
            self.model.completed_at: now,
            self.model.updated_at: now,
        }
        if transaction_id:
            values[self.model.transaction_id] = transaction_id
        return self.transition_from_pending(db, payment_id=payment_id, values=values)

    def record_transaction_id(self, db: Session, *, payment_id: int, transaction_id: str, now: datetime) -> bool:
        """Attach the gateway reference as soon as the charge is accepted, whatever the status."""
        updated = (
            db.query(self.model)
            .filter(self.model.id == payment_id, self.model.transaction_id.is_(None))
            .update(
                {self.model.transaction_id: transaction_id, self.model.updated_at: now},
                synchronize_session=False
            )
        )
        return updated == 1

    def note_error(self, db: Session, *, payment_id: int, now: datetime, error_message: str):
        db.query(self.model).filter(self.model.id == payment_id).update(
            {self.model.error_message: error_message, self.model.updated_at: now},
            synchronize_session=False
        )

    def mark_failed(self, db: Session, *, payment_id: int, now: datetime, error_message: str) -> bool:
        return self.transition_from_pending(db, payment_id=payment_id, values={
            self.model.status: PaymentStatusEnum.FAILED.value,
            self.model.failed_at: now,
            self.model.error_message: error_message,
            self.model.updated_at: now,
        })

    def mark_cancelled(self, db: Session, *, payment_id: int, now: datetime, reason: str) -> bool:
        return self.transition_from_pending(db, payment_id=payment_id, values={
            self.model.status: PaymentStatusEnum.CANCELLED.value,
            self.model.cancelled_at: now,
            self.model.cancellation_reason: reason,
            self.model.updated_at: now,
        })

    def cancel_pending_created_before(self, db: Session, *, cutoff: datetime, now: datetime, reason: str) -> int:
        return (
            db.query(self.model)
            .filter(
                self.model.status == PaymentStatusEnum.PENDING.value,
                self.model.created_at < cutoff,
                # A charge the gateway accepted is never expired.
                self.model.transaction_id.is_(None)
            )
            .update(
                {
                    self.model.status: PaymentStatusEnum.CANCELLED.value,
                    self.model.cancelled_at: now,
                    self.model.cancellation_reason: reason,
                    self.model.updated_at: now,
                },
                synchronize_session=False
            )
        )

    def get_history_page(self, db: Session, *, user_id: int, status: Optional[str] = None,
                         page: int = 1, size: int = 10) -> dict:
        query = db.query(self.model).filter(self.model.user_id == user_id)
        if status:
            query = query.filter(self.model.status == status)
        query = query.order_by(self.model.created_at.desc(), self.model.id.desc())
        return paginate(query, page, size)


payment = CRUDPayment(Payment)
