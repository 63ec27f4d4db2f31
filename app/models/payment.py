from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, JSON, Index
from sqlalchemy.orm import relationship
from app.core.clock import utcnow
from app.core.database import Base
from app.core.constants import PaymentStatusEnum

class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_user_status", "user_id", "status"),
        Index("ix_payments_status_created", "status", "created_at"),
        Index("ix_payments_user_type_reference", "user_id", "payment_type", "reference_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    payment_type = Column(String, nullable=False)
    reference_id = Column(Integer, nullable=True) # plan id or product id
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="RWF")
    payment_method = Column(String, nullable=False)
    phone_number = Column(String(10), nullable=False)
    status = Column(String, nullable=False, default=PaymentStatusEnum.PENDING.value)
    transaction_id = Column(String, unique=True, nullable=True)
    payment_metadata = Column("metadata", JSON, nullable=False, default=dict)
    completed_at = Column(DateTime, nullable=True)
    failed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(String, nullable=True)
    error_message = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, onupdate=utcnow)

    user = relationship("User", back_populates="payments")
    purchase = relationship("Purchase", back_populates="payment", uselist=False)
