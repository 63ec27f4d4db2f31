from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, JSON, Index
from sqlalchemy.orm import relationship
from app.core.clock import utcnow
from app.core.database import Base

class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String, unique=True, index=True, nullable=False)
    name = Column(JSON, nullable=False) # keyed by language
    description = Column(JSON, nullable=True)
    pricing = Column(JSON, nullable=False) # keyed by language
    currency = Column(String, nullable=False, default="RWF")
    duration_days = Column(Integer, nullable=True) # null = count-based
    exam_limit = Column(Integer, nullable=True) # null or 0 = unlimited
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=utcnow)

    user_subscriptions = relationship("UserSubscription", back_populates="plan")

    @property
    def is_unlimited(self) -> bool:
        return not self.exam_limit

    def price_for(self, language: str):
        return (self.pricing or {}).get(language)

    def localized(self, field: str, language: str):
        values = getattr(self, field) or {}
        return values.get(language)


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"
    __table_args__ = (
        Index("ix_user_subscriptions_user_active_end", "user_id", "is_active", "end_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    exam_attempts_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=utcnow)

    user = relationship("User", back_populates="subscriptions")
    plan = relationship("SubscriptionPlan", back_populates="user_subscriptions")

    @property
    def attempts_remaining(self):
        if self.plan is None or self.plan.is_unlimited:
            return None
        return max(self.plan.exam_limit - (self.exam_attempts_used or 0), 0)
