from pydantic import BaseModel, ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime

class SubscriptionPlan(BaseModel):
    id: int
    type: str
    name: Dict[str, str]
    description: Optional[Dict[str, str]] = None
    pricing: Dict[str, float]
    currency: str
    duration_days: Optional[int] = None
    exam_limit: Optional[int] = None
    is_unlimited: bool

    model_config = ConfigDict(from_attributes=True)

class LocalizedSubscriptionPlan(BaseModel):
    id: int
    type: str
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    currency: str
    duration_days: Optional[int] = None
    exam_limit: Optional[int] = None
    is_unlimited: bool

class UserSubscription(BaseModel):
    id: int
    plan_id: int
    plan: SubscriptionPlan
    start_date: datetime
    end_date: datetime
    is_active: bool
    exam_attempts_used: int
    attempts_remaining: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

class ActiveSubscription(UserSubscription):
    days_remaining: int

class SubscriptionPurchaseRequest(BaseModel):
    plan_type: str
    language: str
    payment_method: str
    phone_number: str

class EntitlementStatus(BaseModel):
    """Verdict of the entitlement check, rendered without raising."""
    allowed: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    subscription_id: Optional[int] = None
    plan_type: Optional[str] = None
    exam_limit: Optional[int] = None
    attempts_used: Optional[int] = None
    attempts_remaining: Optional[int] = None
    end_date: Optional[datetime] = None
    warning: Optional[str] = None
    details: Dict[str, Any] = {}
