from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, Union
from datetime import datetime

from app.core.constants import PaymentMethodEnum, PaymentStatusEnum, PaymentTypeEnum

class PaymentBase(BaseModel):
    user_id: int
    payment_type: PaymentTypeEnum
    reference_id: Optional[int] = None
    amount: float
    currency: str = "RWF"
    payment_method: PaymentMethodEnum
    phone_number: str

    model_config = ConfigDict(use_enum_values=True)

class PaymentCreate(PaymentBase):
    status: PaymentStatusEnum = PaymentStatusEnum.PENDING
    payment_metadata: Dict[str, Any] = Field(default_factory=dict)

class PaymentSchema(PaymentBase):
    id: int
    status: str
    transaction_id: Optional[str] = None
    payment_metadata: Dict[str, Any] = Field(default_factory=dict, serialization_alias="metadata")
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

class PaymentInitiateRequest(BaseModel):
    payment_id: int

class PaymentWebhook(BaseModel):
    transaction_id: str = Field(..., alias="transactionId")
    status: Union[str, int]

    model_config = ConfigDict(populate_by_name=True)

class PaymentCancelRequest(BaseModel):
    reason: Optional[str] = None

class PaymentStatus(BaseModel):
    payment_id: int
    status: str
    payment_type: str
    amount: float
    currency: str
    transaction_id: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    error_message: Optional[str] = None
