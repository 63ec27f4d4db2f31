from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

class DigitalProduct(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    product_type: str
    language: str
    price: float
    currency: str

    model_config = ConfigDict(from_attributes=True)

class ProductPurchaseRequest(BaseModel):
    payment_method: str
    phone_number: str

class Purchase(BaseModel):
    id: int
    product_id: int
    payment_id: Optional[int] = None
    purchase_date: datetime
    download_count: int
    product: DigitalProduct

    model_config = ConfigDict(from_attributes=True)
