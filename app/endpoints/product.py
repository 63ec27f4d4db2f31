from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.schemas.payment import PaymentSchema
from app.schemas.product import DigitalProduct, ProductPurchaseRequest, Purchase
from app.schemas.response import APIResponse
from app.schemas.user import UserContext
from app.services.product import product_service
from app.utils import deps

router = APIRouter()


@router.get("/", response_model=APIResponse[List[DigitalProduct]])
def list_products(
    db: Session = Depends(deps.get_db),
    language: Optional[str] = Query(None),
    product_type: Optional[str] = Query(None)
):
    products = product_service.list_products(db, language=language, product_type=product_type)
    return APIResponse(message="Products retrieved successfully", data=products)


@router.get("/my-purchases", response_model=APIResponse[List[Purchase]])
def get_my_purchases(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    purchases = product_service.get_my_purchases(db, context)
    return APIResponse(message="Purchases retrieved successfully", data=purchases)


@router.post("/{product_id}/purchase", response_model=APIResponse[PaymentSchema], status_code=status.HTTP_201_CREATED)
def purchase_product(
    product_id: int,
    purchase_in: ProductPurchaseRequest,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    payment = product_service.purchase(db, context, product_id, purchase_in)
    return APIResponse(
        message="Payment created. Proceed to payment initiation.",
        data=PaymentSchema.model_validate(payment)
    )


@router.get("/{product_id}", response_model=APIResponse[DigitalProduct])
def get_product(product_id: int, db: Session = Depends(deps.get_db)):
    product = product_service.get_product(db, product_id)
    return APIResponse(message="Product retrieved successfully", data=product)
