from typing import List, Optional
from sqlalchemy.orm import Session

from app.core.constants import PaymentTypeEnum
from app.core.exceptions import AlreadyPurchased, ProductNotFound
from app.crud.product import digital_product as crud_product, purchase as crud_purchase
from app.models.payment import Payment
from app.schemas.product import DigitalProduct, ProductPurchaseRequest, Purchase
from app.schemas.user import UserContext
from app.services.exam_session import parse_language
from app.services.payment import PaymentService, payment_service


class ProductService:

    def __init__(self, payments: Optional[PaymentService] = None):
        self.payments = payments or payment_service

    def list_products(self, db: Session, language: Optional[str] = None,
                      product_type: Optional[str] = None) -> List[DigitalProduct]:
        if language:
            language = parse_language(language)
        products = crud_product.get_active_products(db, language=language, product_type=product_type)
        return [DigitalProduct.model_validate(p) for p in products]

    def get_product(self, db: Session, product_id: int) -> DigitalProduct:
        product = crud_product.get_active(db, product_id=product_id)
        if not product:
            raise ProductNotFound(product_id=product_id)
        return DigitalProduct.model_validate(product)

    def purchase(self, db: Session, context: UserContext, product_id: int, request: ProductPurchaseRequest) -> Payment:
        product = crud_product.get_active(db, product_id=product_id)
        if not product:
            raise ProductNotFound(product_id=product_id)

        if crud_purchase.get_by_user_and_product(db, user_id=context.user.id, product_id=product.id):
            raise AlreadyPurchased(product_id=product.id)

        return self.payments.create_pending(
            db,
            user_id=context.user.id,
            payment_type=PaymentTypeEnum.PRODUCT,
            reference_id=product.id,
            amount=product.price,
            payment_method=request.payment_method,
            phone_number=request.phone_number,
            metadata={
                "product_id": product.id,
                "product_title": product.title,
                "language": product.language,
            },
        )

    def get_my_purchases(self, db: Session, context: UserContext) -> List[Purchase]:
        return [Purchase.model_validate(p) for p in crud_purchase.get_multi_by_user(db, user_id=context.user.id)]


product_service = ProductService()
