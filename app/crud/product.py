from typing import List, Optional
from sqlalchemy.orm import Session, joinedload

from app.crud.base import CRUDBase
from app.models.product import DigitalProduct, Purchase
from pydantic import BaseModel


class CRUDDigitalProduct(CRUDBase[DigitalProduct, BaseModel, BaseModel]):
    def get_active(self, db: Session, *, product_id: int) -> Optional[DigitalProduct]:
        return (
            db.query(self.model)
            .filter(self.model.id == product_id, self.model.is_active == True)
            .first()
        )

    def get_active_products(self, db: Session, *, language: Optional[str] = None,
                            product_type: Optional[str] = None) -> List[DigitalProduct]:
        query = db.query(self.model).filter(self.model.is_active == True)
        if language:
            query = query.filter(self.model.language == language)
        if product_type:
            query = query.filter(self.model.product_type == product_type)
        return query.order_by(self.model.created_at.desc(), self.model.id.desc()).all()

digital_product = CRUDDigitalProduct(DigitalProduct)


class CRUDPurchase(CRUDBase[Purchase, BaseModel, BaseModel]):
    def get_by_user_and_product(self, db: Session, *, user_id: int, product_id: int) -> Optional[Purchase]:
        return (
            db.query(self.model)
            .filter(self.model.user_id == user_id, self.model.product_id == product_id)
            .first()
        )

    def get_multi_by_user(self, db: Session, *, user_id: int) -> List[Purchase]:
        return (
            db.query(self.model)
            .options(joinedload(self.model.product))
            .filter(self.model.user_id == user_id)
            .order_by(self.model.purchase_date.desc())
            .all()
        )

purchase = CRUDPurchase(Purchase)
