from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Float, Index
from sqlalchemy.orm import relationship
from app.core.clock import utcnow
from app.core.database import Base

class DigitalProduct(Base):
    __tablename__ = "digital_products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    product_type = Column(String, nullable=False)
    language = Column(String(2), nullable=False)
    price = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="RWF")
    file_url = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=utcnow)

    purchases = relationship("Purchase", back_populates="product")


class Purchase(Base):
    __tablename__ = "purchases"
    __table_args__ = (
        Index("ix_purchases_user_product", "user_id", "product_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("digital_products.id"), nullable=False)
    payment_id = Column(Integer, ForeignKey("payments.id"), unique=True, nullable=True)
    purchase_date = Column(DateTime, nullable=False, default=utcnow)
    download_count = Column(Integer, nullable=False, default=0)

    user = relationship("User", back_populates="purchases")
    product = relationship("DigitalProduct", back_populates="purchases")
    payment = relationship("Payment", back_populates="purchase")
