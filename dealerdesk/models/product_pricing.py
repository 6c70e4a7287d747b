"""Product Pricing model."""
from sqlalchemy import Column, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from dealerdesk.database import Base, IdType


class ProductPricing(Base):
    """Product Pricing - 1:1 with Product."""

    __tablename__ = 'product_pricing'
    __table_args__ = (
        CheckConstraint('retail_price >= 0', name='ck_pricing_retail_non_negative'),
        CheckConstraint('dealer_price >= 0', name='ck_pricing_dealer_non_negative'),
    )

    product_id = Column(IdType, ForeignKey('product.id'), primary_key=True)
    retail_price = Column(Numeric(14, 2), nullable=False)
    dealer_price = Column(Numeric(14, 2), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationship
    product = relationship('Product', back_populates='pricing')

    def __repr__(self):
        return (
            f"<ProductPricing(product_id={self.product_id}, "
            f"retail={self.retail_price}, dealer={self.dealer_price})>"
        )
