"""Stock Level model."""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from dealerdesk.database import Base, IdType


class StockLevel(Base):
    """Stock on hand for one product at one location."""

    __tablename__ = 'stock_level'
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_stock_quantity_non_negative'),
    )

    product_id = Column(IdType, ForeignKey('product.id'), primary_key=True)
    location = Column(String(20), primary_key=True)
    quantity = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationship
    product = relationship('Product', back_populates='stock_levels')

    def __repr__(self):
        return f"<StockLevel(product_id={self.product_id}, location='{self.location}', quantity={self.quantity})>"
