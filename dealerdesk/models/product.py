"""Product model."""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from dealerdesk.database import Base, IdType


class Product(Base):
    """Product model. Identity is the caller-supplied ``code``."""

    __tablename__ = 'product'

    id = Column(IdType, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=False)
    unit_id = Column(IdType, ForeignKey('unit.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    unit = relationship('Unit')
    pricing = relationship('ProductPricing', uselist=False, back_populates='product', cascade="all, delete-orphan")
    stock_levels = relationship('StockLevel', back_populates='product', cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Product(id={self.id}, code='{self.code}')>"

    def stock_at(self, location):
        """Get on hand quantity at ``location`` (None when no stock row exists)."""
        for level in self.stock_levels:
            if level.location == location:
                return level.quantity
        return None
