"""Order Item model."""
from sqlalchemy import Column, Integer, Numeric, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from dealerdesk.database import Base, IdType


class OrderItem(Base):
    """Order line. ``discount`` is order-scoped and restamped on every edit."""

    __tablename__ = 'order_item'
    __table_args__ = (
        UniqueConstraint('order_id', 'product_id', name='uq_order_item_product'),
        CheckConstraint('quantity > 0', name='ck_order_item_quantity_positive'),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    order_id = Column(IdType, ForeignKey('orders.id'), nullable=False, index=True)
    product_id = Column(IdType, ForeignKey('product.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    discount = Column(Numeric(5, 2), nullable=False, default=0)

    # Relationships
    order = relationship('Order', back_populates='items')
    product = relationship('Product')

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
