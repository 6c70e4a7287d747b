"""Order model."""
from sqlalchemy import Column, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from dealerdesk.database import Base, IdType


class Order(Base):
    """Customer order placed by an app user."""

    __tablename__ = 'orders'

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(IdType, ForeignKey('app_user.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    user = relationship('AppUser', back_populates='orders')
    items = relationship(
        'OrderItem',
        back_populates='order',
        cascade='all, delete-orphan',
        order_by='OrderItem.id'
    )

    def __repr__(self):
        return f"<Order(id={self.id}, user_id={self.user_id}, items={len(self.items)})>"
