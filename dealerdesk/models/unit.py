"""Unit of Measure model."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from dealerdesk.database import Base, IdType


class Unit(Base):
    """Unit of Measure (PCS, BOX, ...)."""

    __tablename__ = 'unit'

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(20), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Unit(id={self.id}, name='{self.name}')>"
