"""AppUser model - staff and dealer accounts with a pricing role."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash
from dealerdesk.database import Base, IdType


class Role(str, enum.Enum):
    """Customer tiers. Decide the price column and the discount schedule."""
    COUNTER_STAFF = 'counter_staff'
    DEALER_4 = 'dealer_4'
    DEALER_6 = 'dealer_6'
    DEALER_MARKETING = 'dealer_marketing'
    ADMIN = 'admin'


class AppUser(Base):
    """AppUser model."""

    __tablename__ = 'app_user'

    id = Column(IdType, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=True)
    full_name = Column(String(200), nullable=True)
    role = Column(String(30), nullable=True)  # Role value; NULL means no tier assigned
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    orders = relationship('Order', back_populates='user')

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def is_admin(self):
        return self.role == Role.ADMIN.value

    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}', role='{self.role}')>"
