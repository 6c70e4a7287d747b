"""
Unit tests for SQLAlchemy models.
"""

import pytest
import uuid
from decimal import Decimal
from dealerdesk.models import AppUser, Product, ProductPricing, StockLevel, Role


class TestAppUserModel:
    """Tests for AppUser model."""

    def test_create_user(self, session):
        """Test creating a user."""
        suffix = str(uuid.uuid4())[:8]
        email = f'test_{suffix}@example.com'
        user = AppUser(
            email=email,
            full_name='Test User',
            role=Role.DEALER_4.value,
            active=True
        )
        user.set_password('securepassword')
        session.add(user)
        session.commit()

        assert user.id is not None
        assert user.email == email
        assert user.password_hash != 'securepassword'

    def test_password_is_hashed(self, make_user):
        user = make_user(Role.COUNTER_STAFF)

        assert user.password_hash.startswith('scrypt:')
        assert 'password123' not in user.password_hash

    def test_is_admin(self, make_user):
        assert make_user(Role.ADMIN).is_admin()
        assert not make_user(None).is_admin()

    def test_email_unique(self, session, make_user):
        user = make_user(Role.DEALER_6)
        session.add(AppUser(email=user.email, active=True))

        with pytest.raises(Exception):  # IntegrityError
            session.commit()


class TestProductModel:
    """Tests for Product, pricing and stock."""

    def test_code_unique(self, session, make_product, unit):
        make_product(code='UNIQ-1')
        session.add(Product(code='UNIQ-1', description='Duplicate', unit_id=unit.id))

        with pytest.raises(Exception):  # IntegrityError
            session.commit()

    def test_pricing_relationship(self, session, make_product):
        product = make_product(retail_price='10.50', dealer_price='9.25')

        pricing = session.get(ProductPricing, product.id)
        assert pricing.product.code == product.code
        assert product.pricing.retail_price == Decimal('10.50')

    def test_stock_at(self, session, make_product):
        product = make_product(stock=12)
        session.add(StockLevel(product_id=product.id, location='LIM', quantity=3))
        session.commit()

        assert product.stock_at('TRU') == 12
        assert product.stock_at('LIM') == 3
        assert product.stock_at('NOWHERE') is None

    def test_negative_stock_rejected(self, session, make_product):
        product = make_product(stock=None)
        session.add(StockLevel(product_id=product.id, location='TRU', quantity=-1))

        with pytest.raises(Exception):  # IntegrityError
            session.commit()
