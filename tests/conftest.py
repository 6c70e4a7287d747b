import pytest
from decimal import Decimal
import uuid

from dealerdesk import create_app
from dealerdesk.database import create_all, drop_all, get_session
from dealerdesk.models import (
    Unit, Product, ProductPricing, StockLevel, AppUser, Role, Order, OrderItem
)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestingConfig')
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema per test; yields the scoped session registry."""
    session = get_session()
    session.remove()
    drop_all()
    create_all()
    yield session
    session.rollback()
    session.remove()


@pytest.fixture(scope='function')
def unit(session):
    """Create the default unit of measure."""
    unit = Unit(name='PCS')
    session.add(unit)
    session.commit()
    return unit


@pytest.fixture(scope='function')
def make_product(session, unit):
    """Factory: create a product with pricing and TRU stock."""

    def _make(code=None, retail_price='100.00', dealer_price='80.00', stock=10, description=None):
        code = code or f'SKU-{uuid.uuid4().hex[:8]}'
        product = Product(code=code, description=description or f'Product {code}', unit_id=unit.id)
        session.add(product)
        session.flush()
        session.add(ProductPricing(
            product_id=product.id,
            retail_price=Decimal(str(retail_price)),
            dealer_price=Decimal(str(dealer_price)),
        ))
        if stock is not None:
            session.add(StockLevel(product_id=product.id, location='TRU', quantity=stock))
        session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_user(session):
    """Factory: create an active user with the given role."""

    def _make(role=None):
        suffix = str(uuid.uuid4())[:8]
        user = AppUser(
            email=f'{role or "norole"}-{suffix}@test.com',
            full_name='Test User',
            role=role.value if isinstance(role, Role) else role,
            active=True
        )
        user.set_password('password123')
        session.add(user)
        session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def admin_user(make_user):
    return make_user(Role.ADMIN)


@pytest.fixture(scope='function')
def dealer_user(make_user):
    return make_user(Role.DEALER_6)


@pytest.fixture(scope='function')
def make_order(session):
    """Factory: persist an order with lines given as (product, quantity, unit_price, discount)."""

    def _make(user, lines):
        order = Order(user_id=user.id)
        session.add(order)
        session.flush()
        for product, quantity, unit_price, discount in lines:
            session.add(OrderItem(
                order_id=order.id,
                product_id=product.id,
                quantity=quantity,
                unit_price=Decimal(str(unit_price)),
                discount=Decimal(str(discount)),
            ))
        session.commit()
        return order

    return _make


def _login(client, user):
    # read the id first: leaving session_transaction() tears down the app context
    user_id = user.id
    with client.session_transaction() as sess:
        sess['user_id'] = user_id
    return client


@pytest.fixture(scope='function')
def login_as(client):
    """Return a function that logs ``client`` in as a user."""
    return lambda user: _login(client, user)


@pytest.fixture(scope='function')
def admin_client(client, admin_user):
    """Create authenticated client for an admin."""
    return _login(client, admin_user)


@pytest.fixture(scope='function')
def dealer_client(client, dealer_user):
    """Create authenticated client for a dealer_6 user."""
    return _login(client, dealer_user)
