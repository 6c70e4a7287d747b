"""Product service - single product maintenance (add / edit)."""
import logging
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from dealerdesk.exceptions import BusinessLogicError, NotFoundError, UnauthorizedError, ValidationError
from dealerdesk.models import Product, Role
from dealerdesk.services.catalog_store import SqlCatalogStore
from dealerdesk.services.import_service import get_or_create_unit, validate_product_fields
from dealerdesk.services.pricing_service import parse_role

logger = logging.getLogger(__name__)


def _require(fields: Dict[str, Any], *names):
    missing = [name for name in names if fields.get(name) in (None, '')]
    if missing:
        raise ValidationError([f'{name} is required' for name in missing])


def create_product(
    session: Session,
    role,
    fields: Dict[str, Any],
    location: str = 'TRU',
    unit_name: str = 'PCS',
) -> Product:
    """
    Add a product with its pricing and opening stock (admins only).

    Args:
        fields: code, description, retail_price, dealer_price, stock
    """
    if parse_role(role) != Role.ADMIN:
        raise UnauthorizedError('Only admins can add products')

    _require(fields, 'code', 'description', 'retail_price', 'dealer_price', 'stock')
    row = validate_product_fields(
        code=fields['code'],
        description=fields['description'],
        retail_price=fields['retail_price'],
        dealer_price=fields['dealer_price'],
        stock=fields['stock'],
    )

    store = SqlCatalogStore(session, location)
    try:
        if store.find_product_by_code(row.code):
            raise BusinessLogicError(f'A product with code "{row.code}" already exists.', status_code=409)

        unit = get_or_create_unit(session, unit_name)
        product_id = store.insert_product(row.code, row.description, unit.id)
        store.upsert_pricing(product_id, row.retail_price, row.dealer_price)
        store.upsert_stock(product_id, location, row.stock)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f'A product with code "{row.code}" already exists.', status_code=409)
    except Exception:
        session.rollback()
        raise

    logger.info(f"Product {row.code} created (id={product_id})")
    return session.get(Product, product_id)


def update_product(session: Session, role, product_id: int, fields: Dict[str, Any]) -> Product:
    """
    Update code, description and prices of a product. Stock is not touched.
    """
    if parse_role(role) != Role.ADMIN:
        raise UnauthorizedError('Only admins can edit products')

    product = session.query(Product).options(
        selectinload(Product.pricing)
    ).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f'Product {product_id} not found.')

    pricing = product.pricing
    _require(fields, 'code', 'description')
    row = validate_product_fields(
        code=fields['code'],
        description=fields['description'],
        retail_price=fields.get('retail_price', pricing.retail_price if pricing else None),
        dealer_price=fields.get('dealer_price', pricing.dealer_price if pricing else None),
        stock=0,  # stock is not edited here, only validated
    )

    try:
        product.code = row.code
        product.description = row.description
        SqlCatalogStore(session).upsert_pricing(product.id, row.retail_price, row.dealer_price)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f'A product with code "{row.code}" already exists.', status_code=409)
    except Exception:
        session.rollback()
        raise

    logger.info(f"Product {product.id} updated")
    return product
