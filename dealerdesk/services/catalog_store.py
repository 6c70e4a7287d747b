"""
Catalog store - storage boundary for products, pricing and stock.

Lookups return typed snapshots with the pricing (one-to-one) and stock
(one row per location) relations already normalized, so reconciliation
code never inspects ORM shapes.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy.orm import Session, selectinload

from dealerdesk.models import Product, ProductPricing, StockLevel

CENTS = Decimal('0.01')


def to_money(value) -> Decimal:
    """Normalize a price to 2 decimal places, the stored precision."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS)


@dataclass(frozen=True)
class PricingSnapshot:
    retail_price: Decimal
    dealer_price: Decimal


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    code: str
    description: str
    unit_id: int
    pricing: Optional[PricingSnapshot]
    stock_quantity: Optional[int]


class CatalogStore(Protocol):
    """Operations the import and product services need from storage."""

    def find_product_by_code(self, code: str) -> Optional[ProductSnapshot]: ...

    def insert_product(self, code: str, description: str, unit_id: int) -> int: ...

    def update_product(self, product_id: int, description: str, unit_id: int) -> None: ...

    def upsert_pricing(self, product_id: int, retail_price, dealer_price) -> None: ...

    def upsert_stock(self, product_id: int, location: str, quantity: int) -> None: ...


class SqlCatalogStore:
    """SQLAlchemy implementation of ``CatalogStore`` bound to one session."""

    def __init__(self, session: Session, location: str = 'TRU'):
        self.session = session
        self.location = location

    def find_product_by_code(self, code: str) -> Optional[ProductSnapshot]:
        product = self.session.query(Product).options(
            selectinload(Product.pricing),
            selectinload(Product.stock_levels)
        ).filter(Product.code == code).first()

        if not product:
            return None

        pricing = None
        if product.pricing is not None:
            pricing = PricingSnapshot(
                retail_price=to_money(product.pricing.retail_price),
                dealer_price=to_money(product.pricing.dealer_price),
            )

        return ProductSnapshot(
            id=product.id,
            code=product.code,
            description=product.description,
            unit_id=product.unit_id,
            pricing=pricing,
            stock_quantity=product.stock_at(self.location),
        )

    def insert_product(self, code: str, description: str, unit_id: int) -> int:
        product = Product(code=code, description=description, unit_id=unit_id)
        self.session.add(product)
        # flush() only, to get the ID without committing the caller's unit of work
        self.session.flush()
        return product.id

    def update_product(self, product_id: int, description: str, unit_id: int) -> None:
        product = self.session.get(Product, product_id)
        product.description = description
        product.unit_id = unit_id
        self.session.flush()

    def upsert_pricing(self, product_id: int, retail_price, dealer_price) -> None:
        pricing = self.session.get(ProductPricing, product_id)
        if pricing is None:
            pricing = ProductPricing(product_id=product_id)
            self.session.add(pricing)
        pricing.retail_price = to_money(retail_price)
        pricing.dealer_price = to_money(dealer_price)
        self.session.flush()

    def upsert_stock(self, product_id: int, location: str, quantity: int) -> None:
        level = self.session.get(StockLevel, (product_id, location))
        if level is None:
            level = StockLevel(product_id=product_id, location=location)
            self.session.add(level)
        level.quantity = int(quantity)
        self.session.flush()
