"""
Order service - create orders and reconcile edited line items.

Edits are applied as deletes, then updates, then inserts, after the whole
order's discount has been re-resolved and stamped on every remaining line.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from dealerdesk.exceptions import (
    BusinessLogicError, EmptyOrder, NotFoundError, StorageFailure, ValidationError
)
from dealerdesk.models import AppUser, Order, OrderItem, Product
from dealerdesk.services import pricing_service
from dealerdesk.services.line_item_set import LineItem, LineItemDiff, LineItemSet
from dealerdesk.services.order_store import OrderStore, SqlOrderStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderEditPlan:
    """Everything decided before touching storage."""
    discount_percent: Decimal
    quote: pricing_service.PriceQuote
    diff: LineItemDiff


@dataclass(frozen=True)
class OrderEditResult:
    order_id: int
    discount_percent: Decimal
    subtotal: Decimal
    total: Decimal
    inserted: int = 0
    updated: int = 0
    deleted: int = 0

    def to_dict(self):
        return {
            'order_id': self.order_id,
            'discount_percent': str(self.discount_percent),
            'subtotal': str(self.subtotal),
            'total': str(self.total),
            'inserted': self.inserted,
            'updated': self.updated,
            'deleted': self.deleted,
        }


@dataclass
class OrderChanges:
    """Caller edits to an order, keyed by product id."""
    quantities: Dict[int, int] = field(default_factory=dict)
    added: Dict[int, int] = field(default_factory=dict)
    removed: List[int] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict) -> 'OrderChanges':
        """
        Parse a JSON edit payload::

            {"items": [{"product_id": 1, "quantity": 3}],
             "add": [{"product_id": 9, "quantity": 1}],
             "remove": [4]}
        """
        if not isinstance(payload, dict):
            raise ValidationError('Request body must be a JSON object')
        changes = cls()
        for entry in _list_field(payload, 'items'):
            product_id, quantity = _parse_line(entry)
            changes.quantities[product_id] = quantity
        for entry in _list_field(payload, 'add'):
            product_id, quantity = _parse_line(entry, default_quantity=1)
            changes.added[product_id] = changes.added.get(product_id, 0) + quantity
        for value in _list_field(payload, 'remove'):
            changes.removed.append(_parse_int(value, 'product_id'))
        return changes


def _list_field(payload: dict, name: str) -> list:
    value = payload.get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f'{name} must be a list')
    return value


def _parse_int(value, name) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f'{name} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer')


def _parse_line(entry, default_quantity=None):
    if not isinstance(entry, dict):
        raise ValidationError('Each line must be an object with product_id and quantity')
    product_id = _parse_int(entry.get('product_id'), 'product_id')
    quantity = entry.get('quantity', default_quantity)
    return product_id, _parse_int(quantity, 'quantity')


class OrderReconciler:
    """Bring an order's stored line items in line with an edited working set."""

    def __init__(self, store: OrderStore):
        self.store = store

    @staticmethod
    def plan(persisted: Iterable[LineItem], working: LineItemSet, role) -> OrderEditPlan:
        """
        Decide the discount and the write sets. Never touches storage.

        Pins persisted unit prices on ``working`` and stamps the resolved
        discount on every line of it.

        Raises:
            EmptyOrder: if no line with quantity > 0 would remain
        """
        persisted = [LineItem.from_record(item) for item in persisted]

        # price snapshot of a persisted line is immutable
        persisted_prices = {item.product_id: item.unit_price for item in persisted}
        for line in working:
            if line.product_id in persisted_prices:
                line.unit_price = persisted_prices[line.product_id]

        positive = working.positive_lines()
        if not positive:
            raise EmptyOrder()

        quote = pricing_service.quote(role, positive)
        working.stamp_discount(quote.discount_percent)
        diff = working.diff_against_persisted(persisted)

        return OrderEditPlan(discount_percent=quote.discount_percent, quote=quote, diff=diff)

    def reconcile(
        self,
        order_id: int,
        working: LineItemSet,
        role,
        persisted: Optional[List[LineItem]] = None,
    ) -> OrderEditResult:
        """
        Plan and apply an edit.

        Raises:
            EmptyOrder: nothing was written
            StorageFailure: a write step failed; ``step`` names it
        """
        if persisted is None:
            persisted = self.store.get_order_items(order_id)

        plan = self.plan(persisted, working, role)
        self.apply(order_id, plan.diff)

        return OrderEditResult(
            order_id=order_id,
            discount_percent=plan.discount_percent,
            subtotal=plan.quote.subtotal,
            total=plan.quote.total,
            inserted=len(plan.diff.inserts),
            updated=len(plan.diff.updates),
            deleted=len(plan.diff.deletes),
        )

    def apply(self, order_id: int, diff: LineItemDiff) -> None:
        step = 'delete'
        try:
            if diff.deletes:
                self.store.delete_items(diff.delete_ids)

            step = 'update'
            for line in diff.updates:
                self.store.update_item(line.item_id, line.quantity, line.discount_percent)

            step = 'insert'
            if diff.inserts:
                self.store.insert_items(order_id, diff.inserts)
        except Exception as e:
            logger.error(f"Order {order_id} edit failed during {step}: {e}")
            raise StorageFailure(step, e) from e


def _load_priced_products(session: Session, product_ids: Iterable[int]) -> Dict[int, Product]:
    product_ids = list(set(product_ids))
    if not product_ids:
        return {}
    products = session.query(Product).options(
        selectinload(Product.pricing)
    ).filter(Product.id.in_(product_ids)).all()
    return {p.id: p for p in products}


def _unit_price_for(product: Optional[Product], product_id: int, role) -> Decimal:
    if product is None:
        raise NotFoundError(f'Product {product_id} not found.')
    pricing = product.pricing
    if pricing is None or (not pricing.dealer_price and not pricing.retail_price):
        raise BusinessLogicError(f'Product pricing not found for "{product.code}".')
    return pricing_service.base_price(role, pricing.retail_price, pricing.dealer_price)


def apply_changes(session: Session, working: LineItemSet, changes: OrderChanges, role) -> None:
    """Apply removals, quantity edits and additions to ``working``."""
    for product_id in changes.removed:
        working.remove(product_id)

    for product_id, quantity in changes.quantities.items():
        working.set_quantity(product_id, quantity)

    new_ids = [pid for pid in changes.added if pid not in working]
    products = _load_priced_products(session, new_ids)
    for product_id, quantity in changes.added.items():
        if product_id in working:
            working.add(product_id, working.get(product_id).unit_price, quantity)
            continue
        unit_price = _unit_price_for(products.get(product_id), product_id, role)
        working.add(product_id, unit_price, quantity)


def edit_order(session: Session, order_id: int, role, changes: OrderChanges) -> OrderEditResult:
    """
    Edit an order's lines in one transaction (SQLAlchemy flavour).

    Raises:
        NotFoundError, ValidationError, EmptyOrder: order left unmodified
        StorageFailure: write failed, transaction rolled back
    """
    try:
        order = session.get(Order, order_id)
        if not order:
            raise NotFoundError(f'Order {order_id} not found.')

        store = SqlOrderStore(session)
        persisted = store.get_order_items(order_id)
        working = LineItemSet.from_persisted(persisted)
        apply_changes(session, working, changes, role)

        result = OrderReconciler(store).reconcile(order_id, working, role, persisted=persisted)

        try:
            session.commit()
        except Exception as e:
            raise StorageFailure('commit', e) from e

        logger.info(
            f"Order {order_id} updated: {result.inserted} inserted, {result.updated} updated, "
            f"{result.deleted} deleted, discount {result.discount_percent}%"
        )
        return result
    except Exception:
        session.rollback()
        raise


def create_order(session: Session, user: AppUser, lines: Iterable[dict]) -> OrderEditResult:
    """
    Create an order for ``user`` from ``[{'product_id', 'quantity'}]``.

    Unit prices are snapshotted from the user's tier; zero-quantity lines are
    dropped and the resolved discount is stamped on every line.
    """
    role = pricing_service.parse_role(user.role)
    parsed = [_parse_line(entry, default_quantity=1) for entry in lines]

    try:
        products = _load_priced_products(session, [pid for pid, _ in parsed])
        working = LineItemSet()
        for product_id, quantity in parsed:
            if product_id in working:
                working.add(product_id, working.get(product_id).unit_price, quantity)
            else:
                working.add(product_id, _unit_price_for(products.get(product_id), product_id, role), quantity)

        plan = OrderReconciler.plan([], working, role)

        step = 'create'
        try:
            order = Order(user_id=user.id)
            session.add(order)
            session.flush()

            step = 'insert'
            SqlOrderStore(session).insert_items(order.id, plan.diff.inserts)

            step = 'commit'
            session.commit()
        except Exception as e:
            raise StorageFailure(step, e) from e

        logger.info(f"Order {order.id} created with {len(plan.diff.inserts)} lines")
        return OrderEditResult(
            order_id=order.id,
            discount_percent=plan.discount_percent,
            subtotal=plan.quote.subtotal,
            total=plan.quote.total,
            inserted=len(plan.diff.inserts),
        )
    except Exception:
        session.rollback()
        raise


def get_order_details(session: Session, order_id: int, role) -> dict:
    """
    Load an order with its lines and totals.

    ``total`` is what was saved (each line's stored discount applied);
    ``quote`` re-resolves the discount for ``role`` over the same lines.
    """
    order = session.query(Order).options(
        selectinload(Order.items).selectinload(OrderItem.product)
    ).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError(f'Order {order_id} not found.')

    lines = [LineItem.from_record(item) for item in order.items]
    items = []
    total = pricing_service.ZERO
    for item, line in zip(order.items, lines):
        line_total = pricing_service.discounted_price(line.unit_price * line.quantity, line.discount_percent)
        total += line_total
        items.append({
            'item_id': line.item_id,
            'product_id': line.product_id,
            'code': item.product.code,
            'description': item.product.description,
            'quantity': line.quantity,
            'unit_price': str(line.unit_price),
            'discount_percent': str(line.discount_percent),
            'line_total': str(line_total.quantize(pricing_service.CENTS)),
        })

    return {
        'order_id': order.id,
        'user_id': order.user_id,
        'created_at': order.created_at.isoformat() if order.created_at else None,
        'items': items,
        'subtotal': str(pricing_service.subtotal(lines).quantize(pricing_service.CENTS)),
        'total': str(total.quantize(pricing_service.CENTS)),
        'quote': pricing_service.quote(role, lines).to_dict(),
    }
