"""Order store - storage boundary for order line items."""
from typing import Iterable, List, Protocol

from sqlalchemy.orm import Session

from dealerdesk.models import OrderItem
from dealerdesk.services.line_item_set import LineItem


class OrderStore(Protocol):
    """Operations the order reconciler needs from storage."""

    def get_order_items(self, order_id: int) -> List[LineItem]: ...

    def insert_items(self, order_id: int, items: Iterable[LineItem]) -> List[int]: ...

    def update_item(self, item_id: int, quantity: int, discount_percent) -> None: ...

    def delete_items(self, item_ids: Iterable[int]) -> int: ...


class SqlOrderStore:
    """SQLAlchemy implementation of ``OrderStore``. Never commits."""

    def __init__(self, session: Session):
        self.session = session

    def get_order_items(self, order_id: int) -> List[LineItem]:
        items = self.session.query(OrderItem).filter(
            OrderItem.order_id == order_id
        ).order_by(OrderItem.id).all()
        return [LineItem.from_record(item) for item in items]

    def insert_items(self, order_id: int, items: Iterable[LineItem]) -> List[int]:
        rows = [
            OrderItem(
                order_id=order_id,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount=item.discount_percent,
            )
            for item in items
        ]
        self.session.add_all(rows)
        self.session.flush()
        return [row.id for row in rows]

    def update_item(self, item_id: int, quantity: int, discount_percent) -> None:
        updated = self.session.query(OrderItem).filter(
            OrderItem.id == item_id
        ).update(
            {'quantity': quantity, 'discount': discount_percent},
            synchronize_session='fetch'
        )
        if not updated:
            raise LookupError(f'Order item {item_id} no longer exists')

    def delete_items(self, item_ids: Iterable[int]) -> int:
        item_ids = list(item_ids)
        if not item_ids:
            return 0
        deleted = self.session.query(OrderItem).filter(
            OrderItem.id.in_(item_ids)
        ).delete(synchronize_session='fetch')
        # delete before insert: the (order_id, product_id) key may be reused
        self.session.flush()
        return deleted
