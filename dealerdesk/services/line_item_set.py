"""In-memory working set of an order's line items."""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from dealerdesk.exceptions import InvalidQuantity, NotFoundError

ZERO = Decimal('0')


@dataclass
class LineItem:
    """One order line. ``item_id`` is None until the line is persisted."""
    product_id: int
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal = ZERO
    item_id: Optional[int] = None

    @property
    def is_new(self) -> bool:
        return self.item_id is None

    @classmethod
    def from_record(cls, record) -> 'LineItem':
        """Build from an ``OrderItem`` row (or anything shaped like one)."""
        if isinstance(record, LineItem):
            return replace(record)
        return cls(
            product_id=record.product_id,
            quantity=record.quantity,
            unit_price=Decimal(str(record.unit_price)),
            discount_percent=Decimal(str(record.discount or 0)),
            item_id=record.id,
        )


@dataclass(frozen=True)
class LineItemDiff:
    """Disjoint write sets that bring persisted lines in line with a working set."""
    inserts: Tuple[LineItem, ...] = ()
    updates: Tuple[LineItem, ...] = ()
    deletes: Tuple[LineItem, ...] = ()
    # new lines set to 0 before ever being saved; nothing to write for them
    discarded: Tuple[LineItem, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.inserts or self.updates or self.deletes)

    @property
    def delete_ids(self) -> List[int]:
        return [line.item_id for line in self.deletes]


class LineItemSet:
    """
    Order lines keyed by product, at most one line per product.

    Quantity 0 is a transient "marked for removal" state; it never survives
    ``diff_against_persisted`` as an insert or update.
    """

    def __init__(self, lines: Iterable[LineItem] = ()):
        self._lines: Dict[int, LineItem] = {}
        for line in lines:
            if line.quantity < 0:
                raise InvalidQuantity(line.product_id, line.quantity)
            if line.product_id in self._lines:
                self._lines[line.product_id].quantity += line.quantity
            else:
                self._lines[line.product_id] = replace(line)

    @classmethod
    def from_persisted(cls, records: Iterable) -> 'LineItemSet':
        return cls(LineItem.from_record(record) for record in records)

    def __iter__(self) -> Iterator[LineItem]:
        return iter(self._lines.values())

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, product_id) -> bool:
        return product_id in self._lines

    def get(self, product_id) -> Optional[LineItem]:
        return self._lines.get(product_id)

    def add(self, product_id, unit_price, quantity: int = 1) -> LineItem:
        """Add a product, or bump the quantity of its existing line."""
        if quantity < 0:
            raise InvalidQuantity(product_id, quantity)

        line = self._lines.get(product_id)
        if line:
            # price snapshot of an existing line stays as it is
            line.quantity += quantity
            return line

        line = LineItem(
            product_id=product_id,
            quantity=quantity,
            unit_price=Decimal(str(unit_price)),
        )
        self._lines[product_id] = line
        return line

    def set_quantity(self, product_id, quantity: int) -> LineItem:
        if quantity < 0:
            raise InvalidQuantity(product_id, quantity)
        line = self._lines.get(product_id)
        if line is None:
            raise NotFoundError(f'Product {product_id} is not in the order.')
        line.quantity = quantity
        return line

    def remove(self, product_id) -> None:
        self._lines.pop(product_id, None)

    def positive_lines(self) -> List[LineItem]:
        return [line for line in self._lines.values() if line.quantity > 0]

    def stamp_discount(self, discount_percent) -> None:
        """Discount is order-scoped: every line carries the same percent."""
        percent = Decimal(str(discount_percent))
        for line in self._lines.values():
            line.discount_percent = percent

    def diff_against_persisted(self, persisted: Iterable) -> LineItemDiff:
        """
        Partition this working set against the persisted lines.

        Returns:
            LineItemDiff where
            - inserts: new lines with quantity > 0
            - updates: existing lines with quantity > 0 whose quantity or
              discount changed (carrying the persisted id and unit price)
            - deletes: persisted lines now absent, or present with quantity 0
            - discarded: new lines with quantity 0
        """
        persisted_by_product = {}
        for record in persisted:
            line = LineItem.from_record(record)
            persisted_by_product[line.product_id] = line

        inserts, updates, deletes, discarded = [], [], [], []

        for line in self._lines.values():
            existing = persisted_by_product.pop(line.product_id, None)
            if existing is None:
                if line.quantity > 0:
                    inserts.append(replace(line, item_id=None))
                else:
                    discarded.append(replace(line))
                continue

            if line.quantity == 0:
                deletes.append(existing)
            elif (line.quantity != existing.quantity
                  or line.discount_percent != existing.discount_percent):
                updates.append(replace(
                    line,
                    item_id=existing.item_id,
                    unit_price=existing.unit_price,
                ))

        # persisted lines that were removed from the working set
        deletes.extend(persisted_by_product.values())

        return LineItemDiff(
            inserts=tuple(inserts),
            updates=tuple(updates),
            deletes=tuple(deletes),
            discarded=tuple(discarded),
        )
