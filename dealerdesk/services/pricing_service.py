"""
Pricing service - tier base prices and order-level discounts.

Discounts are a function of the whole order's subtotal before discount
(not marginal, not per line). The higher threshold's rate supersedes the
lower one; thresholds are strict.

    role               tier 1                 tier 2
    counter_staff/none 0%                     -
    dealer_6           > 510,205   -> 2%      > 1,063,900 -> 6%
    dealer_4           > 510,205   -> 2%      > 1,041,700 -> 4%
    dealer_marketing   -                      > 2,500,000 -> 4%
    admin              0%                     -

Nothing here is cached: callers re-resolve whenever lines or role change.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Union

from dealerdesk.models import Role

ZERO = Decimal('0')
HUNDRED = Decimal('100')
CENTS = Decimal('0.01')

# (threshold, percent) pairs, highest threshold first
DISCOUNT_SCHEDULES = {
    Role.DEALER_6: ((Decimal('1063900'), Decimal('6')), (Decimal('510205'), Decimal('2'))),
    Role.DEALER_4: ((Decimal('1041700'), Decimal('4')), (Decimal('510205'), Decimal('2'))),
    Role.DEALER_MARKETING: ((Decimal('2500000'), Decimal('4')),),
}


@dataclass(frozen=True)
class PriceQuote:
    """Order totals for a role."""
    subtotal: Decimal
    discount_percent: Decimal
    total: Decimal

    def to_dict(self):
        return {
            'subtotal': str(self.subtotal),
            'discount_percent': str(self.discount_percent),
            'total': str(self.total),
        }


def parse_role(value: Union[Role, str, None]) -> Optional[Role]:
    """Map a stored role string to ``Role``; unknown or empty values map to None."""
    if value is None or isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        return None


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def uses_retail_price(role) -> bool:
    """Counter staff and users without a (known) tier buy at retail."""
    role = parse_role(role)
    return role is None or role == Role.COUNTER_STAFF


def base_price(role, retail_price, dealer_price) -> Decimal:
    """Pick the tier's base unit price from a product's price pair."""
    if uses_retail_price(role):
        return _to_decimal(retail_price)
    return _to_decimal(dealer_price)


def resolve_discount(role, subtotal) -> Decimal:
    """
    Resolve the order discount percent for ``role`` at ``subtotal``.

    Args:
        role: Role, role string or None
        subtotal: sum of base price x quantity over positive-quantity lines

    Returns:
        Discount percent as Decimal (0, 2, 4 or 6)
    """
    schedule = DISCOUNT_SCHEDULES.get(parse_role(role), ())
    subtotal = _to_decimal(subtotal)
    for threshold, percent in schedule:
        if subtotal > threshold:
            return percent
    return ZERO


def subtotal(lines: Iterable) -> Decimal:
    """Sum unit_price x quantity over lines with quantity > 0."""
    total = ZERO
    for line in lines:
        if line.quantity > 0:
            total += _to_decimal(line.unit_price) * line.quantity
    return total


def discounted_price(price, discount_percent) -> Decimal:
    """Apply ``discount_percent`` to a price or subtotal."""
    return _to_decimal(price) * (1 - _to_decimal(discount_percent) / HUNDRED)


def order_total(subtotal_before_discount, discount_percent) -> Decimal:
    return discounted_price(subtotal_before_discount, discount_percent).quantize(CENTS)


def quote(role, lines: Iterable) -> PriceQuote:
    """Compute subtotal, discount and total for a set of lines."""
    before = subtotal(lines)
    percent = resolve_discount(role, before)
    return PriceQuote(
        subtotal=before.quantize(CENTS),
        discount_percent=percent,
        total=order_total(before, percent),
    )
