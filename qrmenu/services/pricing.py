"""
Order Pricing

Subtotal, tax and total are derived from the prices captured on the
order lines, never from the live catalog.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol

CENT = Decimal("0.01")


class PricedLine(Protocol):
    price: Decimal
    quantity: int


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def to_money(value) -> Decimal:
    """Round a monetary value to cents, half-up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_order_totals(lines: Iterable[PricedLine], tax_rate: Decimal) -> PriceBreakdown:
    """Calculate order subtotal, tax, and total."""
    subtotal = to_money(sum((to_money(line.price) * line.quantity for line in lines), Decimal("0")))
    tax = to_money(subtotal * Decimal(str(tax_rate)))
    return PriceBreakdown(subtotal=subtotal, tax=tax, total=subtotal + tax)
