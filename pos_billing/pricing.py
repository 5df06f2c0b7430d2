"""Pure pricing: subtotal, tax, discount and total for a set of cart lines."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from pos_billing.config import TAX_RATE
from pos_billing.models import DISCOUNT_PERCENTAGE, CartLine, DiscountSpec, PricingResult

_CENTS = Decimal("0.01")
_ZERO = Decimal("0.00")


def round_money(value: Decimal) -> Decimal:
    """Quantize to two decimals, halves rounded away from zero."""
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def discount_amount(subtotal: Decimal, discount: DiscountSpec) -> Decimal:
    """Resolve a discount spec against a subtotal. Never exceeds the subtotal."""
    if discount.type == DISCOUNT_PERCENTAGE:
        amount = round_money(subtotal * discount.value / Decimal("100"))
    else:
        amount = round_money(discount.value)
    return max(_ZERO, min(amount, subtotal))


def price(
    lines: Iterable[CartLine],
    discount: DiscountSpec | None = None,
    tax_rate: Decimal = TAX_RATE,
) -> PricingResult:
    """
    Price a cart.

    The subtotal is summed at full precision and rounded once; tax and the
    discount are derived from the rounded subtotal. The total is floored at 0.
    """
    raw_subtotal = sum((line.line_total for line in lines), Decimal("0"))
    subtotal = round_money(raw_subtotal)
    tax = round_money(subtotal * tax_rate)
    discount_value = discount_amount(subtotal, discount or DiscountSpec())
    total = max(_ZERO, round_money(subtotal + tax - discount_value))
    return PricingResult(subtotal=subtotal, tax=tax, discount_amount=discount_value, total=total)
