from __future__ import annotations

from decimal import Decimal

import pytest

from pos_billing.models import CartLine, DiscountSpec
from pos_billing.pricing import discount_amount, price, round_money


def _line(unit_price: str, quantity: int, item_id: str = "x") -> CartLine:
    return CartLine(item_id=item_id, name=item_id, unit_price=Decimal(unit_price), quantity=quantity)


def test_butter_chicken_with_ten_percent_discount():
    result = price([_line("280", 2)], DiscountSpec("percentage", Decimal("10")), Decimal("0.18"))

    assert result.subtotal == Decimal("560.00")
    assert result.tax == Decimal("100.80")
    assert result.discount_amount == Decimal("56.00")
    assert result.total == Decimal("604.80")


def test_empty_cart_prices_to_zero():
    result = price([], None, Decimal("0.18"))
    assert (result.subtotal, result.tax, result.discount_amount, result.total) == (0, 0, 0, 0)


def test_subtotal_rounded_once_not_per_line():
    result = price([_line("0.335", 3)], tax_rate=Decimal("0"))
    assert result.subtotal == Decimal("1.01")


def test_tax_rounds_half_up():
    result = price([_line("10.25", 1)], tax_rate=Decimal("0.18"))
    assert result.tax == Decimal("1.85")


def test_price_is_deterministic():
    lines = [_line("99.99", 3, "a"), _line("12.345", 7, "b")]
    discount = DiscountSpec("percentage", Decimal("12.5"))

    first = price(lines, discount, Decimal("0.18"))
    second = price(list(lines), discount, Decimal("0.18"))

    assert first == second
    assert str(first.total) == str(second.total)


@pytest.mark.parametrize("value", ["0", "0.01", "559.99", "560", "561", "100000"])
def test_amount_discount_never_exceeds_subtotal(value):
    result = price([_line("280", 2)], DiscountSpec("amount", Decimal(value)), Decimal("0.18"))
    assert result.discount_amount <= result.subtotal
    assert result.discount_amount == min(Decimal(value), Decimal("560")).quantize(Decimal("0.01"))


@pytest.mark.parametrize("value, expected", [("-5", "0"), ("0", "0"), ("50", "50"), ("150", "100")])
def test_percentage_clamped_to_0_100(value, expected):
    spec = DiscountSpec("percentage", Decimal(value))
    assert spec.value == Decimal(expected)
    assert discount_amount(Decimal("200.00"), spec) <= Decimal("200.00")


def test_negative_amount_clamped_to_zero():
    assert DiscountSpec("amount", Decimal("-20")).value == Decimal("0")


def test_unknown_discount_type_rejected():
    with pytest.raises(ValueError):
        DiscountSpec("bogo", Decimal("1"))


def test_total_non_negative_with_full_discount_and_zero_tax():
    result = price([_line("45.50", 2)], DiscountSpec("amount", Decimal("91")), Decimal("0"))
    assert result.discount_amount == result.subtotal
    assert result.total == Decimal("0.00")


def test_full_percentage_discount_leaves_only_tax():
    result = price([_line("100", 1)], DiscountSpec("percentage", Decimal("100")), Decimal("0.18"))
    assert result.total == Decimal("18.00")


def test_round_money_quantizes_to_cents():
    assert round_money(Decimal("2.675")) == Decimal("2.68")
    assert round_money(Decimal("2")) == Decimal("2.00")
