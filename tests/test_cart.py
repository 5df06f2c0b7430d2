from __future__ import annotations

import random
from decimal import Decimal

from pos_billing.cart import CartLedger
from pos_billing.errors import ItemNotFound, OutOfStock, StockLimitExceeded, UnknownPaymentMethod
from pos_billing.models import DiscountSpec


def test_add_creates_line_at_quantity_one(ledger):
    result = ledger.add("bc1")

    assert result.ok
    assert result.message == "Butter Chicken added to cart"
    [line] = ledger.lines
    assert (line.item_id, line.name, line.unit_price, line.quantity) == ("bc1", "Butter Chicken", Decimal("280"), 1)


def test_add_out_of_stock_item_leaves_ledger_unchanged(ledger):
    ledger.add("bc1")
    before = ledger.lines

    result = ledger.add("las1")

    assert not result.ok
    assert isinstance(result.error, OutOfStock)
    assert "out of stock" in result.message
    assert ledger.lines == before


def test_add_past_stock_is_refused(ledger):
    for _ in range(3):
        assert ledger.add("nan1").ok

    result = ledger.add("nan1")

    assert isinstance(result.error, StockLimitExceeded)
    assert result.error.stock == 3
    assert ledger.quantity_of("nan1") == 3


def test_add_unknown_item_reports_not_found(ledger):
    result = ledger.add("missing")
    assert isinstance(result.error, ItemNotFound)
    assert ledger.is_empty


def test_set_quantity_above_stock_keeps_previous_quantity(ledger):
    ledger.set_quantity("nan1", 2)

    result = ledger.set_quantity("nan1", 5)

    assert isinstance(result.error, StockLimitExceeded)
    assert result.error.requested == 5
    assert ledger.quantity_of("nan1") == 2


def test_set_quantity_zero_or_negative_removes_line(ledger):
    ledger.add("bc1")
    ledger.add("nan1")

    assert ledger.set_quantity("bc1", 0).ok
    assert ledger.set_quantity("nan1", -3).ok
    assert ledger.is_empty


def test_set_quantity_updates_existing_line(ledger):
    ledger.add("bc1")
    assert ledger.set_quantity("bc1", 4).ok
    assert ledger.quantity_of("bc1") == 4
    assert ledger.item_count == 4


def test_remove_absent_item_is_noop(ledger):
    result = ledger.remove("bc1")
    assert result.ok
    assert result.error is None


def test_clear_resets_lines_and_customer_fields(ledger):
    ledger.add("bc1")
    ledger.set_customer("Asha", "9876543210", "T4")
    ledger.set_discount(DiscountSpec("percentage", Decimal("10")))
    ledger.set_payment_method("card")

    ledger.clear()

    assert ledger.is_empty
    assert (ledger.customer_name, ledger.customer_phone, ledger.table_number) == ("", "", "")
    assert ledger.discount == DiscountSpec()
    assert ledger.payment_method == "cash"
    assert ledger.pricing.total == Decimal("0.00")


def test_pricing_recomputed_on_every_mutation(ledger):
    ledger.add("bc1")
    assert ledger.pricing.subtotal == Decimal("280.00")

    ledger.add("bc1")
    ledger.set_discount(DiscountSpec("percentage", Decimal("10")))

    assert ledger.pricing.subtotal == Decimal("560.00")
    assert ledger.pricing.total == Decimal("604.80")


def test_unknown_payment_method_refused(ledger, store):
    ledger.add("bc1")

    result = ledger.set_payment_method("cheque")

    assert not result.ok
    assert isinstance(result.error, UnknownPaymentMethod)
    assert result.message == "Unknown payment method: cheque"
    assert ledger.payment_method == "cash"
    assert store.load().payment_method == "cash"


def test_random_mutations_never_exceed_stock(catalog):
    ledger = CartLedger(catalog)
    rng = random.Random(1234)
    item_ids = ["bc1", "nan1", "las1"]
    stock = {item.item_id: item.stock for item in catalog.items()}

    for _ in range(500):
        item_id = rng.choice(item_ids)
        if rng.random() < 0.6:
            ledger.add(item_id)
        else:
            ledger.set_quantity(item_id, rng.randint(-2, 14))
        for line in ledger.lines:
            assert 1 <= line.quantity <= stock[line.item_id]


def test_snapshot_mirrors_state_after_each_mutation(ledger, store):
    ledger.add("bc1")
    assert store.load().lines[0].quantity == 1

    ledger.add("bc1")
    assert store.load().lines[0].quantity == 2

    ledger.set_customer("Asha", "", "T4")
    snapshot = store.load()
    assert snapshot.customer_name == "Asha"
    assert snapshot.table_number == "T4"


def test_snapshot_removed_when_last_line_removed(ledger, store):
    ledger.add("bc1")
    ledger.remove("bc1")
    assert store.load() is None


def test_refused_mutation_does_not_write_snapshot(ledger, store):
    ledger.add("bc1")
    store.clear()

    ledger.add("las1")

    assert store.load() is None


def test_restore_rehydrates_lines_and_fields(ledger, catalog, store):
    ledger.add("bc1")
    ledger.add("nan1")
    ledger.set_customer("Ravi", "999", "T2")
    ledger.set_payment_method("upi")
    order = ledger.to_pending_order()

    fresh = CartLedger(catalog)
    fresh.restore(order)

    assert fresh.lines == ledger.lines
    assert fresh.customer_name == "Ravi"
    assert fresh.payment_method == "upi"
    assert fresh.pricing == ledger.pricing
    assert fresh.order_key == ledger.order_key


def test_clear_starts_a_new_order_key(ledger):
    ledger.add("bc1")
    first = ledger.order_key

    ledger.set_quantity("bc1", 3)
    assert ledger.order_key == first

    ledger.clear()
    assert ledger.order_key != first


def test_order_key_survives_snapshot_restore(ledger, catalog, store):
    ledger.add("bc1")

    fresh = CartLedger(catalog)
    fresh.restore(store.load())

    assert fresh.order_key == ledger.order_key
