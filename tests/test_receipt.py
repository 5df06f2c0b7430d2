from __future__ import annotations

import time
from decimal import Decimal

import pytest

from pos_billing.models import Bill
from pos_billing.receipt import BusinessInfo, render_receipt

from conftest import BILL_RESPONSE


@pytest.fixture
def local_tz(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is unavailable on this platform")

    def use(name):
        monkeypatch.setenv("TZ", name)
        time.tzset()

    yield use
    monkeypatch.undo()
    time.tzset()


def _bill(**overrides) -> Bill:
    payload = dict(BILL_RESPONSE)
    payload.update(overrides)
    return Bill.from_api(payload)


def test_bill_from_api_maps_fields():
    bill = _bill()
    assert bill.bill_id == "64f0c0ffee"
    assert bill.tax == Decimal("100.8")
    assert bill.items[0].line_total == Decimal("560")
    assert bill.created_at is not None and bill.created_at.year == 2024


def test_receipt_contains_mandatory_fields(local_tz):
    local_tz("UTC")
    receipt = render_receipt(_bill(), BusinessInfo(name="Spice Route", address="MG Road", phone="080-1234", gstin="29ABC"))
    text = receipt.text

    for expected in (
        "Spice Route",
        "MG Road",
        "BILL NO: B-1001",
        "Date: 01/05/2024",
        "Time: 12:30 PM",
        "Customer: Asha",
        "Phone: 9876543210",
        "Table: T4",
        "Payment: UPI",
        "Butter Chicken",
        "2 x Rs.280.00",
        "560.00",
        "Rs.100.80",
        "-Rs.56.00",
        "Rs.604.80",
    ):
        assert expected in text, expected


def test_receipt_lines_fit_width():
    receipt = render_receipt(_bill(customerName="A customer with a remarkably long name"), width=32)
    assert all(len(line) <= 32 for line in receipt.lines)


def test_long_item_names_are_truncated():
    items = [{"name": "Extra Large Family Size Chicken Biryani", "price": 450, "quantity": 1, "total": 450}]
    receipt = render_receipt(_bill(items=items))
    assert any(".." in line and "450.00" in line for line in receipt.lines)


def test_zero_discount_row_omitted():
    receipt = render_receipt(_bill(discount=0))
    assert "Discount" not in receipt.text


def test_tax_label_follows_rate():
    receipt = render_receipt(_bill(), tax_rate=Decimal("0.05"))
    assert "GST (5%):" in receipt.text


def test_html_document_escapes_content():
    receipt = render_receipt(_bill(customerName="<Tom & Jerry>"))
    document = receipt.to_html()

    assert "&lt;Tom &amp; Jerry&gt;" in document
    assert "<title>Receipt - B-1001</title>" in document
    assert "window.print()" in document


def test_server_timestamp_printed_in_local_time(local_tz):
    local_tz("Asia/Kolkata")

    receipt = render_receipt(_bill(createdAt="2024-05-01T20:00:00.000Z"))

    assert "Date: 02/05/2024" in receipt.lines
    assert "Time: 01:30 AM" in receipt.lines
