"""Fixed-layout receipt rendering for text printers and printable documents."""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from pos_billing.config import (
    BUSINESS_ADDRESS,
    BUSINESS_GSTIN,
    BUSINESS_NAME,
    BUSINESS_PHONE,
    CURRENCY_PREFIX,
    RECEIPT_WIDTH_CHARS,
    TAX_RATE,
)
from pos_billing.models import Bill

_QTY_WIDTH = 4
_AMOUNT_WIDTH = 9


@dataclass(frozen=True)
class BusinessInfo:
    name: str = BUSINESS_NAME
    address: str = BUSINESS_ADDRESS
    phone: str = BUSINESS_PHONE
    gstin: str = BUSINESS_GSTIN


@dataclass(frozen=True)
class Receipt:
    """A rendered receipt: the bill it came from plus its printable lines."""

    bill: Bill
    lines: tuple[str, ...]
    width: int = RECEIPT_WIDTH_CHARS

    @property
    def text(self) -> str:
        return "\n".join(self.lines) + "\n"

    @property
    def title(self) -> str:
        return f"Receipt - {self.bill.bill_number}"

    def to_html(self) -> str:
        """Standalone document that opens the host print dialog on load."""
        body = html.escape(self.text)
        return (
            "<!DOCTYPE html>\n"
            "<html>\n"
            "<head>\n"
            '<meta charset="utf-8">\n'
            f"<title>{html.escape(self.title)}</title>\n"
            "<style>\n"
            "@page { size: 80mm auto; margin: 2mm; }\n"
            "body { font-family: 'Courier New', monospace; font-size: 12px; margin: 0; padding: 8px; color: #000; }\n"
            "pre { margin: 0; white-space: pre; }\n"
            "</style>\n"
            "</head>\n"
            '<body onload="window.print()">\n'
            f"<pre>{body}</pre>\n"
            "</body>\n"
            "</html>\n"
        )


def format_money(value: Decimal) -> str:
    return f"{value:.2f}"


def _fit(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    if width <= 2:
        return text[:width]
    return text[: width - 2] + ".."


def _center(text: str, width: int) -> str:
    return _fit(text, width).center(width).rstrip()


def _split_row(label: str, value: str, width: int) -> str:
    label = _fit(label, max(1, width - len(value) - 1))
    return f"{label}{value.rjust(width - len(label))}"


def _item_rows(bill: Bill, width: int) -> list[str]:
    name_width = width - _QTY_WIDTH - _AMOUNT_WIDTH
    rows = [
        "ITEM".ljust(name_width) + "QTY".rjust(_QTY_WIDTH) + "AMOUNT".rjust(_AMOUNT_WIDTH),
        "-" * width,
    ]
    for idx, item in enumerate(bill.items, start=1):
        label = _fit(f"{idx}. {item.name}", name_width - 1).ljust(name_width)
        rows.append(
            label + str(item.quantity).rjust(_QTY_WIDTH) + format_money(item.line_total).rjust(_AMOUNT_WIDTH)
        )
        rows.append(f"   {item.quantity} x {CURRENCY_PREFIX}{format_money(item.unit_price)}")
    return rows


def render_receipt(
    bill: Bill,
    business: BusinessInfo | None = None,
    width: int = RECEIPT_WIDTH_CHARS,
    printed_at: datetime | None = None,
    tax_rate: Decimal = TAX_RATE,
) -> Receipt:
    """Lay out a bill as header, details, items, totals and footer."""
    business = business or BusinessInfo()
    issued = bill.created_at or printed_at or datetime.now()
    if issued.tzinfo is not None:
        issued = issued.astimezone()
    heavy = "=" * width
    light = "-" * width

    lines: list[str] = [
        _center(business.name, width),
        _center(business.address, width),
        _center(f"Phone: {business.phone}", width),
        _center(f"GSTIN: {business.gstin}", width),
        heavy,
        f"BILL NO: {bill.bill_number or 'N/A'}",
        f"Date: {issued.strftime('%d/%m/%Y')}",
        f"Time: {issued.strftime('%I:%M %p')}",
    ]
    if bill.customer_name:
        lines.append(_fit(f"Customer: {bill.customer_name}", width))
    if bill.customer_phone:
        lines.append(_fit(f"Phone: {bill.customer_phone}", width))
    if bill.table_number:
        lines.append(_fit(f"Table: {bill.table_number}", width))
    lines.append(f"Payment: {bill.payment_method.upper()}")
    lines.append(heavy)

    lines.extend(_item_rows(bill, width))
    lines.append(light)

    lines.append(_split_row("Subtotal:", f"{CURRENCY_PREFIX}{format_money(bill.subtotal)}", width))
    tax_label = f"GST ({(tax_rate * 100).normalize():f}%):"
    lines.append(_split_row(tax_label, f"{CURRENCY_PREFIX}{format_money(bill.tax)}", width))
    if bill.discount > 0:
        lines.append(_split_row("Discount:", f"-{CURRENCY_PREFIX}{format_money(bill.discount)}", width))
    lines.append(heavy)
    lines.append(_split_row("TOTAL:", f"{CURRENCY_PREFIX}{format_money(bill.total)}", width))
    lines.append(heavy)

    lines.extend(
        [
            "",
            _center("Thank You for Choosing Us!", width),
            _center("Please visit again", width),
        ]
    )
    return Receipt(bill=bill, lines=tuple(lines), width=width)
