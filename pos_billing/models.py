"""Domain models for pos-billing."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

PAYMENT_METHODS = ("cash", "card", "upi", "online")
DEFAULT_PAYMENT_METHOD = "cash"

DISCOUNT_AMOUNT = "amount"
DISCOUNT_PERCENTAGE = "percentage"

PRINT_CHANNEL_REMOTE = "remote"
PRINT_CHANNEL_USB = "usb"
PRINT_CHANNEL_DOCUMENT = "document"


def to_money(value: Any) -> Decimal:
    """Convert an API or user supplied number to Decimal via its string form."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


@dataclass(frozen=True)
class CatalogItem:
    """A sellable menu item as last reported by the menu service."""

    item_id: str
    name: str
    category: str
    price: Decimal
    stock: int
    is_available: bool = True

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> CatalogItem:
        item_id = payload.get("_id") or payload.get("id")
        if not item_id:
            raise ValueError(f"Menu item without id: {payload!r}")
        return cls(
            item_id=str(item_id),
            name=str(payload.get("name", "")),
            category=str(payload.get("category", "")),
            price=to_money(payload.get("price")),
            stock=max(0, int(payload.get("stock") or 0)),
            is_available=bool(payload.get("isAvailable", True)),
        )


@dataclass(frozen=True)
class CartLine:
    """One cart row. A line with quantity zero is removed, never kept."""

    item_id: str
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "itemId": self.item_id,
            "name": self.name,
            "unitPrice": str(self.unit_price),
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CartLine:
        return cls(
            item_id=str(payload["itemId"]),
            name=str(payload.get("name", "")),
            unit_price=to_money(payload.get("unitPrice")),
            quantity=int(payload["quantity"]),
        )


@dataclass(frozen=True)
class DiscountSpec:
    """Discount request. Percentages are clamped to 0..100 on construction."""

    type: str = DISCOUNT_AMOUNT
    value: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if self.type not in (DISCOUNT_AMOUNT, DISCOUNT_PERCENTAGE):
            raise ValueError(f"Unknown discount type: {self.type!r}")
        value = max(Decimal("0"), to_money(self.value))
        if self.type == DISCOUNT_PERCENTAGE:
            value = min(value, Decimal("100"))
        object.__setattr__(self, "value", value)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "value": str(self.value)}

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> DiscountSpec:
        if not payload:
            return cls()
        return cls(type=str(payload.get("type", DISCOUNT_AMOUNT)), value=to_money(payload.get("value")))


@dataclass(frozen=True)
class PricingResult:
    """Derived totals for a cart. Never persisted on its own."""

    subtotal: Decimal
    tax: Decimal
    discount_amount: Decimal
    total: Decimal


@dataclass
class PendingOrder:
    """Durable snapshot of an unsubmitted cart and its customer fields."""

    lines: list[CartLine]
    customer_name: str = ""
    customer_phone: str = ""
    table_number: str = ""
    discount: DiscountSpec = field(default_factory=DiscountSpec)
    payment_method: str = DEFAULT_PAYMENT_METHOD
    # Idempotency key for the bill this cart becomes; survives failed submits and restarts.
    order_key: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "tableNumber": self.table_number,
            "discount": self.discount.to_dict(),
            "paymentMethod": self.payment_method,
            "orderKey": self.order_key,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PendingOrder:
        return cls(
            lines=[CartLine.from_dict(row) for row in payload.get("lines", [])],
            customer_name=str(payload.get("customerName") or ""),
            customer_phone=str(payload.get("customerPhone") or ""),
            table_number=str(payload.get("tableNumber") or ""),
            discount=DiscountSpec.from_dict(payload.get("discount")),
            payment_method=str(payload.get("paymentMethod") or DEFAULT_PAYMENT_METHOD),
            order_key=str(payload.get("orderKey") or ""),
        )


@dataclass(frozen=True)
class BillItem:
    """A priced row on a server-issued bill."""

    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> BillItem:
        unit_price = to_money(payload.get("price"))
        quantity = int(payload.get("quantity") or 0)
        total = payload.get("total")
        line_total = to_money(total) if total else unit_price * quantity
        return cls(name=str(payload.get("name", "")), unit_price=unit_price, quantity=quantity, line_total=line_total)


@dataclass(frozen=True)
class Bill:
    """Server-authoritative bill record, read back from the submission response."""

    bill_id: str
    bill_number: str
    items: tuple[BillItem, ...]
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    payment_method: str
    customer_name: str
    customer_phone: str | None
    table_number: str | None
    created_at: datetime | None
    status: str

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Bill:
        tax = payload.get("gst") if payload.get("gst") is not None else payload.get("tax")
        return cls(
            bill_id=str(payload.get("_id") or payload.get("id") or ""),
            bill_number=str(payload.get("billNumber") or ""),
            items=tuple(BillItem.from_api(row) for row in payload.get("items") or []),
            subtotal=to_money(payload.get("subtotal")),
            tax=to_money(tax),
            discount=to_money(payload.get("discount")),
            total=to_money(payload.get("total")),
            payment_method=str(payload.get("paymentMethod") or DEFAULT_PAYMENT_METHOD),
            customer_name=str(payload.get("customerName") or ""),
            customer_phone=_optional_text(payload.get("customerPhone")),
            table_number=_optional_text(payload.get("tableNumber")),
            created_at=_parse_timestamp(payload.get("createdAt")),
            status=str(payload.get("status") or "paid"),
        )


@dataclass(frozen=True)
class PrinterInfo:
    name: str
    is_default: bool = False


@dataclass(frozen=True)
class PrinterStatus:
    """Printer availability as reported by the print service."""

    status: str
    printers: tuple[PrinterInfo, ...] = ()

    @property
    def is_available(self) -> bool:
        return self.status == "online" and bool(self.printers)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> PrinterStatus:
        rows = payload.get("printers")
        if rows is None:
            rows = payload.get("thermalPrinters") or []
        return cls(
            status=str(payload.get("status") or "offline"),
            printers=tuple(
                PrinterInfo(name=str(row.get("name", "")), is_default=bool(row.get("isDefault", False)))
                for row in rows
            ),
        )


@dataclass(frozen=True)
class PrintResult:
    """Outcome of one print request."""

    success: bool
    channel: str
    message: str = ""
