"""Rich text helpers for the billing terminal."""

from __future__ import annotations

from rich.text import Text

from pos_billing.config import CURRENCY_PREFIX
from pos_billing.models import CartLine, CatalogItem, DiscountSpec, DISCOUNT_PERCENTAGE, PricingResult
from pos_billing.receipt import format_money


def stock_style(stock: int) -> str:
    """Return a consistent badge style for stock levels."""
    if stock > 10:
        return "bold #0b1f0f on #5fbf72"
    if stock > 0:
        return "bold #1f1400 on #e0a63a"
    return "bold #ffffff on #b23a48"


def format_catalog_item(item: CatalogItem, in_cart: int = 0) -> Text:
    """Render a catalog row with price and a colored stock badge."""
    text = Text()
    text.append(f" {item.stock} ", style=stock_style(item.stock - in_cart))
    text.append(f" {item.name}")
    text.append(f"  {CURRENCY_PREFIX}{format_money(item.price)}", style="dim")
    if item.stock <= 0:
        text.append("  out of stock", style="#b23a48")
    return text


def format_cart_line(line: CartLine) -> Text:
    text = Text()
    text.append(f"{line.quantity:>3} x ", style="bold")
    text.append(line.name)
    text.append(f"  @ {format_money(line.unit_price)}", style="dim")
    text.append(f"  = {format_money(line.line_total)}")
    return text


def format_discount(discount: DiscountSpec) -> str:
    if discount.type == DISCOUNT_PERCENTAGE:
        return f"{discount.value.normalize():f}%"
    return f"{CURRENCY_PREFIX}{format_money(discount.value)}"


def format_totals(pricing: PricingResult) -> Text:
    """Render the subtotal/tax/discount/total block."""
    text = Text()
    text.append(f"Subtotal  {CURRENCY_PREFIX}{format_money(pricing.subtotal)}\n")
    text.append(f"GST       {CURRENCY_PREFIX}{format_money(pricing.tax)}\n")
    if pricing.discount_amount > 0:
        text.append(f"Discount -{CURRENCY_PREFIX}{format_money(pricing.discount_amount)}\n", style="#5fbf72")
    text.append(f"TOTAL     {CURRENCY_PREFIX}{format_money(pricing.total)}", style="bold")
    return text
