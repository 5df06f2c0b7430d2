"""Customer, discount and payment entry modal screen."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from pos_billing.models import DISCOUNT_AMOUNT, DISCOUNT_PERCENTAGE, PAYMENT_METHODS, DiscountSpec


@dataclass(frozen=True)
class CustomerDetails:
    name: str
    phone: str
    table_number: str
    discount: DiscountSpec
    payment_method: str


class CustomerModal(ModalScreen[CustomerDetails | None]):
    """Edit checkout fields before submit."""

    CSS = """
    CustomerModal {
        align: center middle;
        background: $background 60%;
    }

    #customer-dialog {
        width: 60;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #customer-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #customer-body {
        color: white;
        margin-bottom: 1;
    }

    #customer-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #customer-help {
        color: #dddddd;
    }
    """

    _FIELDS = ("name", "phone", "table", "discount", "payment")
    _LABELS = {
        "name": "Customer",
        "phone": "Phone",
        "table": "Table",
        "discount": "Discount",
        "payment": "Payment",
    }

    def __init__(self, details: CustomerDetails) -> None:
        super().__init__()
        self.values = {
            "name": details.name,
            "phone": details.phone,
            "table": details.table_number,
            "discount": f"{details.discount.value.normalize():f}" if details.discount.value else "",
        }
        self.discount_type = details.discount.type
        self.payment_method = details.payment_method
        self.cursor_index = 0
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="customer-dialog"):
            yield Static("Checkout Details", id="customer-title")
            yield Static(id="customer-body")
            yield Static(id="customer-error")
            yield Static(
                "Up/Down/Tab move. Type to edit. % toggles discount type. "
                "Space cycles payment. Enter confirm. Esc cancel.",
                id="customer-help",
            )

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        field_name = self._FIELDS[self.cursor_index]

        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key in {"down", "tab"}:
            self.cursor_index = (self.cursor_index + 1) % len(self._FIELDS)
        elif event.key in {"up", "shift+tab"}:
            self.cursor_index = (self.cursor_index - 1) % len(self._FIELDS)
        elif field_name == "payment":
            if event.key in {"space", "right", "left"}:
                step = -1 if event.key == "left" else 1
                idx = PAYMENT_METHODS.index(self.payment_method)
                self.payment_method = PAYMENT_METHODS[(idx + step) % len(PAYMENT_METHODS)]
        elif event.key == "backspace":
            self.values[field_name] = self.values[field_name][:-1]
        elif event.is_printable and event.character:
            self._type_character(field_name, event.character)
        else:
            return

        self.error = ""
        self._refresh_content()
        event.stop()

    def _type_character(self, field_name: str, char: str) -> None:
        if field_name == "discount":
            if char == "%":
                self.discount_type = DISCOUNT_AMOUNT if self.discount_type == DISCOUNT_PERCENTAGE else DISCOUNT_PERCENTAGE
            elif char.isdigit() or (char == "." and "." not in self.values["discount"]):
                self.values["discount"] += char
            return
        if field_name == "phone" and not (char.isdigit() or char in "+- "):
            return
        self.values[field_name] += char

    def _confirm(self) -> None:
        raw = self.values["discount"].strip() or "0"
        try:
            discount = DiscountSpec(type=self.discount_type, value=Decimal(raw))
        except (InvalidOperation, ValueError):
            self.error = "Discount must be a number."
            self._refresh_content()
            return

        self.dismiss(
            CustomerDetails(
                name=self.values["name"].strip(),
                phone=self.values["phone"].strip(),
                table_number=self.values["table"].strip(),
                discount=discount,
                payment_method=self.payment_method,
            )
        )

    def _refresh_content(self) -> None:
        body = Text()
        for idx, field_name in enumerate(self._FIELDS):
            if idx > 0:
                body.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            label = f"{pointer}{self._LABELS[field_name]:<9} "
            style = "bold white" if idx == self.cursor_index else "white"
            if field_name == "payment":
                body.append(f"{label}< {self.payment_method.upper()} >", style=style)
            elif field_name == "discount":
                suffix = "%" if self.discount_type == DISCOUNT_PERCENTAGE else " (amount)"
                body.append(f"{label}{self.values['discount'] or '0'}{suffix}", style=style)
            else:
                body.append(f"{label}{self.values[field_name]}", style=style)
        self.query_one("#customer-body", Static).update(body)
        self.query_one("#customer-error", Static).update(self.error or "")
