"""Main Textual app class."""

from __future__ import annotations

import logging

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from pos_billing.api import PosApiClient
from pos_billing.cart import CartLedger, CartResult
from pos_billing.catalog import CatalogCache
from pos_billing.config import SNAPSHOT_DB_PATH
from pos_billing.customer_modal import CustomerDetails, CustomerModal
from pos_billing.errors import BillingError, CatalogRefreshFailed
from pos_billing.models import Bill, CatalogItem
from pos_billing.persistence import PersistenceBridge, SqliteSnapshotStore
from pos_billing.printer import PrintDispatcher, build_print_dispatcher
from pos_billing.rendering import format_cart_line, format_catalog_item, format_discount, format_totals
from pos_billing.submission import BillSubmission

logger = logging.getLogger(__name__)


class BillingApp(App):
    """A Textual app for building carts, submitting bills and printing receipts."""

    TITLE = "POS Billing"
    SUB_TITLE = "Cart / Checkout"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #cart-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #search-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 3;
    }

    #results {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #cart-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #cart-summary {
        height: auto;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    input_state = reactive("normal")
    search_query = reactive("")
    category_filter = reactive("")
    selected_index = reactive(0)
    cart_selected_index = reactive(None)

    BINDINGS = [
        ("tab", "cycle_results(1)", "Next result"),
        ("up", "cycle_results(-1)", "Previous result"),
        ("down", "cycle_results(1)", "Next result"),
        ("enter", "add_selected", "Add item"),
        ("backspace", "backspace_query", "Delete query char"),
        Binding("ctrl+s", "submit_and_print", "Submit + Print", priority=True),
        Binding("ctrl+r", "refresh_catalog", "Refresh menu", priority=True),
        Binding("ctrl+x", "clear_cart", "Clear cart", priority=True),
        ("ctrl+c", "cancel_active_mode", "Exit search"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        api: PosApiClient | None = None,
        persistence: PersistenceBridge | None = None,
        dispatcher: PrintDispatcher | None = None,
    ) -> None:
        super().__init__()
        self.api = api or PosApiClient()
        self.catalog = CatalogCache(self.api)
        self.persistence = persistence or PersistenceBridge(SqliteSnapshotStore(SNAPSHOT_DB_PATH))
        self.ledger = CartLedger(self.catalog, self.persistence)
        self.dispatcher = dispatcher or build_print_dispatcher(self.api)
        self.submission = BillSubmission(self.ledger, self.api, on_success=self._print_bill)
        self.system_status = ""

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="cart-pane"):
                yield Static("Cart", classes="pane-title")
                yield Static("(cart is empty)", id="cart-list")
                yield Static(id="cart-summary")
            with Vertical(id="search-pane"):
                yield Static(id="search-bar")
                yield Static(id="results")

    def on_mount(self) -> None:
        messages = []
        try:
            self.catalog.refresh()
        except CatalogRefreshFailed as exc:
            messages.append(f"{exc.message} (using last known menu)")

        restored = self.persistence.restore_once()
        if restored is not None:
            self.ledger.restore(restored)
            logger.info("previous cart restored items=%d", self.ledger.item_count)
            messages.append(f"Previous cart restored ({self.ledger.item_count} items). Ctrl+X to clear.")

        self.system_status = " ".join(messages)
        self._refresh_all()

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, CustomerModal):
            return
        if not event.is_printable or not event.character or len(event.character) != 1:
            return

        char = event.character
        if self.input_state == "normal":
            handled = self._handle_normal_key(char.lower())
            if handled:
                event.stop()
            return

        self.search_query += char
        self.selected_index = 0
        self._refresh_search()
        event.stop()

    def _handle_normal_key(self, key: str) -> bool:
        if key in {"/", "s"}:
            self.input_state = "active"
            self.search_query = ""
            self.selected_index = 0
            self._refresh_search()
            return True
        if key == "j":
            self._move_cart_selection(1)
            return True
        if key == "k":
            self._move_cart_selection(-1)
            return True
        if key in {"+", "="}:
            self._adjust_selected_quantity(1)
            return True
        if key == "-":
            self._adjust_selected_quantity(-1)
            return True
        if key == "d":
            line = self._selected_line_id()
            if line is not None:
                self._apply(self.ledger.remove(line))
            return True
        if key == "g":
            self._cycle_category()
            return True
        if key == "c":
            self.push_screen(CustomerModal(self._current_details()), self._apply_details)
            return True
        return False

    def action_cancel_active_mode(self) -> None:
        if self.input_state == "normal":
            return
        self.input_state = "normal"
        self.search_query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cycle_results(self, delta: int) -> None:
        if self.input_state != "active":
            return
        results = self._filtered_results()
        if not results:
            self.selected_index = 0
            self._refresh_results(results)
            return
        self.selected_index = (self.selected_index + delta) % len(results)
        self._refresh_results(results)

    def action_add_selected(self) -> None:
        if self.input_state != "active":
            return
        results = self._filtered_results()
        if not results:
            return
        item = results[self.selected_index % len(results)]
        self._apply(self.ledger.add(item.item_id))
        ids = [line.item_id for line in self.ledger.lines]
        if item.item_id in ids:
            self.cart_selected_index = ids.index(item.item_id)
        self._refresh_all()

    def action_backspace_query(self) -> None:
        if self.input_state != "active" or not self.search_query:
            return
        self.search_query = self.search_query[:-1]
        self.selected_index = 0
        self._refresh_search()

    def action_refresh_catalog(self) -> None:
        try:
            items = self.catalog.refresh()
        except CatalogRefreshFailed as exc:
            self.system_status = f"{exc.message} (using last known menu)"
        else:
            self.system_status = f"Menu refreshed: {len(items)} items"
        self._refresh_all()

    def action_clear_cart(self) -> None:
        self._apply(self.ledger.clear())
        self.system_status = "Cart cleared"
        self._refresh_all()

    def action_submit_and_print(self) -> None:
        if isinstance(self.screen, CustomerModal):
            return
        if self.input_state != "normal":
            self.system_status = "Submit only in NORMAL mode (Ctrl+C to exit search)"
            self._refresh_search()
            return

        try:
            bill = self.submission.submit()
        except BillingError as exc:
            hint = " Retry is safe." if exc.retryable else ""
            self.system_status = f"Failed to generate bill: {exc.message}.{hint}"
            self._refresh_all()
            return

        self.cart_selected_index = None
        self.system_status = f"Bill #{bill.bill_number} generated. {self.system_status}"
        self._refresh_all()

    def _print_bill(self, bill: Bill) -> None:
        result = self.dispatcher.print_bill(bill)
        self.system_status = result.message

    def _apply(self, result: CartResult) -> None:
        if result.message:
            self.system_status = result.message
        self._refresh_orders()
        self._refresh_search()

    def _apply_details(self, details: CustomerDetails | None) -> None:
        if details is None:
            return
        self.ledger.set_customer(details.name, details.phone, details.table_number)
        self.ledger.set_discount(details.discount)
        self.ledger.set_payment_method(details.payment_method)
        self.system_status = "Checkout details updated"
        self._refresh_all()

    def _current_details(self) -> CustomerDetails:
        return CustomerDetails(
            name=self.ledger.customer_name,
            phone=self.ledger.customer_phone,
            table_number=self.ledger.table_number,
            discount=self.ledger.discount,
            payment_method=self.ledger.payment_method,
        )

    def _selected_line_id(self) -> str | None:
        lines = self.ledger.lines
        if self.cart_selected_index is None or not (0 <= self.cart_selected_index < len(lines)):
            return None
        return lines[self.cart_selected_index].item_id

    def _adjust_selected_quantity(self, delta: int) -> None:
        item_id = self._selected_line_id()
        if item_id is None:
            return
        self._apply(self.ledger.set_quantity(item_id, self.ledger.quantity_of(item_id) + delta))

    def _filtered_results(self) -> list[CatalogItem]:
        return self.catalog.search(self.search_query, category=self.category_filter or None)

    def _cycle_category(self) -> None:
        options = ["", *self.catalog.categories()]
        current = options.index(self.category_filter) if self.category_filter in options else 0
        self.category_filter = options[(current + 1) % len(options)]
        self.system_status = f"Category: {self.category_filter or 'all'}"
        self._refresh_search()

    def _refresh_all(self) -> None:
        self._refresh_orders()
        self._refresh_search()

    def _move_cart_selection(self, delta: int) -> None:
        count = len(self.ledger.lines)
        if not count:
            return
        if self.cart_selected_index is None:
            self.cart_selected_index = 0 if delta > 0 else count - 1
        else:
            self.cart_selected_index = (self.cart_selected_index + delta) % count
        self._refresh_orders()

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)
        rows = max(1, rows)
        if total <= rows:
            return (0, total)
        start = 0 if selected is None else max(0, min(selected - rows // 2, total - rows))
        return (start, start + rows)

    def _refresh_orders(self) -> None:
        try:
            cart_widget = self.query_one("#cart-list", Static)
            summary_widget = self.query_one("#cart-summary", Static)
        except NoMatches:
            return

        summary = Text()
        if self.ledger.customer_name:
            summary.append(f"Customer: {self.ledger.customer_name}")
            if self.ledger.table_number:
                summary.append(f"  Table: {self.ledger.table_number}")
            summary.append("\n")
        summary.append(f"Payment: {self.ledger.payment_method.upper()}")
        if self.ledger.discount.value:
            summary.append(f"  Discount: {format_discount(self.ledger.discount)}")
        summary.append("\n")
        summary.append_text(format_totals(self.ledger.pricing))
        summary_widget.update(summary)

        lines = self.ledger.lines
        if not lines:
            self.cart_selected_index = None
            cart_widget.update("(cart is empty)")
            return
        if self.cart_selected_index is not None and self.cart_selected_index >= len(lines):
            self.cart_selected_index = len(lines) - 1

        start, end = self._window_bounds(len(lines), self._visible_rows(cart_widget), self.cart_selected_index)
        text = Text()
        if start > 0:
            text.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                text.append("\n")
            text.append("➤ " if idx == self.cart_selected_index else "  ")
            text.append_text(format_cart_line(lines[idx]))
        if end < len(lines):
            text.append("\n⋮", style="dim")
        cart_widget.update(text)

    def _refresh_search(self) -> None:
        self._refresh_search_bar()
        if self.input_state == "normal":
            self._refresh_results([])
            return
        self._refresh_results(self._filtered_results())

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            status = self.system_status or "Ready"
            bar.update(f"/ search, G category, J/K select, +/- qty, D remove, C details, Ctrl+S bill.\n{status}")
            return
        scope = f" [{self.category_filter}]" if self.category_filter else ""
        bar.update(f"Search{scope}: {self.search_query}")

    def _refresh_results(self, results: list[CatalogItem]) -> None:
        try:
            results_widget = self.query_one("#results", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            stale = " (menu may be out of date)" if self.catalog.is_stale else ""
            results_widget.update(f"{len(self.catalog.items())} menu items{stale}")
            return
        if not results:
            results_widget.update("No results")
            return
        if self.selected_index >= len(results):
            self.selected_index = 0

        start, end = self._window_bounds(len(results), self._visible_rows(results_widget), self.selected_index)
        text = Text()
        if start > 0:
            text.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                text.append("\n")
            text.append("➤ " if idx == self.selected_index else "  ")
            item = results[idx]
            text.append_text(format_catalog_item(item, self.ledger.quantity_of(item.item_id)))
        if end < len(results):
            text.append("\n⋮", style="dim")
        results_widget.update(text)
