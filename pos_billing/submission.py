"""Bill submission: validate the cart, post it, and reset on success."""

from __future__ import annotations

import enum
import logging
from decimal import Decimal
from typing import Any, Callable, Protocol

from pos_billing.cart import CartLedger
from pos_billing.errors import (
    EmptyCart,
    ItemNotFound,
    MissingCustomerName,
    OutOfStock,
    StockLimitExceeded,
    SubmissionError,
    SubmissionInProgress,
)
from pos_billing.models import Bill, PricingResult

logger = logging.getLogger(__name__)

# Client and server totals may differ by a rounding step before it is worth flagging.
_TOTAL_TOLERANCE = Decimal("0.01")


class BillEndpoint(Protocol):
    def create_bill(self, payload: dict[str, Any], idempotency_key: str | None = None) -> dict[str, Any]: ...


class SubmissionState(enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class BillSubmission:
    """
    Drive one cart through bill creation.

    The server response is authoritative. The cart is cleared only after a
    bill record comes back; every failure leaves it untouched.
    """

    def __init__(
        self,
        ledger: CartLedger,
        endpoint: BillEndpoint,
        on_success: Callable[[Bill], None] | None = None,
    ) -> None:
        self.ledger = ledger
        self.endpoint = endpoint
        self.on_success = on_success
        self.state = SubmissionState.IDLE
        self.last_error: SubmissionError | None = None
        self.last_bill: Bill | None = None

    def check_preconditions(self) -> None:
        """Raise before any network call if the cart cannot be submitted."""
        if self.ledger.is_empty:
            raise EmptyCart()
        if not self.ledger.customer_name.strip():
            raise MissingCustomerName()

        catalog = self.ledger.catalog
        if catalog.is_stale:
            logger.info("catalog is stale, skipping stock re-validation")
            return
        for line in self.ledger.lines:
            try:
                item = catalog.lookup(line.item_id)
            except ItemNotFound:
                # The server re-validates availability.
                continue
            if item.stock <= 0:
                raise OutOfStock(item.item_id, item.name)
            if line.quantity > item.stock:
                raise StockLimitExceeded(item.item_id, item.name, item.stock, line.quantity)

    def build_payload(self) -> dict[str, Any]:
        ledger = self.ledger
        return {
            "customerName": ledger.customer_name.strip(),
            "customerPhone": ledger.customer_phone.strip() or None,
            "tableNumber": ledger.table_number.strip() or None,
            "items": [{"menuItemId": line.item_id, "quantity": line.quantity} for line in ledger.lines],
            "discount": float(ledger.pricing.discount_amount),
            "paymentMethod": ledger.payment_method,
        }

    def submit(self) -> Bill:
        if self.state is SubmissionState.SUBMITTING:
            raise SubmissionInProgress()

        self.check_preconditions()

        payload = self.build_payload()
        client_pricing = self.ledger.pricing
        idempotency_key = self.ledger.order_key
        self.state = SubmissionState.SUBMITTING
        self.last_error = None
        logger.info(
            "submitting bill items=%d total=%s key=%s",
            len(payload["items"]),
            client_pricing.total,
            idempotency_key,
        )

        try:
            bill = Bill.from_api(self.endpoint.create_bill(payload, idempotency_key=idempotency_key))
        except SubmissionError as exc:
            self.state = SubmissionState.FAILED
            self.last_error = exc
            logger.error("bill submission failed retryable=%s: %s", exc.retryable, exc.message)
            raise

        self._log_discrepancy(client_pricing, bill)
        self.state = SubmissionState.SUCCESS
        self.last_bill = bill
        self.ledger.clear()
        logger.info("bill created number=%s total=%s", bill.bill_number, bill.total)

        if self.on_success is not None:
            try:
                self.on_success(bill)
            except Exception:
                # The bill exists and the cart is gone; follow-up work cannot undo that.
                logger.exception("post-submit handler failed for bill %s", bill.bill_number)
        return bill

    def reset(self) -> None:
        if self.state is not SubmissionState.SUBMITTING:
            self.state = SubmissionState.IDLE

    def _log_discrepancy(self, client: PricingResult, bill: Bill) -> None:
        pairs = (
            ("subtotal", client.subtotal, bill.subtotal),
            ("tax", client.tax, bill.tax),
            ("discount", client.discount_amount, bill.discount),
            ("total", client.total, bill.total),
        )
        for field_name, local, remote in pairs:
            if abs(local - remote) > _TOTAL_TOLERANCE:
                logger.warning(
                    "bill %s %s mismatch client=%s server=%s",
                    bill.bill_number,
                    field_name,
                    local,
                    remote,
                )
