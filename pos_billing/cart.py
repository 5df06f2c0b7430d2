"""Session-scoped cart ledger with stock ceilings and write-through snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import uuid4

from pos_billing.catalog import CatalogCache
from pos_billing.config import TAX_RATE
from pos_billing.errors import CartError, ItemNotFound, OutOfStock, StockLimitExceeded, UnknownPaymentMethod
from pos_billing.models import (
    DEFAULT_PAYMENT_METHOD,
    PAYMENT_METHODS,
    CartLine,
    DiscountSpec,
    PendingOrder,
    PricingResult,
)
from pos_billing.persistence import PersistenceBridge
from pos_billing.pricing import price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartResult:
    """Outcome of a cart mutation. Refusals carry the error instead of raising it."""

    ok: bool
    error: CartError | None = None
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> CartResult:
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, error: CartError) -> CartResult:
        return cls(ok=False, error=error, message=error.message)


class CartLedger:
    """
    Mutable working set of cart lines plus customer fields.

    Every successful mutation recomputes ``pricing`` and mirrors the new
    state through the persistence bridge before returning.
    """

    def __init__(
        self,
        catalog: CatalogCache,
        persistence: PersistenceBridge | None = None,
        tax_rate: Decimal = TAX_RATE,
    ) -> None:
        self.catalog = catalog
        self.persistence = persistence
        self.tax_rate = tax_rate
        self._lines: dict[str, CartLine] = {}
        self.customer_name = ""
        self.customer_phone = ""
        self.table_number = ""
        self.discount = DiscountSpec()
        self.payment_method = DEFAULT_PAYMENT_METHOD
        self.order_key = uuid4().hex
        self.pricing: PricingResult = price([], self.discount, tax_rate)

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def quantity_of(self, item_id: str) -> int:
        line = self._lines.get(item_id)
        return line.quantity if line else 0

    def add(self, item_id: str) -> CartResult:
        try:
            item = self.catalog.lookup(item_id)
        except ItemNotFound as exc:
            return CartResult.failure(exc)

        if item.stock <= 0:
            return CartResult.failure(OutOfStock(item.item_id, item.name))

        existing = self._lines.get(item_id)
        if existing is None:
            self._lines[item_id] = CartLine(item.item_id, item.name, item.price, 1)
        else:
            requested = existing.quantity + 1
            if requested > item.stock:
                return CartResult.failure(StockLimitExceeded(item.item_id, item.name, item.stock, requested))
            self._lines[item_id] = CartLine(existing.item_id, existing.name, existing.unit_price, requested)

        self._commit(f"add item={item_id} qty={self._lines[item_id].quantity}")
        return CartResult.success(f"{item.name} added to cart")

    def set_quantity(self, item_id: str, quantity: int) -> CartResult:
        if quantity <= 0:
            return self.remove(item_id)

        try:
            item = self.catalog.lookup(item_id)
        except ItemNotFound as exc:
            return CartResult.failure(exc)

        if quantity > item.stock:
            return CartResult.failure(StockLimitExceeded(item.item_id, item.name, item.stock, quantity))

        existing = self._lines.get(item_id)
        if existing is None:
            self._lines[item_id] = CartLine(item.item_id, item.name, item.price, quantity)
        else:
            self._lines[item_id] = CartLine(existing.item_id, existing.name, existing.unit_price, quantity)

        self._commit(f"set_quantity item={item_id} qty={quantity}")
        return CartResult.success()

    def remove(self, item_id: str) -> CartResult:
        line = self._lines.pop(item_id, None)
        if line is None:
            return CartResult.success()
        self._commit(f"remove item={item_id}")
        return CartResult.success(f"{line.name} removed from cart")

    def clear(self) -> CartResult:
        self._lines.clear()
        self.customer_name = ""
        self.customer_phone = ""
        self.table_number = ""
        self.discount = DiscountSpec()
        self.payment_method = DEFAULT_PAYMENT_METHOD
        self.order_key = uuid4().hex
        self._commit("clear")
        return CartResult.success()

    def set_customer(self, name: str = "", phone: str = "", table_number: str = "") -> CartResult:
        self.customer_name = name.strip()
        self.customer_phone = phone.strip()
        self.table_number = table_number.strip()
        self._commit("set_customer")
        return CartResult.success()

    def set_discount(self, discount: DiscountSpec) -> CartResult:
        self.discount = discount
        self._commit(f"set_discount type={discount.type} value={discount.value}")
        return CartResult.success()

    def set_payment_method(self, method: str) -> CartResult:
        method = method.strip().lower()
        if method not in PAYMENT_METHODS:
            return CartResult.failure(UnknownPaymentMethod(method))
        self.payment_method = method
        self._commit(f"set_payment_method method={method}")
        return CartResult.success()

    def restore(self, order: PendingOrder) -> None:
        """Rehydrate the ledger from a saved snapshot."""
        self._lines = {line.item_id: line for line in order.lines if line.quantity > 0}
        self.customer_name = order.customer_name
        self.customer_phone = order.customer_phone
        self.table_number = order.table_number
        self.discount = order.discount
        if order.payment_method in PAYMENT_METHODS:
            self.payment_method = order.payment_method
        else:
            self.payment_method = DEFAULT_PAYMENT_METHOD
        self.order_key = order.order_key or uuid4().hex
        self._commit(f"restore lines={len(self._lines)}")

    def to_pending_order(self) -> PendingOrder:
        return PendingOrder(
            lines=self.lines,
            customer_name=self.customer_name,
            customer_phone=self.customer_phone,
            table_number=self.table_number,
            discount=self.discount,
            payment_method=self.payment_method,
            order_key=self.order_key,
        )

    def _commit(self, reason: str) -> None:
        self.pricing = price(self._lines.values(), self.discount, self.tax_rate)
        logger.debug("cart %s total=%s", reason, self.pricing.total)
        if self.persistence is None:
            return
        if self._lines:
            self.persistence.save(self.to_pending_order())
        else:
            self.persistence.clear()
