"""Error taxonomy for cart, submission, persistence and printing failures."""

from __future__ import annotations


class BillingError(Exception):
    """Base class for every failure raised or reported by the billing core."""

    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CartError(BillingError):
    """A cart mutation was refused; the ledger is unchanged."""


class ItemNotFound(CartError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Menu item not found: {item_id}")
        self.item_id = item_id


class OutOfStock(CartError):
    def __init__(self, item_id: str, name: str) -> None:
        super().__init__(f"{name} is out of stock")
        self.item_id = item_id
        self.name = name


class StockLimitExceeded(CartError):
    def __init__(self, item_id: str, name: str, stock: int, requested: int) -> None:
        super().__init__(f"Cannot add more {name}. Stock limit: {stock}, requested: {requested}")
        self.item_id = item_id
        self.name = name
        self.stock = stock
        self.requested = requested


class UnknownPaymentMethod(CartError):
    def __init__(self, method: str) -> None:
        super().__init__(f"Unknown payment method: {method}")
        self.method = method


class SubmissionError(BillingError):
    """Bill submission could not complete; the cart is preserved."""


class EmptyCart(SubmissionError):
    def __init__(self) -> None:
        super().__init__("Cart is empty. Add items to generate bill.")


class MissingCustomerName(SubmissionError):
    def __init__(self) -> None:
        super().__init__("Please enter customer name")


class SubmissionInProgress(SubmissionError):
    def __init__(self) -> None:
        super().__init__("A bill submission is already in progress")


class ValidationRejected(SubmissionError):
    """The server refused the request payload. Fix the input before retrying."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientFailure(SubmissionError):
    """Network, timeout or server-side failure. Retrying is safe for reads."""

    retryable = True

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CatalogRefreshFailed(TransientFailure):
    """The catalog could not be refreshed; the previous items are still served."""


class PersistenceWriteFailure(BillingError):
    """The pending-order snapshot could not be written or cleared."""


class PrintFailure(BillingError):
    """A hardware print attempt failed."""
