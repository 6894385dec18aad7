# Overview: Domain error taxonomy shared by the shop services.

"""
Recoverable, user-facing errors raised by the service layer.

Every error carries a stable machine code, an HTTP status for the route layer
and a details dict with enough context for the storefront to show a message.
None of these are fatal to the process.
"""


class ShopError(Exception):
    """Base class for shop business-rule errors."""

    code = "SHOP_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class NotFound(ShopError):
    """Unknown product, order, cart or cart line."""
    code = "NOT_FOUND"
    http_status = 404


class InsufficientStock(ShopError):
    """Requested quantity exceeds the product's current stock."""
    code = "INSUFFICIENT_STOCK"
    http_status = 409


class EmptyCart(ShopError):
    code = "EMPTY_CART"
    http_status = 400


class InvalidTransition(ShopError):
    """Status change not permitted from the order's current status."""
    code = "INVALID_TRANSITION"
    http_status = 409


class StaleOrderState(ShopError):
    """The order changed underneath the caller (optimistic-lock conflict)."""
    code = "STALE_ORDER_STATE"
    http_status = 409


class InvalidDepositAmount(ShopError):
    """Deposit must be positive and no larger than the order total."""
    code = "INVALID_DEPOSIT_AMOUNT"
    http_status = 400
