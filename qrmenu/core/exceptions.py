"""
Domain Exceptions

Every error the services raise derives from QRMenuError and carries the
HTTP status the presentation layer answers with, plus optional field-level
messages. Routers never catch these; the handlers registered in
qrmenu.main render them into the standard response envelope.
"""

from typing import Any, Optional


class QRMenuError(Exception):
    """Base class for all expected service errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[list[Any]] = None,
    ):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


# =============================================================================
# NOT FOUND
# =============================================================================

class NotFoundError(QRMenuError):
    status_code = 404
    default_message = "Resource not found"


class TableNotFound(NotFoundError):
    default_message = "Table not found or inactive"


class ItemNotFound(NotFoundError):
    default_message = "Menu item not found"


class CategoryNotFound(NotFoundError):
    default_message = "Category not found"


class OrderNotFound(NotFoundError):
    default_message = "Order not found"


class UserNotFound(NotFoundError):
    default_message = "User not found"


class InvalidTableError(NotFoundError):
    """The table referenced by an order request is missing or inactive."""
    status_code = 400
    default_message = "Invalid or inactive table"


# =============================================================================
# BAD REQUESTS
# =============================================================================

class ValidationFailedError(QRMenuError):
    status_code = 400
    default_message = "Validation failed"


class InvalidTransitionError(QRMenuError):
    """Raised when a status change is not in the allowed transition table."""
    status_code = 400

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change status from {current} to {requested}",
            errors=[{"field": "status", "current": current, "requested": requested}],
        )


class ConflictError(QRMenuError):
    status_code = 400
    default_message = "Resource already exists"


class DuplicateTableError(ConflictError):
    default_message = "Table with this number already exists"


class ItemUnavailableError(QRMenuError):
    status_code = 400

    def __init__(self, item_name: str):
        self.item_name = item_name
        super().__init__(f'Item "{item_name}" is currently unavailable')


# =============================================================================
# ACCESS
# =============================================================================

class AuthenticationError(QRMenuError):
    status_code = 401
    default_message = "Authentication required"


class AccessDeniedError(QRMenuError):
    status_code = 403
    default_message = "Access denied. Insufficient permissions."


class PaymentError(QRMenuError):
    """The payment provider rejected or failed the request."""
    status_code = 400
    default_message = "Payment processing failed"
