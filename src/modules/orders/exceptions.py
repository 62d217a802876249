"""Order domain exceptions.

Raised by the Service Layer; ``envelope_exception_handler`` renders them.
"""

from __future__ import annotations

from modules.core.exceptions import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)


class OrderNotFound(NotFoundError):
    default_message = "Order not found"


class OrderAccessDenied(PermissionDeniedError):
    default_message = "Unauthorized access"


class InsufficientStock(BusinessRuleError):
    """Message names the product: ``Insufficient stock for <title>``."""

    code = "insufficient_stock"
    default_message = "Insufficient stock"


class InvalidStatusTransition(BusinessRuleError):
    code = "invalid_transition"
    default_message = "Invalid status transition"


class ReturnNotAllowed(BusinessRuleError):
    code = "return_not_allowed"
    default_message = "Only delivered orders can be returned"


class ReturnAlreadyRequested(ConflictError):
    code = "return_already_requested"
    default_message = "A return has already been requested for this order"
