"""Product domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import ConflictError, NotFoundError


class ProductNotFound(NotFoundError):
    default_message = "Product not found"


class ProductHasOrders(ConflictError):
    code = "product_has_orders"
    default_message = "Product has orders and cannot be deleted. Archive it instead."
