"""
Domain: error taxonomy for sale and inventory operations.

- ValidationError: rejected input, raised before anything is written
  (or after a compensated rollback, for stock checks at commit time).
- PersistenceError: any failure talking to the data store. The message
  shown to callers is generic; the cause is chained for logging.
"""

from __future__ import annotations


class InventoryError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(InventoryError, ValueError):
    """Raised for empty carts, non-positive quantities or quantities above stock."""


class InsufficientStockError(ValidationError):
    """Raised when the store rejects a stock delta that would go below zero."""

    def __init__(self, product_id: object, requested_delta: int) -> None:
        self.product_id = product_id
        self.requested_delta = requested_delta
        super().__init__(
            f"Insufficient stock for product {product_id} (delta {requested_delta})"
        )


class PersistenceError(InventoryError, RuntimeError):
    """Raised when a create/read/update/delete against the store fails."""


class SaleNotFoundError(PersistenceError):
    """Raised when a sale id does not resolve to a stored sale."""

    def __init__(self, sale_id: object) -> None:
        self.sale_id = sale_id
        super().__init__(f"Sale not found: {sale_id}")


__all__ = [
    "InventoryError",
    "ValidationError",
    "InsufficientStockError",
    "PersistenceError",
    "SaleNotFoundError",
]
