"""
Domain: Cart staging area for a sale.

Rules implemented here:
- A requested quantity must be > 0 and no larger than the product quantity
  known when the product list was fetched (which may be stale).
- Adding a product that is already staged merges the lines by summing
  quantities; the merged quantity is validated against the same stock.
- Removing a product drops its whole line.
- The unit price is snapshotted when the product is first staged.

Carts are pure values: every change returns a new Cart and nothing here is
ever persisted. Abandoning a cart has no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Iterator, Mapping, Optional, Tuple
from uuid import UUID

from .errors import ValidationError
from .product import Product
from .sale import quantize_money


@dataclass(frozen=True, slots=True)
class CartLine:
    product_id: UUID
    product_name: str
    sku: str
    quantity: int
    unit_price: Decimal
    available_quantity: int

    @property
    def total(self) -> Decimal:
        return quantize_money(self.unit_price * self.quantity)


@dataclass(frozen=True, slots=True)
class Cart:
    """Immutable list of staged sale lines, at most one line per product."""

    lines: Tuple[CartLine, ...] = ()

    @staticmethod
    def empty() -> "Cart":
        return Cart()

    @staticmethod
    def from_lines(
        requested: Iterable[Tuple[UUID, int]],
        products: Mapping[UUID, Product],
    ) -> "Cart":
        """
        Build a cart from (product_id, quantity) pairs.

        Every product must be present in `products`; repeated product ids merge
        exactly as repeated add_item calls would.
        """

        cart = Cart.empty()
        for product_id, quantity in requested:
            product = products.get(product_id)
            if product is None:
                raise ValidationError(f"Product not found: {product_id}")
            cart = cart.add_item(product, quantity)
        return cart

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def get(self, product_id: UUID) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def add_item(self, product: Product, requested_qty: int) -> "Cart":
        """
        Stage `requested_qty` units of `product`.

        Raises:
            ValidationError: non-positive quantity, or the (merged) quantity
                exceeds the product's known stock.
        """

        if requested_qty <= 0:
            raise ValidationError("Quantity must be greater than zero")
        if requested_qty > product.quantity:
            raise ValidationError(
                f"Invalid quantity for {product.sku}: requested {requested_qty}, "
                f"only {product.quantity} in stock"
            )

        existing = self.get(product.product_id)
        if existing is None:
            line = CartLine(
                product_id=product.product_id,
                product_name=product.name,
                sku=product.sku,
                quantity=requested_qty,
                unit_price=product.unit_price,
                available_quantity=product.quantity,
            )
            return Cart(lines=self.lines + (line,))

        merged_qty = existing.quantity + requested_qty
        if merged_qty > product.quantity:
            raise ValidationError(
                f"Total quantity for {product.sku} ({merged_qty}) exceeds available stock "
                f"({product.quantity})"
            )

        merged = CartLine(
            product_id=existing.product_id,
            product_name=existing.product_name,
            sku=existing.sku,
            quantity=merged_qty,
            unit_price=existing.unit_price,
            available_quantity=product.quantity,
        )
        return Cart(
            lines=tuple(merged if line.product_id == product.product_id else line for line in self.lines)
        )

    def remove_item(self, product_id: UUID) -> "Cart":
        return Cart(lines=tuple(line for line in self.lines if line.product_id != product_id))

    def total(self) -> Decimal:
        return quantize_money(sum((line.total for line in self.lines), Decimal("0")))


__all__ = ["Cart", "CartLine"]
