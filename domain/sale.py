"""
Domain: Sale events and their line items.

Rules captured here:
- A Sale has one or more SaleItems; total_amount is the sum of line totals.
- SaleItem.unit_price is a snapshot of the product price at time of sale.
- SaleItem.total_price = quantity * unit_price.
- Sales created by this system always carry payment status "completed".

Lifecycle (per sale): none -> active -> active (edited, any number of
times) -> deleted. There is no voided or cancelled state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Optional, Tuple
from uuid import UUID

from .errors import ValidationError
from .product import ProductSummary
from .time import require_utc_timestamp

_CENTS = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    """Round a monetary amount to cents."""

    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    BANK_TRANSFER = "bank_transfer"
    CREDIT = "credit"

    @staticmethod
    def parse(value: str) -> "PaymentMethod":
        """Resolve a payment method, raising ValidationError for unknown values."""

        try:
            return PaymentMethod(value.strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in PaymentMethod)
            raise ValidationError(
                f"Invalid payment method '{value}'. Must be one of: {allowed}"
            ) from None


class PaymentStatus(str, Enum):
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class SaleDetails:
    """Customer and payment fields a caller supplies when creating or editing a sale."""

    payment_method: PaymentMethod = PaymentMethod.CASH
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SaleItem:
    """
    A single product-quantity-price line within a Sale.

    Immutable; a sale edit replaces every item rather than changing one.
    """

    item_id: UUID
    sale_id: UUID
    product_id: UUID
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    created_at: Optional[datetime] = None
    product: Optional[ProductSummary] = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("quantity must be > 0")
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)


@dataclass(frozen=True, slots=True)
class Sale:
    """
    Immutable record of a sale header, optionally with its items attached.

    sale_number is human readable (SALE-YYYYMMDD-NNNN) and survives edits.
    """

    sale_id: UUID
    sale_number: str
    total_amount: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    sale_date: datetime
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[UUID] = None
    items: Tuple[SaleItem, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        require_utc_timestamp("sale_date", self.sale_date)
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    @property
    def item_count(self) -> int:
        """Total units across all lines."""

        return sum(item.quantity for item in self.items)

    def with_items(self, items: Iterable[SaleItem]) -> "Sale":
        return Sale(
            sale_id=self.sale_id,
            sale_number=self.sale_number,
            total_amount=self.total_amount,
            payment_method=self.payment_method,
            payment_status=self.payment_status,
            sale_date=self.sale_date,
            customer_name=self.customer_name,
            customer_contact=self.customer_contact,
            notes=self.notes,
            created_at=self.created_at,
            created_by=self.created_by,
            items=tuple(items),
        )
