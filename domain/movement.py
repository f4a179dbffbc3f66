"""
Domain: Inventory movements.

An InventoryMovement is an append-only audit record of a stock change:
- movement_type "out" carries a negative quantity, "in" a positive one.
- reference_type/reference_id name the event that caused it (the sale id).
- Deleting a sale appends compensating "in" movements; earlier "out"
  movements are never rewritten.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_utc_timestamp


class MovementType(str, Enum):
    IN = "in"
    OUT = "out"

    @staticmethod
    def for_delta(delta: int) -> "MovementType":
        if delta == 0:
            raise ValueError("movement quantity must be non-zero")
        return MovementType.IN if delta > 0 else MovementType.OUT


class MovementReference(str, Enum):
    SALE = "sale"
    SALE_EDIT = "sale_edit"
    SALE_DELETION = "sale_deletion"


@dataclass(frozen=True, slots=True)
class InventoryMovement:
    movement_id: UUID
    product_id: UUID
    movement_type: MovementType
    quantity: int
    reference_type: MovementReference
    reference_id: UUID
    movement_date: datetime
    notes: Optional[str] = None
    created_by: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("movement_date", self.movement_date)
        if MovementType.for_delta(self.quantity) is not self.movement_type:
            raise ValueError(
                f"{self.movement_type.value!r} movement cannot carry quantity {self.quantity}"
            )
