"""
Inventory movement repository (movement recorder).

Movements are append-only history. `delete_movement` exists only so that a
failed multi-step sale operation can remove the rows it wrote itself.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional
from uuid import UUID, uuid4

from domain.movement import InventoryMovement, MovementReference, MovementType
from domain.time import parse_utc_datetime, to_iso_utc, utc_now
from repositories.client import decode_rows, get_supabase, run_paged_query, run_query

_MOVEMENTS_TABLE: str = "inventory_movements"


def _row_to_movement(row: Mapping[str, Any]) -> InventoryMovement:
    created_by = row.get("created_by")
    return InventoryMovement(
        movement_id=UUID(str(row["id"])),
        product_id=UUID(str(row["product_id"])),
        movement_type=MovementType(str(row["movement_type"])),
        quantity=int(row["quantity"]),
        reference_type=MovementReference(str(row["reference_type"])),
        reference_id=UUID(str(row["reference_id"])),
        movement_date=parse_utc_datetime(row["movement_date"]),
        notes=row.get("notes"),
        created_by=UUID(str(created_by)) if created_by else None,
    )


def record_movement(
    product_id: UUID,
    quantity: int,
    reference_type: MovementReference,
    reference_id: UUID,
    notes: Optional[str] = None,
    created_by: Optional[UUID] = None,
) -> InventoryMovement:
    """
    Append a movement; the direction is derived from the sign of `quantity`.

    Args:
        product_id: Product whose stock changed
        quantity: Signed stock delta (negative for "out")
        reference_type: Kind of event that caused the change
        reference_id: Id of that event (the sale id)
        notes: Free-text description
        created_by: Acting user, or None when unauthenticated
    """

    movement = InventoryMovement(
        movement_id=uuid4(),
        product_id=product_id,
        movement_type=MovementType.for_delta(quantity),
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        movement_date=utc_now(),
        notes=notes,
        created_by=created_by,
    )

    payload: dict[str, Any] = {
        "id": str(movement.movement_id),
        "product_id": str(product_id),
        "movement_type": movement.movement_type.value,
        "quantity": quantity,
        "reference_type": reference_type.value,
        "reference_id": str(reference_id),
        "notes": notes,
        "movement_date": to_iso_utc(movement.movement_date, name="movement_date"),
        "created_by": str(created_by) if created_by else None,
    }
    run_query(get_supabase().table(_MOVEMENTS_TABLE).insert(payload), "record inventory movement")
    return movement


def delete_movement(movement_id: UUID) -> None:
    run_query(
        get_supabase().table(_MOVEMENTS_TABLE).delete().eq("id", str(movement_id)),
        "delete inventory movement",
    )


def list_movements_for_product(product_id: UUID) -> List[InventoryMovement]:
    """Movement history of one product, newest first."""

    rows = run_paged_query(
        lambda: get_supabase()
        .table(_MOVEMENTS_TABLE)
        .select("*", count="exact")
        .eq("product_id", str(product_id))
        .order("movement_date", desc=True)
        .order("id"),
        "list inventory movements",
    )
    return decode_rows(rows, _row_to_movement, "list inventory movements")


def list_movements_for_reference(reference_id: UUID) -> List[InventoryMovement]:
    """Every movement caused by one event (any reference type), newest first."""

    rows = run_paged_query(
        lambda: get_supabase()
        .table(_MOVEMENTS_TABLE)
        .select("*", count="exact")
        .eq("reference_id", str(reference_id))
        .order("movement_date", desc=True)
        .order("id"),
        "list inventory movements",
    )
    return decode_rows(rows, _row_to_movement, "list inventory movements")


__all__ = [
    "record_movement",
    "delete_movement",
    "list_movements_for_product",
    "list_movements_for_reference",
]
