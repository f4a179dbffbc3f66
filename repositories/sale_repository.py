"""
Sale repository (persistence).

This module provides *only* persistence operations for sale headers. It does
not touch stock, movements or the ledger; the sale transaction service
orchestrates those.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.sale import PaymentMethod, PaymentStatus, Sale, SaleDetails
from domain.time import parse_utc_datetime, to_iso_utc
from repositories.client import decode_rows, get_supabase, run_paged_query, run_query

# Supabase table name for sale headers.
# Keep this aligned with your database schema.
_SALES_TABLE: str = "sales"


def _optional_uuid(value: Any) -> Optional[UUID]:
    return UUID(str(value)) if value else None


def _row_to_sale(row: Mapping[str, Any]) -> Sale:
    """Convert a Supabase row into a Sale (without items)."""

    return Sale(
        sale_id=UUID(str(row["id"])),
        sale_number=str(row["sale_number"]),
        total_amount=Decimal(str(row["total_amount"])),
        payment_method=PaymentMethod(str(row.get("payment_method") or "cash")),
        payment_status=PaymentStatus(str(row.get("payment_status") or "completed")),
        sale_date=parse_utc_datetime(row["sale_date"]),
        customer_name=row.get("customer_name"),
        customer_contact=row.get("customer_contact"),
        notes=row.get("notes"),
        created_at=parse_utc_datetime(row["created_at"]) if row.get("created_at") else None,
        created_by=_optional_uuid(row.get("created_by")),
    )


def _sale_to_row(sale: Sale) -> dict[str, Any]:
    return {
        "id": str(sale.sale_id),
        "sale_number": sale.sale_number,
        "customer_name": sale.customer_name,
        "customer_contact": sale.customer_contact,
        "total_amount": str(sale.total_amount),
        "payment_method": sale.payment_method.value,
        "payment_status": sale.payment_status.value,
        "notes": sale.notes,
        "sale_date": to_iso_utc(sale.sale_date, name="sale_date"),
        "created_at": to_iso_utc(sale.created_at, name="created_at") if sale.created_at else None,
        "created_by": str(sale.created_by) if sale.created_by else None,
    }


def insert_sale(sale: Sale) -> Sale:
    """
    Insert a sale header.

    The caller generates the id and sale number; items are stored separately.
    """

    run_query(get_supabase().table(_SALES_TABLE).insert(_sale_to_row(sale)), "create sale")
    return sale.with_items(())


def update_sale_header(
    sale_id: UUID,
    details: SaleDetails,
    total_amount: Decimal,
) -> None:
    """
    Update the editable header fields of a sale in place.

    sale_number, payment_status and sale_date are never changed here.
    """

    payload: dict[str, Any] = {
        "customer_name": details.customer_name,
        "customer_contact": details.customer_contact,
        "payment_method": details.payment_method.value,
        "notes": details.notes,
        "total_amount": str(total_amount),
    }
    run_query(
        get_supabase().table(_SALES_TABLE).update(payload).eq("id", str(sale_id)),
        "update sale",
    )


def get_sale_by_id(sale_id: UUID) -> Optional[Sale]:
    """
    Retrieve a single sale header by its ID.

    Returns:
        Sale (with no items attached) or None if not found
    """

    rows = run_query(
        get_supabase()
        .table(_SALES_TABLE)
        .select("*")
        .eq("id", str(sale_id))
        .limit(1),
        "get sale",
    )
    if not rows:
        return None
    return decode_rows(rows, _row_to_sale, "get sale")[0]


def list_sales() -> List[Sale]:
    """All sale headers, newest sale_date first."""

    rows = run_paged_query(
        lambda: get_supabase()
        .table(_SALES_TABLE)
        .select("*", count="exact")
        .order("sale_date", desc=True)
        .order("id"),
        "list sales",
    )
    return decode_rows(rows, _row_to_sale, "list sales")


def list_recent_sales(limit: int) -> List[Sale]:
    """The `limit` most recent sale headers, newest first."""

    if limit <= 0:
        raise ValueError("limit must be greater than zero")
    rows = run_query(
        get_supabase()
        .table(_SALES_TABLE)
        .select("*")
        .order("sale_date", desc=True)
        .order("id")
        .limit(limit),
        "list recent sales",
    )
    return decode_rows(rows, _row_to_sale, "list recent sales")


def sale_number_exists(sale_number: str) -> bool:
    rows = run_query(
        get_supabase()
        .table(_SALES_TABLE)
        .select("id")
        .eq("sale_number", sale_number)
        .limit(1),
        "check sale number",
    )
    return bool(rows)


def delete_sale(sale_id: UUID) -> None:
    run_query(
        get_supabase().table(_SALES_TABLE).delete().eq("id", str(sale_id)),
        "delete sale",
    )


def sales_between(start: datetime, end: datetime) -> List[Sale]:
    """Sale headers with start <= sale_date < end, newest first."""

    start_iso = to_iso_utc(start, name="start")
    end_iso = to_iso_utc(end, name="end")
    rows = run_paged_query(
        lambda: get_supabase()
        .table(_SALES_TABLE)
        .select("*", count="exact")
        .gte("sale_date", start_iso)
        .lt("sale_date", end_iso)
        .order("sale_date", desc=True)
        .order("id"),
        "list sales in range",
    )
    return decode_rows(rows, _row_to_sale, "list sales in range")


__all__ = [
    "insert_sale",
    "update_sale_header",
    "get_sale_by_id",
    "list_sales",
    "list_recent_sales",
    "sale_number_exists",
    "delete_sale",
    "sales_between",
]
