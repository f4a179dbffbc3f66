"""
Sale item repository (persistence).

Sale items are written once per cart line and only ever removed as a whole
set (sale edit or sale deletion).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, List, Mapping
from uuid import UUID, uuid4

from domain.cart import Cart
from domain.product import ProductSummary
from domain.sale import SaleItem
from domain.time import parse_utc_datetime, to_iso_utc, utc_now
from repositories.client import decode_rows, get_supabase, run_in_query, run_query

_SALE_ITEMS_TABLE: str = "sale_items"
_PRODUCTS_TABLE: str = "products"


def _row_to_item(row: Mapping[str, Any], product: ProductSummary | None = None) -> SaleItem:
    return SaleItem(
        item_id=UUID(str(row["id"])),
        sale_id=UUID(str(row["sale_id"])),
        product_id=UUID(str(row["product_id"])),
        quantity=int(row["quantity"]),
        unit_price=Decimal(str(row["unit_price"])),
        total_price=Decimal(str(row["total_price"])),
        created_at=parse_utc_datetime(row["created_at"]) if row.get("created_at") else None,
        product=product,
    )


def _item_to_row(item: SaleItem) -> dict[str, Any]:
    return {
        "id": str(item.item_id),
        "sale_id": str(item.sale_id),
        "product_id": str(item.product_id),
        "quantity": item.quantity,
        "unit_price": str(item.unit_price),
        "total_price": str(item.total_price),
        "created_at": to_iso_utc(item.created_at, name="created_at") if item.created_at else None,
    }


def insert_sale_items(sale_id: UUID, cart: Cart) -> List[SaleItem]:
    """Insert one sale item per cart line, in cart order."""

    now = utc_now()
    items = [
        SaleItem(
            item_id=uuid4(),
            sale_id=sale_id,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total,
            created_at=now,
            product=ProductSummary(product_id=line.product_id, name=line.product_name, sku=line.sku),
        )
        for line in cart
    ]
    restore_sale_items(items)
    return items


def restore_sale_items(items: Iterable[SaleItem]) -> None:
    """Insert already-built sale items (used to re-insert deleted rows)."""

    rows = [_item_to_row(item) for item in items]
    if not rows:
        return
    run_query(get_supabase().table(_SALE_ITEMS_TABLE).insert(rows), "create sale items")


def _product_summaries(product_ids: Iterable[str]) -> dict[str, ProductSummary]:
    ids = set(product_ids)
    if not ids:
        return {}
    rows = run_in_query(
        lambda chunk: get_supabase()
        .table(_PRODUCTS_TABLE)
        .select("id, name, sku", count="exact")
        .in_("id", chunk)
        .order("id"),
        ids,
        "fetch product summaries",
    )
    summaries = decode_rows(
        rows,
        lambda row: ProductSummary(
            product_id=UUID(str(row["id"])), name=str(row["name"]), sku=str(row["sku"])
        ),
        "fetch product summaries",
    )
    return {str(s.product_id): s for s in summaries}


def list_items_for_sales(sale_ids: Iterable[UUID]) -> dict[UUID, List[SaleItem]]:
    """
    Fetch the items of several sales, each with a product summary.

    Sale ids are sent in chunks so the request URL stays short however many
    sales are asked for.

    Returns:
        Mapping of sale_id to its items (sales without items are absent).
    """

    ids = {str(s) for s in sale_ids}
    if not ids:
        return {}
    rows = run_in_query(
        lambda chunk: get_supabase()
        .table(_SALE_ITEMS_TABLE)
        .select("*", count="exact")
        .in_("sale_id", chunk)
        .order("created_at")
        .order("id"),
        ids,
        "list sale items",
    )
    summaries = _product_summaries(str(row["product_id"]) for row in rows if row.get("product_id"))
    items = decode_rows(
        rows,
        lambda row: _row_to_item(row, summaries.get(str(row.get("product_id")))),
        "list sale items",
    )

    result: dict[UUID, List[SaleItem]] = {}
    for item in items:
        result.setdefault(item.sale_id, []).append(item)
    return result


def list_sale_items(sale_id: UUID) -> List[SaleItem]:
    return list_items_for_sales([sale_id]).get(sale_id, [])


def delete_sale_items(sale_id: UUID) -> None:
    run_query(
        get_supabase().table(_SALE_ITEMS_TABLE).delete().eq("sale_id", str(sale_id)),
        "delete sale items",
    )


__all__ = [
    "insert_sale_items",
    "restore_sale_items",
    "list_items_for_sales",
    "list_sale_items",
    "delete_sale_items",
]
