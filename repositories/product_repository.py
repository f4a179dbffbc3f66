"""
Product repository (persistence) and stock ledger.

Product rows are owned by the catalog; this module only reads them and
changes `quantity` through `apply_stock_delta()`, which calls the
`apply_stock_delta` PostgreSQL function (see sql/schema.sql). That function
performs a single conditional UPDATE:

    UPDATE products SET quantity = quantity + p_delta
    WHERE id = p_product_id AND quantity + p_delta >= 0

so concurrent sales never lose each other's updates and stock never goes
negative. Callers must not read-modify-write `quantity` themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional
from uuid import UUID

from postgrest.exceptions import APIError

from domain.errors import InsufficientStockError, PersistenceError
from domain.product import Product
from repositories.client import (
    decode_rows,
    get_supabase,
    run_in_query,
    run_paged_query,
    run_query,
)

_PRODUCTS_TABLE: str = "products"
_CATEGORIES_TABLE: str = "main_categories"
_APPLY_STOCK_DELTA_RPC: str = "apply_stock_delta"


@dataclass(frozen=True, slots=True)
class StockDeltaResult:
    """Result from the apply_stock_delta PostgreSQL function."""

    success: bool
    quantity: Optional[int]
    error_code: Optional[str]
    error_message: Optional[str]


def _row_to_product(row: Mapping[str, Any], category_name: Optional[str] = None) -> Product:
    """Convert a Supabase row into a Product."""

    reorder_level = row.get("reorder_level")
    return Product(
        product_id=UUID(str(row["id"])),
        name=str(row["name"]),
        sku=str(row["sku"]),
        quantity=int(row["quantity"]),
        unit_price=Decimal(str(row["unit_price"])),
        reorder_level=int(reorder_level) if reorder_level is not None else None,
        category_name=category_name,
    )


def _category_names(category_ids: Iterable[str]) -> dict[str, str]:
    ids = {str(c) for c in category_ids if c}
    if not ids:
        return {}
    rows = run_in_query(
        lambda chunk: get_supabase()
        .table(_CATEGORIES_TABLE)
        .select("id, name", count="exact")
        .in_("id", chunk)
        .order("id"),
        ids,
        "fetch categories",
    )
    return {str(row["id"]): str(row["name"]) for row in rows}


def _rows_to_products(rows: List[Mapping[str, Any]], action: str) -> List[Product]:
    names = _category_names(row.get("main_category_id") for row in rows)
    return decode_rows(
        rows,
        lambda row: _row_to_product(row, names.get(str(row.get("main_category_id")))),
        action,
    )


def fetch_available_products() -> List[Product]:
    """
    Products that can be put in a cart: quantity > 0, ordered by name.

    Each product carries its main category name when it has one.
    """

    rows = run_paged_query(
        lambda: get_supabase()
        .table(_PRODUCTS_TABLE)
        .select("*", count="exact")
        .gt("quantity", 0)
        .order("name")
        .order("id"),
        "fetch available products",
    )
    return _rows_to_products(rows, "fetch available products")


def list_products() -> List[Product]:
    rows = run_paged_query(
        lambda: get_supabase()
        .table(_PRODUCTS_TABLE)
        .select("*", count="exact")
        .order("name")
        .order("id"),
        "list products",
    )
    return _rows_to_products(rows, "list products")


def list_category_names() -> List[str]:
    """Every main category name, alphabetically."""

    rows = run_paged_query(
        lambda: get_supabase()
        .table(_CATEGORIES_TABLE)
        .select("id, name", count="exact")
        .order("name")
        .order("id"),
        "list categories",
    )
    return decode_rows(rows, lambda row: str(row["name"]), "list categories")


def get_product_by_id(product_id: UUID) -> Optional[Product]:
    rows = run_query(
        get_supabase()
        .table(_PRODUCTS_TABLE)
        .select("*")
        .eq("id", str(product_id))
        .limit(1),
        "get product",
    )
    if not rows:
        return None
    return decode_rows(rows, _row_to_product, "get product")[0]


def get_products_by_ids(product_ids: Iterable[UUID]) -> dict[UUID, Product]:
    """
    Fetch several products at once.

    Returns:
        Mapping of product_id to Product; ids that do not exist are absent.
    """

    ids = {str(p) for p in product_ids}
    if not ids:
        return {}
    rows = run_in_query(
        lambda chunk: get_supabase()
        .table(_PRODUCTS_TABLE)
        .select("*", count="exact")
        .in_("id", chunk)
        .order("id"),
        ids,
        "get products",
    )
    products = decode_rows(rows, _row_to_product, "get products")
    return {p.product_id: p for p in products}


def _parse_stock_delta_payload(payload: Mapping[str, Any]) -> StockDeltaResult:
    if payload.get("success"):
        quantity = payload.get("quantity")
        return StockDeltaResult(
            success=True,
            quantity=int(quantity) if quantity is not None else None,
            error_code=None,
            error_message=None,
        )
    return StockDeltaResult(
        success=False,
        quantity=None,
        error_code=payload.get("error"),
        error_message=payload.get("message"),
    )


def _call_stock_delta(product_id: UUID, delta: int) -> StockDeltaResult:
    query = get_supabase().rpc(
        _APPLY_STOCK_DELTA_RPC,
        {"p_product_id": str(product_id), "p_delta": int(delta)},
    )
    try:
        rows = run_query(query, "apply stock delta")
    except PersistenceError as e:
        cause = e.__cause__
        if not isinstance(cause, APIError):
            raise
        # supabase-py can raise APIError for a JSON function result even when
        # the function succeeded; the payload is then on the exception.
        try:
            payload = cause.json()
        except (TypeError, ValueError):
            raise e from cause
        if not isinstance(payload, Mapping) or "success" not in payload:
            raise
        return _parse_stock_delta_payload(payload)

    if not rows:
        raise PersistenceError("Failed to apply stock delta: empty response")
    return _parse_stock_delta_payload(rows[0])


def apply_stock_delta(product_id: UUID, delta: int) -> int:
    """
    Atomically add `delta` (signed) to a product's quantity.

    Returns:
        The product quantity after the update.

    Raises:
        InsufficientStockError: the update would take quantity below zero.
        PersistenceError: the product does not exist or the call failed.
    """

    if delta == 0:
        raise ValueError("delta must be non-zero")

    result = _call_stock_delta(product_id, delta)
    if result.success:
        if result.quantity is None:
            raise PersistenceError("Failed to apply stock delta: no quantity returned")
        return result.quantity

    if result.error_code == "INSUFFICIENT_STOCK":
        raise InsufficientStockError(product_id, delta)
    raise PersistenceError(
        f"Failed to apply stock delta to {product_id}: "
        f"{result.error_code or 'UNKNOWN'} {result.error_message or ''}".rstrip()
    )


__all__ = [
    "StockDeltaResult",
    "fetch_available_products",
    "list_products",
    "list_category_names",
    "get_product_by_id",
    "get_products_by_ids",
    "apply_stock_delta",
]
