"""
Inventory reporting service.

Read-only figures for the dashboard: products at or below their reorder
level, the most recent sales, and sales/stock totals including today's
sales and per-category stock.

"Today" is the current UTC calendar day.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from domain.errors import ValidationError
from domain.product import Product
from domain.sale import Sale, quantize_money
from domain.time import require_utc_timestamp, utc_now
from repositories.product_repository import list_category_names, list_products
from repositories.sale_item_repository import list_items_for_sales
from repositories.sale_repository import list_recent_sales, list_sales, sales_between

DEFAULT_RECENT_SALES_LIMIT: int = 10
MAX_RECENT_SALES_LIMIT: int = 100


@dataclass(frozen=True, slots=True)
class CategoryStockTotal:
    """Units on hand and their value for one main category."""

    category_name: str
    units: int
    stock_value: Decimal


@dataclass(frozen=True, slots=True)
class SalesSummary:
    """
    Aggregate sales and stock figures.

    total_sales: Number of sales in the window (all sales when no window)
    total_revenue: Sum of sale totals in the window
    items_sold: Units across all sale items in the window
    today_sales: Number of sales dated today (UTC), regardless of the window
    today_revenue: Sum of today's sale totals
    inventory_value: Sum of unit_price * quantity over every product
    total_products: Number of products
    total_categories: Number of main categories
    low_stock_count: Products at or below their reorder level
    categories: Stock per main category, alphabetically
    """

    total_sales: int
    total_revenue: Decimal
    items_sold: int
    today_sales: int
    today_revenue: Decimal
    inventory_value: Decimal
    total_products: int
    total_categories: int
    low_stock_count: int
    categories: Tuple[CategoryStockTotal, ...] = ()


def low_stock_products() -> List[Product]:
    """Products whose quantity is at or below their reorder level, lowest stock first."""

    products = [p for p in list_products() if p.is_low_stock]
    return sorted(products, key=lambda p: (p.quantity, p.name))


def recent_sales(limit: int = DEFAULT_RECENT_SALES_LIMIT) -> List[Sale]:
    """The most recent sales with their items, newest first."""

    if not 1 <= limit <= MAX_RECENT_SALES_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_RECENT_SALES_LIMIT}")

    sales = list_recent_sales(limit)
    items_by_sale = list_items_for_sales(s.sale_id for s in sales)
    return [s.with_items(items_by_sale.get(s.sale_id, [])) for s in sales]


def _check_window(since: Optional[datetime], until: Optional[datetime]) -> None:
    if (since is None) != (until is None):
        raise ValidationError("since and until must be given together")
    if since is None or until is None:
        return
    try:
        require_utc_timestamp("since", since)
        require_utc_timestamp("until", until)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if since >= until:
        raise ValidationError("since must be before until")


def _category_totals(products: List[Product], category_names: List[str]) -> Tuple[CategoryStockTotal, ...]:
    units = {name: 0 for name in category_names}
    values = {name: Decimal("0") for name in category_names}
    for product in products:
        if product.category_name is None:
            continue
        units[product.category_name] = units.get(product.category_name, 0) + product.quantity
        values[product.category_name] = values.get(product.category_name, Decimal("0")) + product.stock_value

    return tuple(
        CategoryStockTotal(category_name=name, units=units[name], stock_value=quantize_money(values[name]))
        for name in sorted(units)
    )


def sales_summary(
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> SalesSummary:
    """
    Summarize sales, optionally restricted to since <= sale_date < until.

    Both bounds must be given together, as UTC timestamps, with since before
    until. `now` fixes the clock used for today's figures.

    Raises:
        ValidationError: the window is half-given, not UTC, or empty.
    """

    _check_window(since, until)

    sales = list_sales() if since is None else sales_between(since, until)  # type: ignore[arg-type]
    items_by_sale = list_items_for_sales(s.sale_id for s in sales)

    current = now or utc_now()
    day_start = current.replace(hour=0, minute=0, second=0, microsecond=0)
    todays = sales_between(day_start, day_start + timedelta(days=1))

    products = list_products()
    category_names = list_category_names()

    return SalesSummary(
        total_sales=len(sales),
        total_revenue=quantize_money(sum((s.total_amount for s in sales), Decimal("0"))),
        items_sold=sum(item.quantity for items in items_by_sale.values() for item in items),
        today_sales=len(todays),
        today_revenue=quantize_money(sum((s.total_amount for s in todays), Decimal("0"))),
        inventory_value=quantize_money(sum((p.stock_value for p in products), Decimal("0"))),
        total_products=len(products),
        total_categories=len(category_names),
        low_stock_count=sum(1 for p in products if p.is_low_stock),
        categories=_category_totals(products, category_names),
    )


__all__ = [
    "CategoryStockTotal",
    "SalesSummary",
    "DEFAULT_RECENT_SALES_LIMIT",
    "MAX_RECENT_SALES_LIMIT",
    "low_stock_products",
    "recent_sales",
    "sales_summary",
]
