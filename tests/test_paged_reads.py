"""
Tests for reads over many rows (`repositories/client.py` paging and chunking).

Covers rules:
- Full-table reads page with `.range()` until every row is read, even when
  the server caps each response.
- Item lookups for many sales split the sale ids over several `in_` filters
  of bounded size.
- A stored row the domain cannot represent surfaces as PersistenceError.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

import repositories.client as client_module
from domain.errors import PersistenceError
from repositories.client import chunked, run_paged_query
from services.inventory_report_service import sales_summary
from services.sale_transaction_service import fetch_sales

START = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


def _seed_sales(db, product_id, count: int) -> list:
    """Store `count` one-item sales of 1 x 2.50, a minute apart."""

    sale_ids = []
    for n in range(count):
        sale_id = uuid4()
        when = (START + timedelta(minutes=n)).isoformat()
        db.tables.setdefault("sales", []).append(
            {
                "id": str(sale_id),
                "sale_number": f"SALE-20250101-{n:04d}",
                "customer_name": None,
                "customer_contact": None,
                "total_amount": "2.50",
                "payment_method": "cash",
                "payment_status": "completed",
                "notes": None,
                "sale_date": when,
                "created_at": when,
                "created_by": None,
            }
        )
        db.tables.setdefault("sale_items", []).append(
            {
                "id": str(uuid4()),
                "sale_id": str(sale_id),
                "product_id": str(product_id),
                "quantity": 1,
                "unit_price": "2.50",
                "total_price": "2.50",
                "created_at": when,
            }
        )
        sale_ids.append(sale_id)
    return sale_ids


def test_fetch_sales_reads_every_page(stocked, monkeypatch) -> None:
    monkeypatch.setattr(client_module, "PAGE_SIZE", 4)
    stocked.db.max_rows = 4
    sale_ids = _seed_sales(stocked.db, stocked.b, 10)

    sales = fetch_sales()

    assert [s.sale_id for s in sales] == list(reversed(sale_ids))
    assert all(s.item_count == 1 for s in sales)
    assert sales[0].items[0].product.sku == "BR-400"


def test_sales_summary_counts_past_the_row_cap(stocked, monkeypatch) -> None:
    monkeypatch.setattr(client_module, "PAGE_SIZE", 3)
    stocked.db.max_rows = 3
    _seed_sales(stocked.db, stocked.b, 10)

    summary = sales_summary()

    assert summary.total_sales == 10
    assert summary.total_revenue == Decimal("25.00")
    assert summary.items_sold == 10
    assert summary.total_products == 2


def test_item_lookup_splits_sale_ids(stocked, monkeypatch) -> None:
    monkeypatch.setattr(client_module, "IN_FILTER_CHUNK_SIZE", 3)
    _seed_sales(stocked.db, stocked.a, 10)

    sales = fetch_sales()

    assert len(sales) == 10
    assert all(len(s.items) == 1 for s in sales)
    assert stocked.db.largest_in_filter <= 3


def test_many_sales_keep_each_in_filter_bounded(stocked) -> None:
    _seed_sales(stocked.db, stocked.a, 250)

    sales = fetch_sales()

    assert len(sales) == 250
    assert sum(s.item_count for s in sales) == 250
    assert stocked.db.largest_in_filter <= client_module.IN_FILTER_CHUNK_SIZE


def test_run_paged_query_stops_on_exact_page_boundary(fake_supabase, monkeypatch) -> None:
    monkeypatch.setattr(client_module, "PAGE_SIZE", 2)
    for n in range(4):
        fake_supabase.add_category(f"Category {n}")

    rows = run_paged_query(
        lambda: fake_supabase.table("main_categories").select("*", count="exact").order("name"),
        "list categories",
    )

    assert [row["name"] for row in rows] == [f"Category {n}" for n in range(4)]


def test_chunked() -> None:
    assert list(chunked(range(7), 3)) == [[0, 1, 2], [3, 4, 5], [6]]
    assert list(chunked([], 3)) == []


def test_malformed_item_row_is_a_persistence_error(stocked) -> None:
    _seed_sales(stocked.db, stocked.a, 1)
    stocked.db.tables["sale_items"][0]["product_id"] = None

    with pytest.raises(PersistenceError, match="list sale items"):
        fetch_sales()


def test_server_cap_below_page_size_still_reads_everything(stocked) -> None:
    stocked.db.max_rows = 3
    _seed_sales(stocked.db, stocked.a, 10)

    sales = fetch_sales()

    assert len(sales) == 10
    assert all(len(s.items) == 1 for s in sales)
