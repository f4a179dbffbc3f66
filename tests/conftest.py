"""
Pytest configuration.

Adds the project root to the Python path so that tests can import domain,
repositories, services and api, and provides an in-memory stand-in for the
Supabase client so repository, service and API tests run without a database.

The fake supports the subset of the postgrest query builder the repositories
use (select/insert/update/delete with eq, in_, gt, gte, lt, order, limit,
range and `count="exact"`),
`rpc("apply_stock_delta", ...)` and `auth.get_session()`. Failures can be
injected per (table, operation) to exercise rollback paths.
Setting `max_rows` caps every response the way PostgREST max-rows does.
"""

from __future__ import annotations

import copy
import sys
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

import pytest
from postgrest.exceptions import APIError

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def _norm(value: Any) -> Any:
    return None if value is None else str(value)


class FakeResponse:
    def __init__(self, data: Any, count: Optional[int] = None) -> None:
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._columns = "*"
        self._payload: Any = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._orders: List[tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._range: Optional[tuple[int, int]] = None
        self._count: Optional[str] = None

    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self._op = "select"
        self._columns = columns
        self._count = count
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: _norm(row.get(column)) == _norm(value))
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        allowed = {_norm(v) for v in values}
        self._db.largest_in_filter = max(self._db.largest_in_filter, len(allowed))
        self._filters.append(lambda row: _norm(row.get(column)) in allowed)
        return self

    def gt(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) is not None and row[column] > value)
        return self

    def gte(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) is not None and row[column] >= value)
        return self

    def lt(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) is not None and row[column] < value)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._range = (start, end)
        return self

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if self._columns.strip() == "*":
            return copy.deepcopy(row)
        columns = [c.strip() for c in self._columns.split(",")]
        return {c: copy.deepcopy(row.get(c)) for c in columns}

    def execute(self) -> FakeResponse:
        self._db.check_failure(self._table, self._op)
        rows = self._db.tables.setdefault(self._table, [])

        if self._op == "insert":
            payloads = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = [copy.deepcopy(p) for p in payloads]
            rows.extend(inserted)
            return FakeResponse(copy.deepcopy(inserted))

        matched = [row for row in rows if all(f(row) for f in self._filters)]

        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return FakeResponse(copy.deepcopy(matched))

        if self._op == "delete":
            self._db.tables[self._table] = [row for row in rows if row not in matched]
            return FakeResponse(copy.deepcopy(matched))

        # Stable sorts applied last key first give multi-column ordering.
        for column, desc in reversed(self._orders):
            matched = sorted(
                matched,
                key=lambda row, column=column: (row.get(column) is None, row.get(column)),
                reverse=desc,
            )
        total = len(matched)
        if self._range is not None:
            start, end = self._range
            matched = matched[start : end + 1]
        if self._limit is not None:
            matched = matched[: self._limit]
        if self._db.max_rows is not None:
            matched = matched[: self._db.max_rows]
        count = total if self._count == "exact" else None
        return FakeResponse([self._project(row) for row in matched], count=count)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]) -> None:
        self._db = db
        self._name = name
        self._params = params

    def execute(self) -> FakeResponse:
        self._db.check_failure(f"rpc:{self._name}", "call")
        if self._name != "apply_stock_delta":
            raise APIError({"message": f"function {self._name} does not exist", "code": "42883"})
        return FakeResponse(self._db.apply_stock_delta(self._params["p_product_id"], self._params["p_delta"]))


class FakeSupabase:
    """In-memory replacement for the supabase Client."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.actor: Optional[UUID] = None
        # Server-side cap on rows per response, like PostgREST max-rows.
        self.max_rows: Optional[int] = None
        self.largest_in_filter = 0
        self._failures: Dict[tuple[str, str], int] = {}
        self.auth = SimpleNamespace(get_session=self._get_session)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def _get_session(self) -> Any:
        if self.actor is None:
            return None
        return SimpleNamespace(user=SimpleNamespace(id=str(self.actor)))

    def fail_on(self, table: str, op: str, after: int = 0) -> None:
        """Make the (after + 1)-th matching call raise APIError."""

        self._failures[(table, op)] = after

    def check_failure(self, table: str, op: str) -> None:
        key = (table, op)
        if key not in self._failures:
            return
        if self._failures[key] > 0:
            self._failures[key] -= 1
            return
        del self._failures[key]
        raise APIError({"message": f"injected failure on {table}.{op}", "code": "XX000"})

    def apply_stock_delta(self, product_id: str, delta: int) -> Dict[str, Any]:
        for row in self.tables.get("products", []):
            if str(row["id"]) == str(product_id):
                if row["quantity"] + delta < 0:
                    return {"success": False, "error": "INSUFFICIENT_STOCK", "message": "Stock would go below zero"}
                row["quantity"] += delta
                return {"success": True, "quantity": row["quantity"]}
        return {"success": False, "error": "PRODUCT_NOT_FOUND", "message": "Product does not exist"}

    # Test helpers

    def add_category(self, name: str) -> str:
        category_id = str(uuid4())
        self.tables.setdefault("main_categories", []).append({"id": category_id, "name": name})
        return category_id

    def add_product(
        self,
        name: str,
        sku: str,
        quantity: int,
        unit_price: str,
        reorder_level: Optional[int] = None,
        main_category_id: Optional[str] = None,
    ) -> UUID:
        product_id = uuid4()
        self.tables.setdefault("products", []).append(
            {
                "id": str(product_id),
                "name": name,
                "sku": sku,
                "quantity": quantity,
                "unit_price": unit_price,
                "reorder_level": reorder_level,
                "main_category_id": main_category_id,
            }
        )
        return product_id

    def quantity_of(self, product_id: UUID) -> int:
        for row in self.tables.get("products", []):
            if row["id"] == str(product_id):
                return int(row["quantity"])
        raise KeyError(product_id)

    def rows(self, table: str, **where: Any) -> List[Dict[str, Any]]:
        return [
            row
            for row in self.tables.get(table, [])
            if all(_norm(row.get(k)) == _norm(v) for k, v in where.items())
        ]

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Deep copy of every non-empty table."""

        return {name: copy.deepcopy(rows) for name, rows in self.tables.items() if rows}


@pytest.fixture
def fake_supabase(monkeypatch: pytest.MonkeyPatch) -> FakeSupabase:
    """Install a fresh in-memory Supabase client for the duration of a test."""

    import repositories.client as client_module

    fake = FakeSupabase()
    monkeypatch.setattr(client_module, "_client", fake)
    return fake


@pytest.fixture
def stocked(fake_supabase: FakeSupabase) -> SimpleNamespace:
    """
    Two products:
    - A: quantity 10, unit price 5.00
    - B: quantity 4, unit price 2.50, reorder level 5
    """

    category_id = fake_supabase.add_category("Groceries")
    product_a = fake_supabase.add_product("Apple Juice", "AJ-1L", 10, "5.00", main_category_id=category_id)
    product_b = fake_supabase.add_product("Bread", "BR-400", 4, "2.50", reorder_level=5)
    return SimpleNamespace(db=fake_supabase, a=product_a, b=product_b, unit_price_a=Decimal("5.00"))
