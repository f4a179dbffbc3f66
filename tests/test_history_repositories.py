"""
Tests for the append-only history repositories:
`repositories/movement_repository.py` and `repositories/ledger_repository.py`.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from domain.ledger import LedgerReference, TransactionType
from domain.movement import MovementReference, MovementType
from domain.sale import PaymentMethod
from repositories.ledger_repository import (
    delete_sale_transactions,
    list_sale_transactions,
    record_sale_transaction,
    restore_transaction,
)
from repositories.movement_repository import (
    delete_movement,
    list_movements_for_product,
    list_movements_for_reference,
    record_movement,
)


def test_record_movement_derives_direction(stocked) -> None:
    sale_id = uuid4()

    out = record_movement(stocked.a, -3, MovementReference.SALE, sale_id, notes="Sold")
    back = record_movement(stocked.a, 3, MovementReference.SALE_DELETION, sale_id)

    assert out.movement_type is MovementType.OUT
    assert back.movement_type is MovementType.IN
    row = stocked.db.rows("inventory_movements", id=out.movement_id)[0]
    assert row["movement_type"] == "out"
    assert row["quantity"] == -3
    assert row["reference_type"] == "sale"
    assert row["notes"] == "Sold"


def test_record_movement_rejects_zero(stocked) -> None:
    with pytest.raises(ValueError):
        record_movement(stocked.a, 0, MovementReference.SALE, uuid4())

    assert stocked.db.rows("inventory_movements") == []


def test_list_movements_by_product_and_reference(stocked) -> None:
    first_sale, second_sale = uuid4(), uuid4()
    record_movement(stocked.a, -2, MovementReference.SALE, first_sale)
    record_movement(stocked.b, -1, MovementReference.SALE, first_sale)
    record_movement(stocked.a, -4, MovementReference.SALE, second_sale)

    by_product = list_movements_for_product(stocked.a)
    by_reference = list_movements_for_reference(first_sale)

    assert sorted(m.quantity for m in by_product) == [-4, -2]
    assert {m.product_id for m in by_reference} == {stocked.a, stocked.b}
    assert all(m.reference_id == first_sale for m in by_reference)


def test_delete_movement_removes_only_that_row(stocked) -> None:
    sale_id = uuid4()
    keep = record_movement(stocked.a, -1, MovementReference.SALE, sale_id)
    drop = record_movement(stocked.b, -1, MovementReference.SALE, sale_id)

    delete_movement(drop.movement_id)

    assert [m.movement_id for m in list_movements_for_reference(sale_id)] == [keep.movement_id]


def test_record_sale_transaction(fake_supabase) -> None:
    sale_id = uuid4()
    actor = uuid4()

    tx = record_sale_transaction(
        sale_id=sale_id,
        amount=Decimal("15.00"),
        payment_method=PaymentMethod.UPI,
        description="Sale SALE-20250101-0001",
        created_by=actor,
    )

    assert tx.transaction_type is TransactionType.SALE
    assert tx.reference_type is LedgerReference.SALE
    stored = list_sale_transactions(sale_id)
    assert len(stored) == 1
    assert stored[0].amount == Decimal("15.00")
    assert stored[0].payment_method is PaymentMethod.UPI
    assert stored[0].created_by == actor


def test_delete_and_restore_sale_transactions(fake_supabase) -> None:
    sale_id = uuid4()
    record_sale_transaction(
        sale_id=sale_id,
        amount=Decimal("7.50"),
        payment_method=PaymentMethod.CASH,
        description="Sale SALE-20250101-0002",
        created_by=None,
    )
    before = fake_supabase.snapshot()
    stored = list_sale_transactions(sale_id)

    delete_sale_transactions(sale_id)
    assert list_sale_transactions(sale_id) == []

    for tx in stored:
        restore_transaction(tx)
    assert fake_supabase.snapshot() == before
