"""
Tests for `domain/sale.py`, `domain/movement.py` and `domain/ledger.py`.

Covers rules:
- Sale and ledger timestamps must be UTC.
- Sale records are immutable (frozen).
- Payment methods are limited to cash, card, upi, bank_transfer, credit.
- Movement direction matches the sign of its quantity.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from domain.errors import ValidationError
from domain.ledger import FinancialTransaction, LedgerReference, TransactionType
from domain.movement import InventoryMovement, MovementReference, MovementType
from domain.sale import PaymentMethod, PaymentStatus, Sale, SaleItem

SALE_ID = UUID("00000000-0000-0000-0000-000000000020")
PRODUCT_ID = UUID("00000000-0000-0000-0000-000000000021")
UTC_NOON = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _sale(**overrides: object) -> Sale:
    fields: dict = {
        "sale_id": SALE_ID,
        "sale_number": "SALE-20250101-0001",
        "total_amount": Decimal("15.00"),
        "payment_method": PaymentMethod.CASH,
        "payment_status": PaymentStatus.COMPLETED,
        "sale_date": UTC_NOON,
    }
    fields.update(overrides)
    return Sale(**fields)


def test_sale_date_must_be_utc() -> None:
    with pytest.raises(ValueError):
        _sale(sale_date=datetime(2025, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        _sale(sale_date=datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone(timedelta(hours=2))))


def test_sale_is_immutable() -> None:
    sale = _sale()

    with pytest.raises(FrozenInstanceError):
        sale.total_amount = Decimal("0")  # type: ignore[misc]


def test_with_items_returns_new_sale() -> None:
    sale = _sale()
    item = SaleItem(
        item_id=UUID("00000000-0000-0000-0000-000000000022"),
        sale_id=SALE_ID,
        product_id=PRODUCT_ID,
        quantity=3,
        unit_price=Decimal("5.00"),
        total_price=Decimal("15.00"),
    )

    with_items = sale.with_items([item])

    assert sale.items == ()
    assert with_items.items == (item,)
    assert with_items.item_count == 3
    assert with_items.sale_number == sale.sale_number


def test_sale_item_quantity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SaleItem(
            item_id=UUID("00000000-0000-0000-0000-000000000022"),
            sale_id=SALE_ID,
            product_id=PRODUCT_ID,
            quantity=0,
            unit_price=Decimal("5.00"),
            total_price=Decimal("0"),
        )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("cash", PaymentMethod.CASH),
        ("CARD", PaymentMethod.CARD),
        (" upi ", PaymentMethod.UPI),
        ("bank_transfer", PaymentMethod.BANK_TRANSFER),
        ("credit", PaymentMethod.CREDIT),
    ],
)
def test_payment_method_parse(raw: str, expected: PaymentMethod) -> None:
    assert PaymentMethod.parse(raw) is expected


def test_payment_method_parse_rejects_unknown() -> None:
    with pytest.raises(ValidationError):
        PaymentMethod.parse("cheque")


def test_movement_type_follows_sign() -> None:
    assert MovementType.for_delta(3) is MovementType.IN
    assert MovementType.for_delta(-3) is MovementType.OUT

    with pytest.raises(ValueError):
        MovementType.for_delta(0)


def test_movement_rejects_mismatched_direction() -> None:
    with pytest.raises(ValueError):
        InventoryMovement(
            movement_id=UUID("00000000-0000-0000-0000-000000000030"),
            product_id=PRODUCT_ID,
            movement_type=MovementType.OUT,
            quantity=3,
            reference_type=MovementReference.SALE,
            reference_id=SALE_ID,
            movement_date=UTC_NOON,
        )


def test_financial_transaction_requires_utc() -> None:
    with pytest.raises(ValueError):
        FinancialTransaction(
            transaction_id=UUID("00000000-0000-0000-0000-000000000040"),
            transaction_type=TransactionType.SALE,
            reference_type=LedgerReference.SALE,
            reference_id=SALE_ID,
            amount=Decimal("15.00"),
            transaction_date=datetime(2025, 1, 1),
        )
