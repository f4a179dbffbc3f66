"""
Financial transaction repository (ledger entry recorder).

One ledger row per sale, linked by (reference_type="sale", reference_id).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Mapping, Optional
from uuid import UUID, uuid4

from domain.ledger import FinancialTransaction, LedgerReference, TransactionType
from domain.sale import PaymentMethod
from domain.time import parse_utc_datetime, to_iso_utc, utc_now
from repositories.client import decode_rows, get_supabase, run_query

_LEDGER_TABLE: str = "financial_transactions"


def _row_to_transaction(row: Mapping[str, Any]) -> FinancialTransaction:
    payment_method = row.get("payment_method")
    created_by = row.get("created_by")
    return FinancialTransaction(
        transaction_id=UUID(str(row["id"])),
        transaction_type=TransactionType(str(row["transaction_type"])),
        reference_type=LedgerReference(str(row["reference_type"])),
        reference_id=UUID(str(row["reference_id"])),
        amount=Decimal(str(row["amount"])),
        transaction_date=parse_utc_datetime(row["transaction_date"]),
        description=row.get("description"),
        payment_method=PaymentMethod(str(payment_method)) if payment_method else None,
        created_at=parse_utc_datetime(row["created_at"]) if row.get("created_at") else None,
        created_by=UUID(str(created_by)) if created_by else None,
    )


def _transaction_to_row(tx: FinancialTransaction) -> dict[str, Any]:
    return {
        "id": str(tx.transaction_id),
        "transaction_type": tx.transaction_type.value,
        "reference_type": tx.reference_type.value,
        "reference_id": str(tx.reference_id),
        "amount": str(tx.amount),
        "description": tx.description,
        "transaction_date": to_iso_utc(tx.transaction_date, name="transaction_date"),
        "payment_method": tx.payment_method.value if tx.payment_method else None,
        "created_at": to_iso_utc(tx.created_at, name="created_at") if tx.created_at else None,
        "created_by": str(tx.created_by) if tx.created_by else None,
    }


def record_sale_transaction(
    sale_id: UUID,
    amount: Decimal,
    payment_method: PaymentMethod,
    description: Optional[str] = None,
    created_by: Optional[UUID] = None,
) -> FinancialTransaction:
    """Append the ledger entry for a sale."""

    now = utc_now()
    tx = FinancialTransaction(
        transaction_id=uuid4(),
        transaction_type=TransactionType.SALE,
        reference_type=LedgerReference.SALE,
        reference_id=sale_id,
        amount=amount,
        transaction_date=now,
        description=description,
        payment_method=payment_method,
        created_at=now,
        created_by=created_by,
    )
    restore_transaction(tx)
    return tx


def restore_transaction(tx: FinancialTransaction) -> None:
    """Insert an already-built ledger row (used to re-insert a deleted entry)."""

    run_query(
        get_supabase().table(_LEDGER_TABLE).insert(_transaction_to_row(tx)),
        "record financial transaction",
    )


def list_sale_transactions(sale_id: UUID) -> List[FinancialTransaction]:
    rows = run_query(
        get_supabase()
        .table(_LEDGER_TABLE)
        .select("*")
        .eq("reference_type", LedgerReference.SALE.value)
        .eq("reference_id", str(sale_id)),
        "list financial transactions",
    )
    return decode_rows(rows, _row_to_transaction, "list financial transactions")


def delete_sale_transactions(sale_id: UUID) -> None:
    """Hard-delete every ledger entry referencing the sale (no reversing entry)."""

    run_query(
        get_supabase()
        .table(_LEDGER_TABLE)
        .delete()
        .eq("reference_type", LedgerReference.SALE.value)
        .eq("reference_id", str(sale_id)),
        "delete financial transaction",
    )


def delete_transaction(transaction_id: UUID) -> None:
    run_query(
        get_supabase().table(_LEDGER_TABLE).delete().eq("id", str(transaction_id)),
        "delete financial transaction",
    )


__all__ = [
    "record_sale_transaction",
    "restore_transaction",
    "list_sale_transactions",
    "delete_sale_transactions",
    "delete_transaction",
]
