"""
Domain: Financial ledger entries.

Each sale owns exactly one FinancialTransaction (reference_type "sale").
Deleting the sale hard-deletes its entry; no reversing entry is written.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .sale import PaymentMethod
from .time import require_utc_timestamp


class TransactionType(str, Enum):
    SALE = "sale"


class LedgerReference(str, Enum):
    SALE = "sale"


@dataclass(frozen=True, slots=True)
class FinancialTransaction:
    transaction_id: UUID
    transaction_type: TransactionType
    reference_type: LedgerReference
    reference_id: UUID
    amount: Decimal
    transaction_date: datetime
    description: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    created_at: Optional[datetime] = None
    created_by: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("transaction_date", self.transaction_date)
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
