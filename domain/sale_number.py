"""
Domain: human-readable sale numbers.

Format: SALE-YYYYMMDD-NNNN
- The date is the UTC calendar date of the sale.
- The first candidate suffix is the last four digits of the epoch
  milliseconds; later candidates are random. Uniqueness is checked by the
  caller against stored sales.
"""

from __future__ import annotations

import random
from datetime import datetime

from .time import require_utc_timestamp

SALE_NUMBER_PREFIX: str = "SALE"


def time_suffix(now: datetime) -> int:
    return int(now.timestamp() * 1000) % 10000


def random_suffix(rng: random.Random | None = None) -> int:
    return (rng or random).randint(0, 9999)


def format_sale_number(now: datetime, suffix: int) -> str:
    require_utc_timestamp("now", now)
    if not 0 <= suffix <= 9999:
        raise ValueError("suffix must be between 0 and 9999")
    return f"{SALE_NUMBER_PREFIX}-{now:%Y%m%d}-{suffix:04d}"

