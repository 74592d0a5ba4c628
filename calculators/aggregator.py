"""
Monthly & Total Realized P/L Aggregation

Buckets realized trades by the calendar month of the sell's own timestamp
(in the reporting timezone), then derives the grand total and the
current-month figure from those buckets so the two can never drift apart.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple
from zoneinfo import ZoneInfo

from parsers.transaction import Transaction
from calculators.pl_calculator import RealizedTrade
from utils.logging_config import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class MonthlySummary:
    """Realized P/L per 'YYYY-MM', total, and the current month's bucket."""

    monthly_pl: Dict[str, Decimal] = field(default_factory=dict)
    total: Decimal = Decimal(0)
    current_month: Decimal = Decimal(0)
    current_month_key: str = ""


def month_key(moment: datetime, tz: ZoneInfo) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).strftime('%Y-%m')


def aggregate_realized(
    realized: Iterable[Tuple[Transaction, RealizedTrade]],
    now: datetime,
    tz: Optional[ZoneInfo] = None
) -> MonthlySummary:
    """
    Sum realized P/L into monthly buckets.

    Args:
        realized: (sell, realized trade) pairs
        now: Processing time; selects the current-month bucket
        tz: Zone the calendar months are taken in (default UTC)

    Returns:
        MonthlySummary; current_month is zero (not absent) when nothing was
        sold this month.
    """
    tz = tz or ZoneInfo("UTC")
    buckets: Dict[str, Decimal] = defaultdict(Decimal)

    for sell, trade in realized:
        buckets[sell.month_key(tz)] += trade.realized_pl

    monthly_pl = {key: buckets[key] for key in sorted(buckets)}
    total = sum(monthly_pl.values(), Decimal(0))

    current_key = month_key(now, tz)
    current = monthly_pl.get(current_key, Decimal(0))

    logger.debug(f"Aggregated {len(monthly_pl)} months, total {total}, {current_key} {current}")

    return MonthlySummary(
        monthly_pl=monthly_pl,
        total=total,
        current_month=current,
        current_month_key=current_key,
    )
