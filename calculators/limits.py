"""
Acquisition Limit Tracker

Per trader, sums the stored domestic amount of buys whose timestamp falls in
the current UTC calendar day and the current UTC calendar month. Caps are
regulatory constants shared by both traders. Usage is reported raw; only the
display helper clamps.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, Optional

from parsers.transaction import Transaction, Trader, TRADERS
from utils.logging_config import setup_logger

logger = setup_logger(__name__)

# KRW
DAILY_CAP = Decimal(10_000_000)
MONTHLY_CAP = Decimal(100_000_000)


@dataclass(frozen=True)
class LimitUsage:
    """Domestic spend on buys in the current day and month."""

    daily: Decimal = Decimal(0)
    monthly: Decimal = Decimal(0)

    def daily_status(self, cap: Decimal = DAILY_CAP) -> 'LimitStatus':
        return LimitStatus.for_usage(self.daily, cap)

    def monthly_status(self, cap: Decimal = MONTHLY_CAP) -> 'LimitStatus':
        return LimitStatus.for_usage(self.monthly, cap)


@dataclass(frozen=True)
class LimitStatus:
    """Display view of one usage figure against its cap."""

    used: Decimal
    cap: Decimal
    remaining: Decimal
    percent_used: Decimal

    @classmethod
    def for_usage(cls, used: Decimal, cap: Decimal) -> 'LimitStatus':
        if cap <= 0:
            raise ValueError(f"Cap must be positive: {cap}")
        # Remaining goes negative past the cap; only the bar is clamped
        percent = min(used / cap * 100, Decimal(100))
        return cls(used=used, cap=cap, remaining=cap - used, percent_used=percent)

    @property
    def exceeded(self) -> bool:
        return self.used > self.cap


def compute_limit_usage(
    transactions: Iterable[Transaction],
    now: datetime,
    traders: Optional[Iterable[Trader]] = None
) -> Dict[Trader, LimitUsage]:
    """
    Sum each trader's buys for the current UTC day and month.

    Every trader of the roster appears in the result, with zero usage if
    they bought nothing.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now_utc = now.astimezone(timezone.utc)
    today = now_utc.date()
    month = (now_utc.year, now_utc.month)

    roster = list(traders) if traders is not None else list(TRADERS)
    daily = {trader: Decimal(0) for trader in roster}
    monthly = {trader: Decimal(0) for trader in roster}

    for txn in transactions:
        if not txn.is_acquisition():
            continue
        stamp = txn.utc_timestamp()
        if (stamp.year, stamp.month) != month:
            continue
        if txn.trader not in monthly:
            logger.warning(f"Buy {txn.id} by {txn.trader.value} is outside the tracked roster")
            continue
        monthly[txn.trader] += txn.domestic_amount
        if stamp.date() == today:
            daily[txn.trader] += txn.domestic_amount

    usage = {trader: LimitUsage(daily=daily[trader], monthly=monthly[trader]) for trader in roster}

    for trader, figures in usage.items():
        if figures.daily > DAILY_CAP or figures.monthly > MONTHLY_CAP:
            logger.warning(
                f"{trader.value} is over the acquisition cap: "
                f"daily {figures.daily}/{DAILY_CAP}, monthly {figures.monthly}/{MONTHLY_CAP}"
            )

    return usage
