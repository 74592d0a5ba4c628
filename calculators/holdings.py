"""
Holdings & Average Acquisition Rate

Folds open buys (lots not yet closed by a sell) into the held foreign amount
and the amount-weighted average quoted rate, per currency. Sums run at
extended precision and the average is bounded by the open lots' own rates.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from typing import Dict, Iterable, Optional

from parsers.transaction import Transaction, Trader
from utils.logging_config import setup_logger

logger = setup_logger(__name__)

# Digits for the running sums; enough to keep amount x rate products exact
SUM_PRECISION = 80


@dataclass(frozen=True)
class HoldingsView:
    """Open foreign amount and weighted average quoted rate, per currency."""

    holdings: Dict[str, Decimal] = field(default_factory=dict)
    avg_acquisition_rate: Dict[str, Decimal] = field(default_factory=dict)

    def currencies(self):
        return sorted(self.holdings)


def compute_holdings(
    transactions: Iterable[Transaction],
    closed_lot_ids: Iterable[str],
    trader: Optional[Trader] = None
) -> HoldingsView:
    """
    Fold open buys into per-currency totals.

    avg = sum(amount x rate) / sum(amount), on the quoted rate (JPY stays per
    100). A currency without open lots is left out of both maps.

    Args:
        transactions: Full transaction collection
        closed_lot_ids: Buy ids already closed by a sell
        trader: Restrict to one trader's lots (default: pooled across traders)
    """
    closed = set(closed_lot_ids)
    amounts: Dict[str, Decimal] = defaultdict(Decimal)
    weighted: Dict[str, Decimal] = defaultdict(Decimal)
    rate_bounds: Dict[str, tuple] = {}

    holdings = {}
    avg_rates = {}

    with localcontext() as ctx:
        ctx.prec = SUM_PRECISION

        for txn in sorted(transactions, key=lambda t: (t.timestamp, t.id)):
            if not txn.is_acquisition() or txn.id in closed:
                continue
            if trader is not None and txn.trader != trader:
                continue
            amounts[txn.currency] += txn.foreign_amount
            weighted[txn.currency] += txn.foreign_amount * txn.rate
            low, high = rate_bounds.get(txn.currency, (txn.rate, txn.rate))
            rate_bounds[txn.currency] = (min(low, txn.rate), max(high, txn.rate))

        for currency in sorted(amounts):
            total = amounts[currency]
            if total <= 0:
                continue
            low, high = rate_bounds[currency]
            holdings[currency] = total
            avg_rates[currency] = min(max(weighted[currency] / total, low), high)

    return HoldingsView(holdings=holdings, avg_acquisition_rate=avg_rates)
