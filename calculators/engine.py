"""
Ledger Analytics Engine

Pure fold from a complete transaction collection to an AnalyticsSnapshot:

1. Validate value-level integrity (ids, positive amounts/rates, stored
   domestic amounts)
2. Match every sell to the lot it names
3. Realize P/L per sell
4. Fold holdings / monthly totals / limit usage over the same collection
5. Merge into one snapshot

Either every view is computed from one consistent collection, or
LedgerIntegrityError is raised and nothing is returned. The snapshot has no
identity of its own: recompute it after every mutation.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence

from parsers.transaction import Transaction, Trader, TRADERS, wire_number
from calculators.validators import LedgerValidator, ValidationIssue
from calculators.matcher import match_disposals
from calculators.pl_calculator import RealizedTrade, compute_realized
from calculators.holdings import compute_holdings
from calculators.aggregator import aggregate_realized
from calculators.limits import LimitUsage, compute_limit_usage
from core.config import LedgerConfig
from core.hashing import calculate_sha256
from utils.logging_config import setup_logger, get_perf_logger

logger = setup_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Everything derived from one transaction collection."""

    total_realized_pl: Decimal = Decimal(0)
    current_month_realized_pl: Decimal = Decimal(0)
    monthly_pl: Dict[str, Decimal] = field(default_factory=dict)
    holdings: Dict[str, Decimal] = field(default_factory=dict)
    avg_acquisition_rate: Dict[str, Decimal] = field(default_factory=dict)
    limit_usage: Dict[Trader, LimitUsage] = field(default_factory=dict)
    closed_lot_ids: FrozenSet[str] = frozenset()
    realized: Dict[str, RealizedTrade] = field(default_factory=dict)
    warnings: List[ValidationIssue] = field(default_factory=list)
    as_of: Optional[datetime] = None

    def realized_pl_for(self, txn_id: str) -> Optional[Decimal]:
        """P/L of a sell, or None for buys and unknown ids."""
        trade = self.realized.get(txn_id)
        return trade.realized_pl if trade else None

    def is_closed(self, txn_id: str) -> bool:
        return txn_id in self.closed_lot_ids

    def _canonical(self) -> Dict[str, Any]:
        return {
            'total_realized_pl': self.total_realized_pl,
            'current_month_realized_pl': self.current_month_realized_pl,
            'monthly_pl': self.monthly_pl,
            'holdings': self.holdings,
            'avg_acquisition_rate': self.avg_acquisition_rate,
            'limit_usage': {
                trader.value: {'daily': usage.daily, 'monthly': usage.monthly}
                for trader, usage in self.limit_usage.items()
            },
            'closed_lot_ids': sorted(self.closed_lot_ids),
            'realized': {txn_id: trade.realized_pl for txn_id, trade in self.realized.items()},
            'warnings': [issue.as_dict() for issue in self.warnings],
        }

    def fingerprint(self) -> str:
        """SHA256 over the canonical form; equal collections give equal fingerprints."""
        return calculate_sha256(self._canonical())

    def to_dict(self) -> Dict[str, Any]:
        """Analytics payload in the store's JSON shape."""
        return {
            'totalPL': wire_number(self.total_realized_pl),
            'currentMonthPL': wire_number(self.current_month_realized_pl),
            'monthlyPL': {k: wire_number(v) for k, v in sorted(self.monthly_pl.items())},
            'holdings': {k: wire_number(v) for k, v in sorted(self.holdings.items())},
            'avgBuyPrices': {k: wire_number(v) for k, v in sorted(self.avg_acquisition_rate.items())},
            'limitUsage': {
                'daily': {t.value: wire_number(u.daily) for t, u in self.limit_usage.items()},
                'monthly': {t.value: wire_number(u.monthly) for t, u in self.limit_usage.items()},
            },
            'soldBuyIds': sorted(self.closed_lot_ids),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> 'AnalyticsSnapshot':
        """
        Parse a server-computed analytics payload.

        Per-sell trades are not part of that payload, so `realized` is empty.

        Raises:
            KeyError / ValueError / TypeError: on a malformed payload
        """
        def dec(value) -> Decimal:
            return Decimal(str(value))

        limit_usage = payload.get('limitUsage') or {}
        daily = limit_usage.get('daily') or {}
        monthly = limit_usage.get('monthly') or {}
        usage = {
            trader: LimitUsage(
                daily=dec(daily.get(trader.value, 0)),
                monthly=dec(monthly.get(trader.value, 0)),
            )
            for trader in TRADERS
        }

        return cls(
            total_realized_pl=dec(payload['totalPL']),
            current_month_realized_pl=dec(payload.get('currentMonthPL', 0)),
            monthly_pl={k: dec(v) for k, v in sorted((payload.get('monthlyPL') or {}).items())},
            holdings={k: dec(v) for k, v in sorted((payload.get('holdings') or {}).items())},
            avg_acquisition_rate={k: dec(v) for k, v in sorted((payload.get('avgBuyPrices') or {}).items())},
            limit_usage=usage,
            closed_lot_ids=frozenset(str(i) for i in payload.get('soldBuyIds') or []),
        )


class AnalyticsEngine:
    """
    Derives an AnalyticsSnapshot from a complete transaction collection.

    The engine performs no I/O; the collection is fetched by the caller.
    """

    def __init__(
        self,
        transactions: Sequence[Transaction],
        config: Optional[LedgerConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        # (timestamp, id) order makes the fold independent of input order
        self.transactions = sorted(transactions, key=lambda t: (t.timestamp, t.id))
        self.config = config or LedgerConfig()
        self.clock = clock or _utcnow

    def compute(self, now: Optional[datetime] = None) -> AnalyticsSnapshot:
        """
        Run the full pipeline.

        Args:
            now: Processing time for current-month/day figures (defaults to the clock)

        Raises:
            LedgerIntegrityError: the collection breaks a ledger rule
        """
        now = now or self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        with get_perf_logger(logger, f"compute snapshot ({len(self.transactions)} transactions)", threshold_ms=500):
            validator = LedgerValidator(strict_amounts=self.config.strict_amounts)
            validator.validate_all(self.transactions)
            validator.raise_for_errors()
            summary = validator.get_summary()
            if summary[ValidationIssue.SEVERITY_WARNING]:
                logger.info(f"{summary[ValidationIssue.SEVERITY_WARNING]} validation warning(s) carried into snapshot")

            match = match_disposals(self.transactions)
            realized = compute_realized(match)

            holdings = compute_holdings(self.transactions, match.closed_lot_ids)
            summary = aggregate_realized(
                ((sell, realized[sell.id]) for sell, _ in match.pairs()),
                now,
                self.config.reporting_zone
            )
            limit_usage = compute_limit_usage(self.transactions, now)

        return AnalyticsSnapshot(
            total_realized_pl=summary.total,
            current_month_realized_pl=summary.current_month,
            monthly_pl=summary.monthly_pl,
            holdings=holdings.holdings,
            avg_acquisition_rate=holdings.avg_acquisition_rate,
            limit_usage=limit_usage,
            closed_lot_ids=match.closed_lot_ids,
            realized=realized,
            warnings=validator.warnings(),
            as_of=now,
        )


def compute_snapshot(
    transactions: Sequence[Transaction],
    now: Optional[datetime] = None,
    config: Optional[LedgerConfig] = None
) -> AnalyticsSnapshot:
    """Convenience wrapper around AnalyticsEngine(...).compute(now)."""
    return AnalyticsEngine(transactions, config=config).compute(now)


def annotate_records(transactions: Sequence[Transaction], snapshot: AnalyticsSnapshot) -> List[Dict[str, Any]]:
    """Store records with the realized P/L attached to sells (buys get none)."""
    records = []
    for txn in transactions:
        record = txn.to_record()
        pl = snapshot.realized_pl_for(txn.id)
        if pl is not None:
            record['pl'] = wire_number(pl)
        records.append(record)
    return records
