"""
Ledger Report Script

Computes the analytics snapshot and prints a summary:
1. Realized P/L (total, this month, per month)
2. Open holdings with weighted average acquisition rate
3. Acquisition limit usage per trader
4. Optional what-if band for one open lot

Source is either a JSON export (a list of records, or a saved list response
with 'allRecordsForFilter'/'records') or, without a path, the configured
transaction store (LEDGER_STORE_URL).

Usage:
    python ledger_report.py [export.json or -] [lot_id]
"""

import json
import sys
from pathlib import Path

from parsers.transaction import Transaction, TRADERS
from calculators.engine import compute_snapshot
from calculators.limits import DAILY_CAP, MONTHLY_CAP
from calculators.reporting import monthly_pl_series
from calculators.scenario import simulate, symmetric_offsets
from core.config import load_config
from core.currency_policy import DOMESTIC_CURRENCY
from core.errors import LedgerIntegrityError, StoreError
from services.store_client import TransactionStoreClient


def load_export(path: Path):
    data = json.loads(path.read_text(encoding='utf-8'))
    if isinstance(data, dict):
        data = data.get('allRecordsForFilter') or data.get('records') or []
    return [Transaction.from_record(record) for record in data]


def load_from_store(config):
    client = TransactionStoreClient(config=config)
    page = client.list_page(1)
    return page.all_records if page.all_records is not None else page.records


def print_report(transactions, config, lot_id=None, band=5):
    snapshot = compute_snapshot(transactions, config=config)

    print("=" * 60)
    print("EXCHANGE LEDGER REPORT")
    print("=" * 60)
    print(f"Transactions:        {len(transactions)}")
    print(f"Total realized P/L:  {snapshot.total_realized_pl:,.0f}")
    print(f"This month:          {snapshot.current_month_realized_pl:,.0f}")
    print()

    series = monthly_pl_series(snapshot.monthly_pl)
    if not series.empty:
        print("Monthly realized P/L:")
        for label, value in series.items():
            print(f"  {label}: {value:>15,.0f}")
        print()

    print("Open holdings:")
    if not snapshot.holdings:
        print("  (none)")
    for currency, amount in snapshot.holdings.items():
        avg = snapshot.avg_acquisition_rate[currency]
        print(f"  {currency}: {amount:,} @ avg {avg:,.2f}")
    print()

    print(f"Limit usage in {DOMESTIC_CURRENCY} (daily / monthly):")
    for trader in TRADERS:
        usage = snapshot.limit_usage[trader]
        daily = usage.daily_status()
        monthly = usage.monthly_status()
        print(
            f"  {trader.value}: {usage.daily:,.0f}/{DAILY_CAP:,.0f} ({daily.percent_used:.0f}%)"
            f"  {usage.monthly:,.0f}/{MONTHLY_CAP:,.0f} ({monthly.percent_used:.0f}%)"
        )

    for issue in snapshot.warnings:
        print(f"WARNING [{issue.category}] {issue.message}")

    if lot_id:
        lot = next((t for t in transactions if t.id == lot_id), None)
        if lot is None or snapshot.is_closed(lot_id):
            print(f"\nLot {lot_id} is unknown or already closed")
            return
        result = simulate(lot, symmetric_offsets(band))
        print(f"\nWhat-if for lot {lot_id} ({lot.foreign_amount} {lot.currency} @ {lot.rate}):")
        for outcome in result.outcomes:
            print(f"  {outcome.rate:>12}: {outcome.pl:>+15,.0f}")


def main(argv):
    """argv: [export.json|-] [lot_id]; '-' (or nothing) reads the configured store."""
    config = load_config()
    source = argv[0] if argv else "-"
    lot_id = argv[1] if len(argv) > 1 else None

    try:
        if source != "-":
            transactions = load_export(Path(source))
        else:
            transactions = load_from_store(config)
        print_report(transactions, config, lot_id=lot_id)
    except LedgerIntegrityError as e:
        print(f"Integrity error: {e}", file=sys.stderr)
        return 2
    except StoreError as e:
        print(f"Store error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
