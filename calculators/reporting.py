"""
Reporting Frames

Tabular views of ledger data for chart and history consumers: the monthly
realized P/L series and the transaction history table.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from decimal import Decimal
from typing import Dict, Optional, Sequence

import pandas as pd

from parsers.transaction import Transaction, Trader
from calculators.engine import AnalyticsSnapshot

HISTORY_COLUMNS = [
    'id', 'date', 'trader', 'currency', 'type', 'foreign_amount',
    'rate', 'domestic_amount', 'pl', 'completed',
]


def monthly_pl_series(monthly_pl: Dict[str, Decimal]) -> pd.Series:
    """
    Realized P/L per month in chronological order.

    Index labels use 'YYYY.MM', the way the monthly trend chart labels its axis.
    """
    months = sorted(monthly_pl)
    labels = [month.replace('-', '.') for month in months]
    values = [float(monthly_pl[month]) for month in months]
    return pd.Series(values, index=pd.Index(labels, name='month'), name='realized_pl', dtype='float64')


def history_frame(
    transactions: Sequence[Transaction],
    snapshot: AnalyticsSnapshot,
    trader: Optional[Trader] = None
) -> pd.DataFrame:
    """
    Transaction history, newest first.

    `pl` is set on sells only; `completed` marks sells and the lots they closed.
    """
    rows = []
    for txn in transactions:
        if trader is not None and txn.trader != Trader.normalize(trader):
            continue
        pl = snapshot.realized_pl_for(txn.id)
        rows.append({
            'id': txn.id,
            'date': txn.utc_timestamp(),
            'trader': txn.trader.value,
            'currency': txn.currency,
            'type': txn.type.value,
            'foreign_amount': float(txn.foreign_amount),
            'rate': float(txn.rate),
            'domestic_amount': float(txn.domestic_amount),
            'pl': float(pl) if pl is not None else None,
            'completed': txn.is_disposal() or snapshot.is_closed(txn.id),
        })

    frame = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    if frame.empty:
        return frame
    return frame.sort_values(['date', 'id'], ascending=False, kind='mergesort').reset_index(drop=True)
