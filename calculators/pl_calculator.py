"""
Realized P/L Calculator

Turns each matched (sell, buy) pair into a RealizedTrade. Proceeds and cost
are recomputed from foreign amount x normalized rate (+/- fee for
fee-bearing currencies) through the currency policy table; the stored
domestic amount is never used for P/L.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict

from parsers.transaction import Transaction, Trader
from calculators.matcher import LotMatch
from core.currency_policy import acquisition_cost, disposal_proceeds
from utils.logging_config import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class RealizedTrade:
    """
    A closed lot: one sell matched to the buy it names.

    realized_pl is attached to the sell only; buys never carry a P/L figure.
    """

    disposal_id: str
    acquisition_id: str
    trader: Trader
    currency: str
    date_acquired: date
    date_disposed: date
    quantity_acquired: Decimal
    quantity_disposed: Decimal
    acquisition_rate: Decimal
    disposal_rate: Decimal
    cost_basis: Decimal
    proceeds: Decimal
    realized_pl: Decimal
    holding_period_days: int

    def is_gain(self) -> bool:
        return self.realized_pl > 0

    def is_loss(self) -> bool:
        return self.realized_pl < 0


def realize(sell: Transaction, buy: Transaction) -> RealizedTrade:
    """Compute the realized P/L of one sell against the lot it closes."""
    if not sell.is_disposal() or not buy.is_acquisition():
        raise ValueError(f"Expected a (sell, buy) pair, got ({sell.type.value}, {buy.type.value})")

    cost = acquisition_cost(buy)
    proceeds = disposal_proceeds(sell)

    return RealizedTrade(
        disposal_id=sell.id,
        acquisition_id=buy.id,
        trader=sell.trader,
        currency=sell.currency,
        date_acquired=buy.timestamp.date(),
        date_disposed=sell.timestamp.date(),
        quantity_acquired=buy.foreign_amount,
        quantity_disposed=sell.foreign_amount,
        acquisition_rate=buy.rate,
        disposal_rate=sell.rate,
        cost_basis=cost,
        proceeds=proceeds,
        realized_pl=proceeds - cost,
        holding_period_days=(sell.timestamp - buy.timestamp).days,
    )


def compute_realized(match: LotMatch) -> Dict[str, RealizedTrade]:
    """Realized trade for every matched sell, keyed by sell id."""
    realized = {}
    for sell, buy in match.pairs():
        trade = realize(sell, buy)
        realized[sell.id] = trade
        logger.debug(
            f"Realized {trade.realized_pl} on {sell.id} "
            f"({trade.quantity_disposed} {trade.currency} from lot {buy.id})"
        )
    return realized
