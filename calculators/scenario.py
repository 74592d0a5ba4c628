"""
What-If Scenario Simulator

Projects the P/L of selling one open lot at its own rate shifted by each
offset of an integer band. No fee is applied: the question is only "what if
I sold this lot at that rate". Rates are normalized through the currency
policy table, the same way realized P/L is.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Tuple

from parsers.transaction import Transaction
from core.currency_policy import gross_value

DEFAULT_BAND_WIDTH = 5


def symmetric_offsets(width: int = DEFAULT_BAND_WIDTH) -> Tuple[int, ...]:
    """-width ... +width, skipping 0."""
    if isinstance(width, bool) or not isinstance(width, int) or width < 1:
        raise ValueError(f"Band width must be a positive integer: {width!r}")
    return tuple(i for i in range(-width, width + 1) if i != 0)


DEFAULT_OFFSETS = symmetric_offsets(DEFAULT_BAND_WIDTH)


@dataclass(frozen=True)
class ScenarioOutcome:
    """Hypothetical sale of the lot at rate + offset."""

    offset: int
    rate: Decimal
    proceeds: Decimal
    pl: Decimal


@dataclass(frozen=True)
class ScenarioResult:
    lot_id: str
    currency: str
    base_rate: Decimal
    cost: Decimal
    outcomes: List[ScenarioOutcome] = field(default_factory=list)
    max_abs_pl: Decimal = Decimal(0)

    def gains(self) -> List[ScenarioOutcome]:
        """Profitable outcomes, lowest rate first."""
        return sorted((o for o in self.outcomes if o.pl > 0), key=lambda o: o.rate)

    def losses(self) -> List[ScenarioOutcome]:
        """Losing outcomes, highest rate (smallest loss) first."""
        return sorted((o for o in self.outcomes if o.pl < 0), key=lambda o: o.rate, reverse=True)

    def bar_fraction(self, outcome: ScenarioOutcome) -> Decimal:
        """|P/L| relative to the band's largest |P/L|, for scaling bars."""
        if self.max_abs_pl == 0:
            return Decimal(0)
        return abs(outcome.pl) / self.max_abs_pl


def simulate(lot: Transaction, offsets: Iterable[int] = DEFAULT_OFFSETS) -> ScenarioResult:
    """
    Project P/L for selling `lot` at rate + offset, for each offset.

    Args:
        lot: An open buy (closed-lot status is the caller's concern)
        offsets: Whole domestic units per quoted unit

    Raises:
        ValueError: lot is not a buy, or an offset is not an integer
    """
    if not lot.is_acquisition():
        raise ValueError(f"Scenarios need a buy lot, got {lot.type.value} {lot.id}")

    cost = gross_value(lot.foreign_amount, lot.rate, lot.currency)
    outcomes = []
    max_abs = Decimal(0)

    for offset in offsets:
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise ValueError(f"Offsets must be integers: {offset!r}")
        rate = lot.rate + offset
        proceeds = gross_value(lot.foreign_amount, rate, lot.currency)
        pl = proceeds - cost
        max_abs = max(max_abs, abs(pl))
        outcomes.append(ScenarioOutcome(offset=offset, rate=rate, proceeds=proceeds, pl=pl))

    return ScenarioResult(
        lot_id=lot.id,
        currency=lot.currency,
        base_rate=lot.rate,
        cost=cost,
        outcomes=outcomes,
        max_abs_pl=max_abs,
    )
