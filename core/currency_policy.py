"""
Currency Policy Table

Per-currency quoting and fee rules, expressed as data:
- quote_unit: how many foreign units one quoted rate buys (JPY is quoted per 100)
- fee_bearing: whether the transaction-local transfer fee enters P/L
  (added to acquisition cost, subtracted from disposal proceeds)

Both the P/L calculator and the scenario simulator normalize through this
table, so a rule change lands in one place.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, TYPE_CHECKING

if TYPE_CHECKING:
    from parsers.transaction import Transaction


DOMESTIC_CURRENCY = "KRW"


@dataclass(frozen=True)
class CurrencyPolicy:
    """Quoting convention and fee treatment for one foreign currency/asset."""

    code: str
    quote_unit: Decimal = Decimal(1)
    fee_bearing: bool = False
    name: str = ""

    def normalize(self, rate: Decimal) -> Decimal:
        """Domestic price of a single foreign unit."""
        return rate / self.quote_unit


CURRENCY_POLICIES: Dict[str, CurrencyPolicy] = {
    "USD": CurrencyPolicy("USD", name="US Dollar"),
    "JPY": CurrencyPolicy("JPY", quote_unit=Decimal(100), name="Japanese Yen"),
    "EUR": CurrencyPolicy("EUR", name="Euro"),
    "CAD": CurrencyPolicy("CAD", name="Canadian Dollar"),
    "AUD": CurrencyPolicy("AUD", name="Australian Dollar"),
    "NZD": CurrencyPolicy("NZD", name="New Zealand Dollar"),
    "HKD": CurrencyPolicy("HKD", name="Hong Kong Dollar"),
    "SGD": CurrencyPolicy("SGD", name="Singapore Dollar"),
    "BTC": CurrencyPolicy("BTC", fee_bearing=True, name="Bitcoin"),
}

SUPPORTED_CURRENCIES = tuple(CURRENCY_POLICIES)


class UnsupportedCurrencyError(ValueError):
    """Raised when a currency code has no policy entry."""


def get_policy(currency: str) -> CurrencyPolicy:
    """Look up the policy for a currency code (case-insensitive)."""
    code = (currency or "").strip().upper()
    try:
        return CURRENCY_POLICIES[code]
    except KeyError:
        raise UnsupportedCurrencyError(f"Unsupported currency: '{currency}'") from None


def normalized_rate(rate: Decimal, currency: str) -> Decimal:
    return get_policy(currency).normalize(rate)


def gross_value(foreign_amount: Decimal, rate: Decimal, currency: str) -> Decimal:
    """foreign_amount x normalized rate, before any fee."""
    return foreign_amount * normalized_rate(rate, currency)


def acquisition_cost(txn: "Transaction") -> Decimal:
    """Domestic cost of a buy: gross value plus fee for fee-bearing currencies."""
    policy = get_policy(txn.currency)
    cost = txn.foreign_amount * policy.normalize(txn.rate)
    if policy.fee_bearing:
        cost += txn.fee
    return cost


def disposal_proceeds(txn: "Transaction") -> Decimal:
    """Domestic proceeds of a sell: gross value minus fee for fee-bearing currencies."""
    policy = get_policy(txn.currency)
    proceeds = txn.foreign_amount * policy.normalize(txn.rate)
    if policy.fee_bearing:
        proceeds -= txn.fee
    return proceeds


def expected_domestic_amount(
    foreign_amount: Decimal,
    rate: Decimal,
    currency: str,
    is_acquisition: bool,
    fee: Decimal = Decimal(0)
) -> Decimal:
    """
    Domestic amount an entry form derives for a transaction.

    Gross value, fee-adjusted for fee-bearing currencies (plus on a buy,
    minus on a sell), rounded half-up to a whole domestic unit.
    """
    policy = get_policy(currency)
    value = foreign_amount * policy.normalize(rate)
    if policy.fee_bearing:
        value = value + fee if is_acquisition else value - fee
    return value.quantize(Decimal(1), rounding=ROUND_HALF_UP)
