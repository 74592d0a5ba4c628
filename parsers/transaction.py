"""
Ledger Transaction Model

One exchange record: a trader buying a foreign currency with domestic money
(an acquisition lot) or selling one lot back (a disposal).

Wire names follow the transaction store's JSON records
(target_currency, exchange_rate, base_amount, linked_buy_id); Python code
uses the field names.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from enum import Enum
from decimal import Decimal, InvalidOperation
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.currency_policy import CURRENCY_POLICIES, get_policy


class TransactionTypeError(ValueError):
    """Raised when transaction type cannot be normalized."""
    pass


class TraderError(ValueError):
    """Raised when a trader code is not part of the roster."""
    pass


class TransactionType(str, Enum):
    """Acquisition (buy foreign with domestic) or disposal (sell it back)."""

    BUY = "buy"
    SELL = "sell"

    @classmethod
    def normalize(cls, value: str) -> 'TransactionType':
        """Normalize transaction type from various formats.

        Raises:
            TransactionTypeError: If the transaction type cannot be mapped.
        """
        if isinstance(value, cls):
            return value

        type_map = {
            "BUY": cls.BUY,
            "ACQUIRE": cls.BUY,
            "ACQUISITION": cls.BUY,
            "SELL": cls.SELL,
            "DISPOSE": cls.SELL,
            "DISPOSAL": cls.SELL,
        }

        clean_value = str(value).strip().upper().replace(" ", "").replace("-", "").replace("_", "")
        result = type_map.get(clean_value)

        if result is None:
            raise TransactionTypeError(f"Unknown transaction type: '{value}'")

        return result


class Trader(str, Enum):
    """The closed set of traders keeping this ledger."""

    SW = "SW"
    HR = "HR"

    @classmethod
    def normalize(cls, value: str) -> 'Trader':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise TraderError(f"Unknown trader: '{value}'") from None


TRADERS = tuple(Trader)


def parse_decimal(value: Any) -> Decimal:
    """Parse numbers the way entry forms deliver them ('1,300.5', 1300.5, None)."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal(0)
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, str):
        value = value.replace(',', '').strip()
        if value == '':
            return Decimal(0)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}") from None


def wire_number(value: Decimal):
    """Decimal -> int when integral, float otherwise (JSON numbers on the wire)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class Transaction(BaseModel):
    """
    Ledger transaction.

    Immutable once built; an update replaces the whole record under the same
    id. Positivity of amount/rate and lot links are ledger integrity rules
    checked by the analytics engine, not here, so records coming back from
    the store still parse and then fail loudly in one place.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    trader: Trader
    type: TransactionType
    timestamp: datetime

    currency: str = Field(alias="target_currency")
    foreign_amount: Decimal
    rate: Decimal = Field(alias="exchange_rate")
    domestic_amount: Decimal = Field(alias="base_amount")

    # Transfer fee in domestic currency (fee-bearing currencies only)
    fee: Decimal = Decimal(0)

    linked_acquisition_id: Optional[str] = Field(default=None, alias="linked_buy_id")

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        """Sheet-backed stores hand back numeric-looking ids as numbers."""
        if v is None or str(v).strip() == '':
            raise ValueError('Transaction id is required')
        return str(v).strip()

    @field_validator('linked_acquisition_id', mode='before')
    @classmethod
    def coerce_link(cls, v):
        if v is None or str(v).strip() == '':
            return None
        return str(v).strip()

    @field_validator('trader', mode='before')
    @classmethod
    def normalize_trader(cls, v):
        return Trader.normalize(v)

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        return TransactionType.normalize(v)

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v):
        code = str(v or '').strip().upper()
        if code not in CURRENCY_POLICIES:
            raise ValueError(f"Unsupported currency: '{v}'")
        return code

    @field_validator('foreign_amount', 'rate', 'domestic_amount', 'fee', mode='before')
    @classmethod
    def parse_amounts(cls, v):
        """Parse string decimals, stripping thousands separators."""
        return parse_decimal(v)

    @field_validator('fee')
    @classmethod
    def non_negative_fee(cls, v):
        if v < 0:
            raise ValueError(f'Fee cannot be negative: {v}')
        return v

    @field_validator('timestamp')
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode='after')
    def check_kind_rules(self):
        if self.type == TransactionType.BUY and self.linked_acquisition_id is not None:
            raise ValueError('A buy cannot be linked to another lot')
        if self.fee > 0 and not get_policy(self.currency).fee_bearing:
            raise ValueError(f'{self.currency} transactions do not carry a transfer fee')
        return self

    def is_acquisition(self) -> bool:
        return self.type == TransactionType.BUY

    def is_disposal(self) -> bool:
        return self.type == TransactionType.SELL

    def utc_timestamp(self) -> datetime:
        return self.timestamp.astimezone(timezone.utc)

    def month_key(self, tz: ZoneInfo) -> str:
        """Calendar month of the timestamp in the given zone, as 'YYYY-MM'."""
        return self.timestamp.astimezone(tz).strftime('%Y-%m')

    def with_changes(self, **changes) -> 'Transaction':
        """Full replacement copy (validated), keeping the id."""
        changes.pop('id', None)
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Transaction':
        """Parse a store JSON record; unknown keys (e.g. 'pl') are ignored."""
        return cls.model_validate(record)

    def to_record(self) -> Dict[str, Any]:
        """Store JSON record (wire names, JSON numbers)."""
        return {
            'id': self.id,
            'trader': self.trader.value,
            'type': self.type.value,
            'timestamp': self.utc_timestamp().isoformat().replace('+00:00', 'Z'),
            'target_currency': self.currency,
            'foreign_amount': wire_number(self.foreign_amount),
            'exchange_rate': wire_number(self.rate),
            'base_amount': wire_number(self.domestic_amount),
            'fee': wire_number(self.fee),
            'linked_buy_id': self.linked_acquisition_id,
        }

    def __repr__(self) -> str:
        link = f", closes={self.linked_acquisition_id}" if self.linked_acquisition_id else ""
        return (
            f"Transaction({self.id}, {self.trader.value} {self.type.value} "
            f"{self.foreign_amount} {self.currency} @ {self.rate}, "
            f"{self.timestamp.date()}{link})"
        )
