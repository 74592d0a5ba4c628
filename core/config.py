"""
Ledger Configuration

Deployment settings read from environment variables. Regulatory caps, the
trader roster and the currency table are fixed constants and live next to
the code that uses them (calculators/limits.py, parsers/transaction.py,
core/currency_policy.py).

Environment:
    LEDGER_STORE_URL       Base URL of the transaction store web app
    LEDGER_PAGE_SIZE       Records per list page (default 50)
    LEDGER_HTTP_TIMEOUT    Seconds per store request (default 15)
    LEDGER_REPORTING_TZ    IANA zone used to bucket realized P/L by month
                           (default Asia/Seoul)
    LEDGER_STRICT_AMOUNTS  "1"/"true" turns stored-vs-recomputed domestic
                           amount mismatches into integrity errors

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import os
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from utils.logging_config import setup_logger

logger = setup_logger(__name__)

DEFAULT_PAGE_SIZE = 50
DEFAULT_HTTP_TIMEOUT = 15.0
DEFAULT_REPORTING_TZ = "Asia/Seoul"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class LedgerConfig:
    """Runtime settings for the ledger engine and store client."""

    store_url: Optional[str] = None
    page_size: int = DEFAULT_PAGE_SIZE
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    reporting_tz: str = DEFAULT_REPORTING_TZ
    strict_amounts: bool = False

    @property
    def reporting_zone(self) -> ZoneInfo:
        return ZoneInfo(self.reporting_tz)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


def load_config() -> LedgerConfig:
    """Build a LedgerConfig from the environment."""
    reporting_tz = os.getenv("LEDGER_REPORTING_TZ", DEFAULT_REPORTING_TZ)
    try:
        ZoneInfo(reporting_tz)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown LEDGER_REPORTING_TZ {reporting_tz!r}, using {DEFAULT_REPORTING_TZ}")
        reporting_tz = DEFAULT_REPORTING_TZ

    config = LedgerConfig(
        store_url=os.getenv("LEDGER_STORE_URL") or None,
        page_size=_int_env("LEDGER_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        http_timeout=_float_env("LEDGER_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        reporting_tz=reporting_tz,
        strict_amounts=os.getenv("LEDGER_STRICT_AMOUNTS", "").strip().lower() in _TRUTHY,
    )
    logger.debug(f"Loaded config: {config}")
    return config
