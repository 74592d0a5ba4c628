"""
Shared pytest fixtures.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import sys
from pathlib import Path

# Repo root on sys.path so the top-level packages import without installation
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from core.config import LedgerConfig
from factories import make_buy, make_sell, at


@pytest.fixture
def utc_config():
    """Config bucketing months in UTC, so month edges match the test timestamps."""
    return LedgerConfig(reporting_tz="UTC")


@pytest.fixture
def usd_round_trip():
    """The canonical example: 100 USD bought at 1300, sold at 1320 on February 20."""
    buy = make_buy("b1", amount="100", rate="1300", when=at(2024, 1, 10))
    sell = make_sell("s1", "b1", amount="100", rate="1320", when=at(2024, 2, 20))
    return [buy, sell]


@pytest.fixture
def btc_round_trip():
    """0.1 BTC bought at 50,000,000 with a 5,000 fee, sold at 70,000,000 with a 6,000 fee."""
    buy = make_buy("b1", currency="BTC", amount="0.1", rate="50000000", fee="5000", when=at(2024, 1, 10))
    sell = make_sell(
        "s1", "b1", currency="BTC", amount="0.1", rate="70000000", fee="6000", when=at(2024, 3, 5)
    )
    return [buy, sell]
