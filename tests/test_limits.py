"""
Unit Tests for the Acquisition Limit Tracker

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from calculators.limits import (
    DAILY_CAP,
    MONTHLY_CAP,
    LimitStatus,
    LimitUsage,
    compute_limit_usage,
)
from parsers.transaction import Trader
from factories import make_buy, make_sell, at

KST = timezone(timedelta(hours=9))


class TestComputeLimitUsage:
    @pytest.fixture
    def ledger(self):
        return [
            make_buy("b1", amount="100", rate="1300", when=at(2024, 1, 10, 3)),   # 130,000 today
            make_buy("b2", amount="200", rate="1300", when=at(2024, 1, 5)),       # 260,000 this month
            make_buy("b3", amount="100", rate="1300", when=at(2024, 2, 1)),       # next month
            make_buy("b4", amount="100", rate="1300", when=at(2023, 12, 31, 23)), # previous month
            make_sell("s1", "b2", amount="200", rate="1350", when=at(2024, 1, 10, 4)),
        ]

    def test_january(self, ledger):
        usage = compute_limit_usage(ledger, now=at(2024, 1, 10, 12))

        assert usage[Trader.SW].daily == Decimal("130000")
        assert usage[Trader.SW].monthly == Decimal("390000")

    def test_february(self, ledger):
        usage = compute_limit_usage(ledger, now=at(2024, 2, 1, 12))

        assert usage[Trader.SW].daily == Decimal("130000")
        assert usage[Trader.SW].monthly == Decimal("130000")

    def test_every_trader_present(self, ledger):
        usage = compute_limit_usage(ledger, now=at(2024, 1, 10, 12))

        assert set(usage) == {Trader.SW, Trader.HR}
        assert usage[Trader.HR] == LimitUsage(Decimal(0), Decimal(0))

    def test_sells_do_not_count(self):
        txns = [make_sell("s1", "b0", amount="100", rate="1300", when=at(2024, 1, 10))]
        usage = compute_limit_usage(txns, now=at(2024, 1, 10, 12))
        assert usage[Trader.SW].daily == Decimal(0)

    def test_stored_domestic_amount_is_used(self):
        txns = [make_buy("b1", amount="100", rate="1300", domestic="131000", when=at(2024, 1, 10))]
        usage = compute_limit_usage(txns, now=at(2024, 1, 10, 12))
        assert usage[Trader.SW].daily == Decimal("131000")

    def test_days_are_utc(self):
        # 08:30 in Seoul on the 11th is still the 10th in UTC
        late = make_buy("b1", amount="100", rate="1300", when=datetime(2024, 1, 11, 8, 30, tzinfo=KST))
        usage = compute_limit_usage([late], now=at(2024, 1, 10, 20))

        assert usage[Trader.SW].daily == Decimal("130000")
        assert compute_limit_usage([late], now=at(2024, 1, 11, 1))[Trader.SW].daily == Decimal(0)

    def test_over_cap_is_not_clamped(self):
        txns = [
            make_buy("b1", amount="10000", rate="1300", when=at(2024, 1, 10)),
        ]
        usage = compute_limit_usage(txns, now=at(2024, 1, 10, 12))
        assert usage[Trader.SW].daily == Decimal("13000000")
        assert usage[Trader.SW].daily > DAILY_CAP

    def test_per_trader(self):
        txns = [
            make_buy("b1", trader="SW", amount="100", rate="1300", when=at(2024, 1, 10)),
            make_buy("b2", trader="HR", amount="10", rate="1300", when=at(2024, 1, 10)),
        ]
        usage = compute_limit_usage(txns, now=at(2024, 1, 10, 12))

        assert usage[Trader.SW].daily == Decimal("130000")
        assert usage[Trader.HR].daily == Decimal("13000")


class TestLimitStatus:
    def test_within_cap(self):
        status = LimitUsage(daily=Decimal("2500000")).daily_status()

        assert status.cap == DAILY_CAP
        assert status.remaining == Decimal("7500000")
        assert status.percent_used == Decimal("25")
        assert not status.exceeded

    def test_over_cap_clamps_percent_only(self):
        status = LimitStatus.for_usage(Decimal("12000000"), DAILY_CAP)

        assert status.used == Decimal("12000000")
        assert status.remaining == Decimal("-2000000")
        assert status.percent_used == Decimal("100")
        assert status.exceeded

    def test_monthly_cap(self):
        status = LimitUsage(monthly=Decimal("50000000")).monthly_status()
        assert status.cap == MONTHLY_CAP
        assert status.percent_used == Decimal("50")

    def test_non_positive_cap(self):
        with pytest.raises(ValueError):
            LimitStatus.for_usage(Decimal(1), Decimal(0))
