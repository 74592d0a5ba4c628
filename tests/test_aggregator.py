"""
Unit Tests for Monthly / Total Realized P/L Aggregation

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import pytest
from decimal import Decimal
from zoneinfo import ZoneInfo

from calculators.aggregator import aggregate_realized, month_key
from calculators.pl_calculator import realize
from factories import make_buy, make_sell, at

UTC = ZoneInfo("UTC")
SEOUL = ZoneInfo("Asia/Seoul")


def _pairs(*specs):
    """(sell_id, sell rate, sell time) -> (sell, trade) pairs against 100 USD @ 1300 lots."""
    pairs = []
    for sell_id, rate, when in specs:
        buy = make_buy(f"lot-{sell_id}", amount="100", rate="1300", when=at(2024, 1, 1))
        sell = make_sell(sell_id, buy.id, amount="100", rate=rate, when=when)
        pairs.append((sell, realize(sell, buy)))
    return pairs


class TestAggregateRealized:
    @pytest.fixture
    def realized(self):
        return _pairs(
            ("s1", "1320", at(2024, 2, 3)),   # +2000
            ("s2", "1290", at(2024, 2, 25)),  # -1000
            ("s3", "1350", at(2024, 3, 1)),   # +5000
        )

    def test_monthly_buckets(self, realized):
        summary = aggregate_realized(realized, now=at(2024, 3, 15), tz=UTC)

        assert summary.monthly_pl == {"2024-02": Decimal("1000"), "2024-03": Decimal("5000")}
        assert summary.total == Decimal("6000")
        assert summary.current_month == Decimal("5000")
        assert summary.current_month_key == "2024-03"

    def test_total_is_sum_of_buckets(self, realized):
        summary = aggregate_realized(realized, now=at(2024, 3, 15), tz=UTC)
        assert summary.total == sum(summary.monthly_pl.values())

    def test_current_month_zero_when_absent(self, realized):
        summary = aggregate_realized(realized, now=at(2024, 4, 2), tz=UTC)

        assert summary.current_month == Decimal(0)
        assert "2024-04" not in summary.monthly_pl

    def test_empty(self):
        summary = aggregate_realized([], now=at(2024, 4, 2), tz=UTC)

        assert summary.monthly_pl == {}
        assert summary.total == Decimal(0)
        assert summary.current_month == Decimal(0)

    def test_month_follows_reporting_zone(self):
        realized = _pairs(("s1", "1320", at(2024, 1, 31, 20)))

        assert aggregate_realized(realized, now=at(2024, 2, 2), tz=UTC).monthly_pl == {
            "2024-01": Decimal("2000")
        }
        assert aggregate_realized(realized, now=at(2024, 2, 2), tz=SEOUL).monthly_pl == {
            "2024-02": Decimal("2000")
        }

    def test_keys_sorted(self):
        realized = _pairs(
            ("s1", "1320", at(2024, 5, 1)),
            ("s2", "1320", at(2023, 12, 1)),
            ("s3", "1320", at(2024, 2, 1)),
        )
        summary = aggregate_realized(realized, now=at(2024, 5, 2), tz=UTC)
        assert list(summary.monthly_pl) == ["2023-12", "2024-02", "2024-05"]


class TestMonthKey:
    def test_naive_is_utc(self):
        from datetime import datetime
        assert month_key(datetime(2024, 1, 31, 23, 0), UTC) == "2024-01"

    def test_zone(self):
        assert month_key(at(2024, 1, 31, 23), SEOUL) == "2024-02"
