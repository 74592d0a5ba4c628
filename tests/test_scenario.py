"""
Unit Tests for the What-If Scenario Simulator

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import pytest
from decimal import Decimal

from calculators.scenario import DEFAULT_OFFSETS, simulate, symmetric_offsets
from factories import make_buy, make_sell


class TestOffsets:
    def test_default_band(self):
        assert DEFAULT_OFFSETS == (-5, -4, -3, -2, -1, 1, 2, 3, 4, 5)
        assert 0 not in DEFAULT_OFFSETS

    def test_custom_width(self):
        assert symmetric_offsets(2) == (-2, -1, 1, 2)

    @pytest.mark.parametrize("width", [0, -1, 2.5, True])
    def test_invalid_width(self, width):
        with pytest.raises(ValueError):
            symmetric_offsets(width)


class TestSimulate:
    @pytest.fixture
    def usd_lot(self):
        return make_buy("b1", amount="100", rate="1300")

    def test_band_around_usd_lot(self, usd_lot):
        result = simulate(usd_lot)
        by_offset = {o.offset: o for o in result.outcomes}

        assert len(result.outcomes) == 10
        assert by_offset[5].rate == Decimal("1305")
        assert by_offset[5].pl == Decimal("500")
        assert by_offset[-5].pl == Decimal("-500")
        assert by_offset[1].pl == Decimal("100")
        assert result.max_abs_pl == Decimal("500")
        assert result.cost == Decimal("130000")

    def test_pl_is_offset_times_amount(self, usd_lot):
        for outcome in simulate(usd_lot).outcomes:
            assert outcome.pl == outcome.offset * usd_lot.foreign_amount

    def test_jpy_normalized(self):
        lot = make_buy("b1", currency="JPY", amount="10000", rate="900")
        by_offset = {o.offset: o for o in simulate(lot).outcomes}

        assert by_offset[5].pl == Decimal("500")
        assert by_offset[-1].pl == Decimal("-100")

    def test_btc_fee_ignored(self):
        lot = make_buy("b1", currency="BTC", amount="0.5", rate="50000000", fee="5000")
        by_offset = {o.offset: o for o in simulate(lot).outcomes}

        assert by_offset[2].pl == Decimal("1")
        assert by_offset[-2].pl == Decimal("-1")

    def test_gains_and_losses_order(self, usd_lot):
        result = simulate(usd_lot)

        assert [o.offset for o in result.gains()] == [1, 2, 3, 4, 5]
        assert [o.offset for o in result.losses()] == [-1, -2, -3, -4, -5]

    def test_bar_fraction(self, usd_lot):
        result = simulate(usd_lot)
        by_offset = {o.offset: o for o in result.outcomes}

        assert result.bar_fraction(by_offset[5]) == Decimal(1)
        assert result.bar_fraction(by_offset[-1]) == Decimal("0.2")

    def test_custom_offsets(self, usd_lot):
        result = simulate(usd_lot, offsets=symmetric_offsets(1))
        assert [o.offset for o in result.outcomes] == [-1, 1]

    def test_sell_is_not_a_lot(self):
        with pytest.raises(ValueError):
            simulate(make_sell("s1", "b1"))

    def test_non_integer_offset(self, usd_lot):
        with pytest.raises(ValueError):
            simulate(usd_lot, offsets=[1, 0.5])
