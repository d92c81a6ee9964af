"""
Tests for odds conversion and EV arithmetic
Run with: pytest tests/test_odds_math.py -v
"""

import pytest
from evfinder.core.odds_math import (
    american_to_decimal,
    decimal_to_american,
    edge_percent,
    ev_percent,
    fair_odds,
    implied_probability,
    is_valid_decimal,
    round_half,
    vig_percent,
)


class TestConversions:
    """American <-> decimal conversion"""

    def test_positive_american(self):
        assert american_to_decimal(150) == pytest.approx(2.5)

    def test_negative_american(self):
        assert american_to_decimal(-110) == pytest.approx(1.9091, abs=1e-4)
        assert american_to_decimal(-200) == pytest.approx(1.5)

    def test_invalid_american_raises(self):
        with pytest.raises(ValueError):
            american_to_decimal(50)

    def test_decimal_to_american(self):
        assert decimal_to_american(2.5) == 150
        assert decimal_to_american(1.5) == -200

    def test_decimal_below_one_raises(self):
        with pytest.raises(ValueError):
            decimal_to_american(0.9)

    def test_is_valid_decimal(self):
        assert is_valid_decimal(1.01)
        assert not is_valid_decimal(1.0)
        assert not is_valid_decimal(float("nan"))
        assert not is_valid_decimal(True)
        assert not is_valid_decimal("2.0")


class TestValueMath:
    """Implied probability, EV and edge"""

    def test_implied_and_fair_are_reciprocal(self):
        assert implied_probability(2.0) == pytest.approx(0.5)
        assert fair_odds(0.25) == pytest.approx(4.0)

    def test_ev_percent(self):
        assert ev_percent(0.5, 2.10) == pytest.approx(5.0)
        assert ev_percent(0.5, 1.90) == pytest.approx(-5.0)

    def test_edge_percent(self):
        assert edge_percent(0.5, 2.0) == pytest.approx(0.0)
        assert edge_percent(0.55, 2.0) == pytest.approx(5.0)

    def test_vig_percent_symmetric_market(self):
        p = implied_probability(1.91)
        assert vig_percent(p, p) == pytest.approx(4.71, abs=0.01)


class TestRoundHalf:
    """Nearest half point, ties up"""

    def test_rounds_down(self):
        assert round_half(9.7) == 9.5

    def test_tie_rounds_up(self):
        assert round_half(10.25) == 10.5
        assert round_half(-1.25) == -1.0

    def test_half_unchanged(self):
        assert round_half(10.5) == 10.5
