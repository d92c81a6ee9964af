"""
Tests for fractional Kelly sizing
Run with: pytest tests/test_kelly.py -v
"""

import pytest
from evfinder.core.kelly import kelly_fraction, kelly_stake


class TestKellyFraction:
    """Quarter-Kelly with a 10% cap"""

    def test_positive_edge(self):
        # full Kelly = (0.5 * 1.3 - 0.5) / 1.3 = 0.1154
        assert kelly_fraction(0.5, 2.30) == pytest.approx(0.1154 / 4, abs=1e-4)

    def test_negative_edge_is_zero(self):
        assert kelly_fraction(0.45, 2.00) == 0.0

    def test_cap(self):
        assert kelly_fraction(0.9, 3.0) == pytest.approx(0.10)

    def test_custom_divisor(self):
        full = kelly_fraction(0.5, 2.30, fractional_divisor=1.0, max_fraction=1.0)
        assert full == pytest.approx(0.1154, abs=1e-4)

    @pytest.mark.parametrize("p", [0.0, 1.0, -0.1])
    def test_invalid_probability(self, p):
        with pytest.raises(ValueError):
            kelly_fraction(p, 2.0)

    def test_invalid_odds(self):
        with pytest.raises(ValueError):
            kelly_fraction(0.5, 1.0)


class TestKellyStake:
    """Currency stake from bankroll"""

    def test_stake(self):
        assert kelly_stake(0.5, 2.30, 1000) == pytest.approx(28.85, abs=0.01)

    def test_empty_bankroll(self):
        assert kelly_stake(0.5, 2.30, 0) == 0.0
