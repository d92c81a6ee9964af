"""
Tests for line normalization
Run with: pytest tests/test_line_normalizer.py -v
"""

import pytest
from evfinder.core.markets import MarketType
from evfinder.services.line_normalizer import normalize_line


class TestNormalizeLine:
    """Whole numbers move up half a point, half and quarter lines stay"""

    @pytest.mark.parametrize("raw,expected", [
        (10, 10.5),
        (10.0, 10.5),
        (0, 0.5),
        (10.5, 10.5),
        (10.25, 10.25),
        (10.75, 10.75),
        (9.7, 9.5),
        (9.6, 9.5),
    ])
    def test_totals(self, raw, expected):
        assert normalize_line(raw) == expected

    def test_float_noise_within_tolerance(self):
        assert normalize_line(10.499999) == pytest.approx(10.5, abs=1e-5)
        assert normalize_line(2.2500001) == pytest.approx(2.25, abs=1e-5)

    def test_negative_handicaps(self):
        assert normalize_line(-1, MarketType.SPREAD) == -0.5
        assert normalize_line(-1.5, MarketType.SPREAD) == -1.5
        assert normalize_line(-0.25, MarketType.SPREAD) == -0.25

    def test_equivalent_lines_compare_equal(self):
        assert normalize_line(10) == normalize_line(10.5)
