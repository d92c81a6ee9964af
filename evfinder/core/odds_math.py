"""Fundamental odds mathematics — the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services.

The engine works in **decimal** odds throughout.  American odds only
appear at the ingestion edge (selection rows from US-facing feeds) and are
converted once, by :func:`american_to_decimal`, before a Quote is built.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from typing import Final

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: American-odds magnitude floor.  Feeds never return |odds| < 100;
#: values below this indicate a data error.
_MIN_AMERICAN_MAGNITUDE: Final[int] = 100

#: Smallest decimal price the engine accepts.  A price of exactly 1.0 pays
#: nothing and implies certainty; it cannot be de-vigged.
MIN_DECIMAL_ODDS: Final[float] = 1.0


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal (European) format.

    Examples::

        american_to_decimal(-110) → 1.9091
        american_to_decimal(+150) → 2.5000

    Raises:
        ValueError: If ``|american| < 100``, which is not a representable
            American odds value.
    """
    if abs(american) < _MIN_AMERICAN_MAGNITUDE:
        raise ValueError(
            f"Invalid American odds {american!r}: magnitude must be ≥ 100."
        )
    if american > 0:
        return american / 100.0 + 1.0
    return 100.0 / abs(american) + 1.0


def decimal_to_american(decimal_odds: float) -> int:
    """Convert decimal odds to the nearest American integer.

    Use the result for display only, not for further arithmetic.

    Raises:
        ValueError: If ``decimal_odds < 1.0``.
    """
    if decimal_odds < MIN_DECIMAL_ODDS:
        raise ValueError(
            f"Decimal odds {decimal_odds!r} must be ≥ 1.0 (probability ≤ 1)."
        )
    if decimal_odds >= 2.0:
        return round((decimal_odds - 1.0) * 100)
    return round(-100.0 / (decimal_odds - 1.0))


def is_valid_decimal(value: object) -> bool:
    """Return True when ``value`` is a finite real decimal price above 1.0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > MIN_DECIMAL_ODDS


# ---------------------------------------------------------------------------
# Probability and value
# ---------------------------------------------------------------------------


def implied_probability(decimal_odds: float) -> float:
    """Raw implied probability (vig-inclusive) of a decimal price."""
    return 1.0 / decimal_odds


def fair_odds(probability: float) -> float:
    """Break-even decimal price for a fair probability."""
    return 1.0 / probability


def ev_percent(fair_probability: float, offered_odds: float) -> float:
    """Expected value of a unit stake, in percent.

    ``EV% = (p × odds − 1) × 100``.  A fair 50/50 proposition offered at
    2.10 yields +5.0 %.
    """
    return (fair_probability * offered_odds - 1.0) * 100.0


def edge_percent(fair_probability: float, offered_odds: float) -> float:
    """Probability-point edge of the fair estimate over the offered price."""
    return (fair_probability - implied_probability(offered_odds)) * 100.0


def vig_percent(prob_a: float, prob_b: float) -> float:
    """Overround of a two-way market, in percent, from raw implied probs."""
    return (prob_a + prob_b - 1.0) * 100.0


def round_half(value: float) -> float:
    """Round to the nearest half point, ties rounding up.

    Examples::

        round_half(9.7)   → 9.5
        round_half(10.25) → 10.5   (``round()`` would give 10.0)
    """
    return math.floor(value * 2.0 + 0.5) / 2.0
