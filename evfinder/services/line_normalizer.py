"""
Line normalization.

Books quote the same proposition with different conventions: one lists
"Over 10", another "Over 10.5".  With whole-number lines a result of
exactly 10 pushes on the first and loses on the second, so the two are
the same bet for every outcome that settles it.  Mapping whole numbers to
the half-point above makes them compare equal in the clusterer.
"""

from evfinder.core.markets import MarketType
from evfinder.core.odds_math import round_half

# Fractional parts are compared with this slack to absorb float noise
# from feeds that send 10.499999 or 10.2500001.
_FRACTION_TOL = 0.01


def normalize_line(line: float, market_type: MarketType = MarketType.TOTALS) -> float:
    """
    Canonicalize a raw line.

    - whole number          → +0.5       (10    → 10.5)
    - already a half point  → unchanged  (10.5  → 10.5)
    - quarter (.25 / .75)   → unchanged  (10.25 → 10.25, Asian lines)
    - anything else         → nearest half point (9.7 → 9.5)

    Negative handicaps follow the same rule on their fractional part, so
    -1 → -0.5 and -1.5 stays -1.5.  ``market_type`` is accepted for call-site
    symmetry with the clusterer; every market type currently shares one rule.
    """
    fraction = abs(line) % 1.0

    if fraction == 0.0:
        return line + 0.5
    if abs(fraction - 0.5) < _FRACTION_TOL:
        return line
    if abs(fraction - 0.25) < _FRACTION_TOL or abs(fraction - 0.75) < _FRACTION_TOL:
        return line
    return round_half(line)
