"""Kelly criterion sizing for surfaced opportunities.

All functions here are **pure**: no I/O, no logging.

The engine never places bets; it only attaches a *suggested* stake fraction
to each opportunity so downstream consumers can rank by size as well as by
edge.  The suggestion is fractional Kelly (quarter-Kelly by default) with a
hard cap, because the fair probability is itself an estimate derived from
other bookmakers' prices.

Run tests with::

    pytest tests/test_kelly.py -v
"""

from __future__ import annotations

from typing import Final

#: Quarter-Kelly.
DEFAULT_KELLY_DIVISOR: Final[float] = 4.0

#: Hard cap on any single suggestion, as a fraction of bankroll.
MAX_KELLY_FRACTION: Final[float] = 0.10


def kelly_fraction(
    win_prob: float,
    decimal_odds: float,
    *,
    fractional_divisor: float = DEFAULT_KELLY_DIVISOR,
    max_fraction: float = MAX_KELLY_FRACTION,
) -> float:
    """Compute fractional Kelly bet size for a simple win/loss outcome.

    Full Kelly for profit ``b = odds − 1`` per unit is::

        f*  =  (p · b − q) / b

    and the returned value is ``min(f* / fractional_divisor, max_fraction)``.

    Args:
        win_prob: Fair probability of winning, in ``(0, 1)``.
        decimal_odds: Offered decimal odds.
        fractional_divisor: Divisor applied to full Kelly.  Default 4×.
        max_fraction: Hard cap on the output fraction.

    Returns:
        Fraction of bankroll in ``[0, max_fraction]``; 0.0 for non-positive
        edges.

    Raises:
        ValueError: If ``win_prob`` is not in ``(0, 1)`` or
            ``decimal_odds <= 1.0``.

    Examples::

        kelly_fraction(0.50, 2.30)   → 0.029
        kelly_fraction(0.45, 2.00)   → 0.0
    """
    if not (0.0 < win_prob < 1.0):
        raise ValueError(f"win_prob must be in (0, 1), got {win_prob!r}.")
    if decimal_odds <= 1.0:
        raise ValueError(f"decimal_odds must be > 1.0, got {decimal_odds!r}.")

    profit_per_unit = decimal_odds - 1.0
    full_kelly = (win_prob * profit_per_unit - (1.0 - win_prob)) / profit_per_unit
    if full_kelly <= 0.0:
        return 0.0
    return min(full_kelly / fractional_divisor, max_fraction)


def kelly_stake(
    win_prob: float,
    decimal_odds: float,
    bankroll: float,
    *,
    fractional_divisor: float = DEFAULT_KELLY_DIVISOR,
    max_fraction: float = MAX_KELLY_FRACTION,
) -> float:
    """Suggested stake in currency units for ``bankroll``."""
    if bankroll <= 0.0:
        return 0.0
    return bankroll * kelly_fraction(
        win_prob,
        decimal_odds,
        fractional_divisor=fractional_divisor,
        max_fraction=max_fraction,
    )
