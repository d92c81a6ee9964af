"""Vig removal for two-way markets.

Every method here is a pure function of the raw implied probabilities
``(p_a, p_b)`` of one bookmaker's two-sided price and returns the fair
(zero-margin) probability of each side.  Methods are selected at run time
through :class:`DevigMethod` and a plain dispatch table; none of them keep
state between calls.

Methods
-------
* **multiplicative** (default) — proportional normalisation,
  ``fair_i = p_i / Σp``.
* **power** — exponent ``k`` with ``p_a^k + p_b^k = 1``; shifts more of the
  margin onto the longshot, so it is the better estimate on lopsided lines.
* **additive** — subtracts half the overround from each side, floored at
  0.01.
* **worstCase** — no margin removal at all.  The fair probability *is* the
  raw implied probability, which assumes the whole margin sits on the side
  being evaluated.
* **shin** — Shin (1993) insider-trading model, solved by bisection.

Run tests with::

    pytest tests/test_devig.py -v
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Final, NamedTuple

from evfinder.core.odds_math import implied_probability, vig_percent

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Initial bracket for the power-method exponent search.
_POWER_K_LOW: Final[float] = 0.5
_POWER_K_HIGH: Final[float] = 2.0

#: Upper limit when widening the bracket for extreme favourites.
_POWER_K_CEILING: Final[float] = 64.0

_POWER_MAX_ITER: Final[int] = 50

#: Stop as soon as ``|p_a^k + p_b^k − 1|`` falls below this.
_POWER_TOL: Final[float] = 1e-4

#: Floor applied by the additive method so no side goes non-positive.
_ADDITIVE_FLOOR: Final[float] = 0.01

#: Symmetry threshold for the Shin short-circuit.
_SHIN_SYMMETRY_TOL: Final[float] = 1e-3

_SHIN_INNER_TOL: Final[float] = 1e-10

_SHIN_MAX_ITER: Final[int] = 200

#: Overround floor below which Shin's z estimate is meaningless.
_MIN_OVERROUND: Final[float] = 1.001


class DevigMethod(str, Enum):
    """Selectable vig-removal method.  Values match the caller-facing names."""

    MULTIPLICATIVE = "multiplicative"
    POWER = "power"
    ADDITIVE = "additive"
    WORST_CASE = "worstCase"
    SHIN = "shin"


class InvalidDevigMethodError(ValueError):
    """Raised for an unrecognised de-vig selector (caller misuse, not data)."""


class DevigResult(NamedTuple):
    """Fair probabilities for both sides plus the book's overround."""

    fair_prob_a: float
    fair_prob_b: float
    vig_percent: float


def parse_devig_method(value: DevigMethod | str) -> DevigMethod:
    """Resolve a selector to a :class:`DevigMethod`.

    Accepts enum members and their string values case-insensitively;
    ``"worst_case"`` and ``"worst-case"`` are accepted for ``worstCase``.

    Raises:
        InvalidDevigMethodError: For anything else.
    """
    if isinstance(value, DevigMethod):
        return value
    if isinstance(value, str):
        key = value.strip().lower().replace("_", "").replace("-", "")
        for method in DevigMethod:
            if method.value.lower() == key:
                return method
    valid = ", ".join(m.value for m in DevigMethod)
    raise InvalidDevigMethodError(
        f"Unknown de-vig method {value!r}. Expected one of: {valid}."
    )


# ---------------------------------------------------------------------------
# Methods: each maps (p_a, p_b) → (fair_a, fair_b)
# ---------------------------------------------------------------------------


def _multiplicative(p_a: float, p_b: float) -> tuple[float, float]:
    total = p_a + p_b
    return p_a / total, p_b / total


def solve_power_exponent(p_a: float, p_b: float) -> float:
    """Find ``k`` such that ``p_a^k + p_b^k ≈ 1`` by bisection.

    ``f(k) = p_a^k + p_b^k`` is strictly decreasing for probabilities in
    ``(0, 1)``, so the root is unique.  The search starts on ``[0.5, 2.0]``
    and runs at most 50 halvings, stopping once ``|f(k) − 1| < 1e-4``.
    For very short favourites (e.g. 0.99 / 0.20) the root lies above 2.0;
    the upper bound doubles until it brackets the root.

    Args:
        p_a: Raw implied probability of side A, in ``(0, 1)``.
        p_b: Raw implied probability of side B, in ``(0, 1)``.

    Returns:
        The exponent ``k``.
    """
    low, high = _POWER_K_LOW, _POWER_K_HIGH
    while p_a ** high + p_b ** high > 1.0 and high < _POWER_K_CEILING:
        low, high = high, high * 2.0

    k = 1.0
    for _ in range(_POWER_MAX_ITER):
        k = (low + high) / 2.0
        total = p_a ** k + p_b ** k
        if abs(total - 1.0) < _POWER_TOL:
            break
        if total > 1.0:
            low = k
        else:
            high = k
    return k


def _power(p_a: float, p_b: float) -> tuple[float, float]:
    k = solve_power_exponent(p_a, p_b)
    return p_a ** k, p_b ** k


def _additive(p_a: float, p_b: float) -> tuple[float, float]:
    per_side = (p_a + p_b - 1.0) / 2.0
    return max(_ADDITIVE_FLOOR, p_a - per_side), max(_ADDITIVE_FLOOR, p_b - per_side)


def _worst_case(p_a: float, p_b: float) -> tuple[float, float]:
    return p_a, p_b


def _shin(p_a: float, p_b: float) -> tuple[float, float]:
    """Shin (1993) two-outcome vig removal.

    The stated probability of outcome *i* satisfies::

        ω_i / K = (1 − z) · p_i  +  z · p_i² / Σ p_j²

    where ``K`` is the overround and ``z`` the insider share of volume.
    ``z`` is estimated from ``K ≈ 1 + z · (1 − Σ q_i²)`` and ``p_a`` is then
    solved by bisection with ``p_b = 1 − p_a``.  Near-even markets and
    overrounds below 1.001 fall back to proportional normalisation.
    """
    overround = p_a + p_b
    if overround < _MIN_OVERROUND:
        return _multiplicative(p_a, p_b)

    q_a = p_a / overround
    q_b = p_b / overround
    if abs(q_a - 0.5) < _SHIN_SYMMETRY_TOL:
        return q_a, q_b

    herfindahl = q_a ** 2 + q_b ** 2
    z = (overround - 1.0) / max(1.0 - herfindahl, 1e-10)
    z = max(0.0, min(z, 0.499))

    lo, hi = 1e-9, 1.0 - 1e-9
    for _ in range(_SHIN_MAX_ITER):
        mid = (lo + hi) * 0.5
        denom_sq = mid ** 2 + (1.0 - mid) ** 2
        shin_val = (1.0 - z) * mid + z * (mid ** 2) / denom_sq
        if shin_val < q_a:
            lo = mid
        else:
            hi = mid
        if (hi - lo) < _SHIN_INNER_TOL:
            break

    fair_a = (lo + hi) * 0.5
    return fair_a, 1.0 - fair_a


_DEVIG_FUNCS: Final[dict[DevigMethod, Callable[[float, float], tuple[float, float]]]] = {
    DevigMethod.MULTIPLICATIVE: _multiplicative,
    DevigMethod.POWER: _power,
    DevigMethod.ADDITIVE: _additive,
    DevigMethod.WORST_CASE: _worst_case,
    DevigMethod.SHIN: _shin,
}


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def devig_probabilities(
    p_a: float,
    p_b: float,
    method: DevigMethod | str = DevigMethod.MULTIPLICATIVE,
) -> DevigResult:
    """De-vig a pair of raw implied probabilities.

    Raises:
        InvalidDevigMethodError: If ``method`` is not recognised.
    """
    func = _DEVIG_FUNCS[parse_devig_method(method)]
    fair_a, fair_b = func(p_a, p_b)
    return DevigResult(fair_a, fair_b, vig_percent(p_a, p_b))


def devig(
    price_a: float,
    price_b: float,
    method: DevigMethod | str = DevigMethod.MULTIPLICATIVE,
) -> DevigResult:
    """De-vig one bookmaker's two-sided decimal price.

    The caller guarantees both prices are ``> 1.0``.

    Examples::

        devig(1.91, 1.91)                → (0.5, 0.5, 4.71)
        devig(1.50, 2.60)                → (0.634, 0.366, 5.13)
        devig(1.50, 2.60, "power")       → (0.645, 0.355, 5.13)
        devig(1.50, 2.60, "worstCase")   → (0.667, 0.385, 5.13)

    Raises:
        InvalidDevigMethodError: If ``method`` is not recognised.
    """
    return devig_probabilities(
        implied_probability(price_a), implied_probability(price_b), method
    )
