"""Engine configuration — every tunable threshold in one place.

:class:`EngineConfig` is a frozen dataclass passed into each pipeline run.
Nowhere else in the codebase should tolerances, EV thresholds, or
sharp-book lists be hard-coded, and nothing here is module-level mutable
state: two callers with two configs never interfere.

Typical usage::

    from evfinder.core.engine_config import EngineConfig

    cfg = EngineConfig.football()
    result = run_pipeline(quotes, cfg)

    # Re-run the same snapshot with another de-vig method:
    result_power = run_pipeline(quotes, cfg.with_method("power"))

    # Override a single threshold:
    from dataclasses import replace
    strict = replace(cfg, min_ev_percent=5.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Final, Mapping, Optional

from evfinder.core.devig import DevigMethod, parse_devig_method
from evfinder.core.markets import (
    DEFAULT_MARKETS,
    Category,
    MarketDefinition,
    MarketType,
    default_category,
    find_market,
)
from evfinder.core.models import book_key

#: Line tolerance for totals and one-way markets.
DEFAULT_LINE_TOLERANCE: Final[float] = 0.25

#: Spreads must not blend full-match and partial-period handicaps.
DEFAULT_SPREAD_LINE_TOLERANCE: Final[float] = 0.10

DEFAULT_MIN_BOOKMAKERS: Final[int] = 2
DEFAULT_MIN_EV_PERCENT: Final[float] = 3.0

#: EV above this is treated as a matching/data error, not an edge.
DEFAULT_MAX_PLAUSIBLE_EV: Final[float] = 35.0

#: Goalscorer-style markets carry 10–15 % total margin; ~8 % of it is
#: attributed to the quoted side when no book prices the complement.
DEFAULT_ONE_WAY_ASSUMED_VIG: Final[float] = 0.08

DEFAULT_OUTLIER_HIGH_RATIO: Final[float] = 1.8
DEFAULT_OUTLIER_LOW_RATIO: Final[float] = 0.55

#: Longest price the football profile surfaces.
FOOTBALL_MAX_OFFERED_ODDS: Final[float] = 10.0


def _csv(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration bundle for one engine run.

    Attributes:
        devig_method: Vig-removal method applied to every two-sided quote.
        line_tolerance: Max distance between a quote's normalized line and
            a cluster's running average line for totals/one-way markets.
        spread_line_tolerance: Same, for spread/handicap markets.
        min_bookmakers: Minimum distinct books per cluster, and minimum
            two-sided books needed to compute a two-way fair value.
        min_ev_percent: Inclusive lower EV bound for a surfaced opportunity.
        max_plausible_ev: Inclusive upper EV bound; anything above is
            logged as a data-quality signal and withheld.
        sharp_books: Reference books in priority order.
        playable_books: Books whose quotes may become opportunities.  Empty
            means every book is playable.
        one_way_assumed_vig: Fraction removed from the median implied
            probability when a one-way market has no two-sided quote.
        outlier_high_ratio / outlier_low_ratio: Bounds on a price's ratio to
            the cluster median before it is treated as a mislabeled market.
        max_offered_odds: Longest decimal price an opportunity may carry;
            None disables the cap.
        kelly_divisor / kelly_cap: Fractional-Kelly suggestion settings.
        markets: Market registry.
    """

    devig_method: DevigMethod = DevigMethod.MULTIPLICATIVE
    line_tolerance: float = DEFAULT_LINE_TOLERANCE
    spread_line_tolerance: float = DEFAULT_SPREAD_LINE_TOLERANCE
    min_bookmakers: int = DEFAULT_MIN_BOOKMAKERS
    min_ev_percent: float = DEFAULT_MIN_EV_PERCENT
    max_plausible_ev: float = DEFAULT_MAX_PLAUSIBLE_EV
    sharp_books: tuple[str, ...] = ("pinnacle",)
    playable_books: frozenset[str] = frozenset()
    one_way_assumed_vig: float = DEFAULT_ONE_WAY_ASSUMED_VIG
    outlier_high_ratio: float = DEFAULT_OUTLIER_HIGH_RATIO
    outlier_low_ratio: float = DEFAULT_OUTLIER_LOW_RATIO
    kelly_divisor: float = 4.0
    kelly_cap: float = 0.10
    max_offered_odds: Optional[float] = None
    markets: tuple[MarketDefinition, ...] = field(default=DEFAULT_MARKETS, repr=False)

    def __post_init__(self) -> None:
        # Normalise selectors and book names once so comparisons downstream
        # are plain equality checks.
        object.__setattr__(self, "devig_method", parse_devig_method(self.devig_method))
        object.__setattr__(self, "sharp_books", tuple(book_key(b) for b in self.sharp_books))
        object.__setattr__(
            self, "playable_books", frozenset(book_key(b) for b in self.playable_books)
        )

        if self.line_tolerance <= 0 or self.spread_line_tolerance <= 0:
            raise ValueError("Line tolerances must be positive.")
        if self.min_bookmakers < 1:
            raise ValueError(f"min_bookmakers must be ≥ 1, got {self.min_bookmakers!r}.")
        if self.min_ev_percent > self.max_plausible_ev:
            raise ValueError(
                f"min_ev_percent ({self.min_ev_percent}) exceeds "
                f"max_plausible_ev ({self.max_plausible_ev})."
            )
        if not (0.0 <= self.one_way_assumed_vig < 1.0):
            raise ValueError(
                f"one_way_assumed_vig must be in [0, 1), got {self.one_way_assumed_vig!r}."
            )
        if not (0.0 < self.outlier_low_ratio < 1.0 < self.outlier_high_ratio):
            raise ValueError("Outlier ratios must satisfy 0 < low < 1 < high.")
        if self.kelly_divisor <= 0:
            raise ValueError("kelly_divisor must be positive.")
        if self.max_offered_odds is not None and self.max_offered_odds <= 1.0:
            raise ValueError(
                f"max_offered_odds must be > 1.0, got {self.max_offered_odds!r}."
            )

    # ------------------------------------------------------------------ #
    #  Named constructors                                                  #
    # ------------------------------------------------------------------ #

    @classmethod
    def default(cls) -> EngineConfig:
        return cls()

    @classmethod
    def football(cls) -> EngineConfig:
        """European football props and match markets.

        Pinnacle is the primary reference; Betano, DraftKings and FanDuel
        stand in when Pinnacle does not quote a line.  Output is restricted
        to the books actually available for play.
        """
        return cls(
            sharp_books=("pinnacle", "betano", "draftkings", "fanduel"),
            playable_books=frozenset(
                {"bet365", "unibet", "betclic", "winamax", "betsson", "parions sport"}
            ),
            max_offered_odds=FOOTBALL_MAX_OFFERED_ODDS,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
        """Build a config from ``EV_*`` environment variables.

        Unset variables keep their defaults.  An invalid ``EV_DEVIG_METHOD``
        raises :class:`~evfinder.core.devig.InvalidDevigMethodError`.
        """
        env = os.environ if environ is None else environ
        overrides: dict = {}

        if env.get("EV_DEVIG_METHOD"):
            overrides["devig_method"] = parse_devig_method(env["EV_DEVIG_METHOD"])
        if env.get("EV_MIN_PERCENT"):
            overrides["min_ev_percent"] = float(env["EV_MIN_PERCENT"])
        if env.get("EV_MAX_PLAUSIBLE"):
            overrides["max_plausible_ev"] = float(env["EV_MAX_PLAUSIBLE"])
        if env.get("EV_MAX_ODDS"):
            overrides["max_offered_odds"] = float(env["EV_MAX_ODDS"])
        if env.get("EV_MIN_BOOKMAKERS"):
            overrides["min_bookmakers"] = int(env["EV_MIN_BOOKMAKERS"])
        if env.get("EV_LINE_TOLERANCE"):
            overrides["line_tolerance"] = float(env["EV_LINE_TOLERANCE"])
        if env.get("EV_SPREAD_LINE_TOLERANCE"):
            overrides["spread_line_tolerance"] = float(env["EV_SPREAD_LINE_TOLERANCE"])
        if env.get("EV_SHARP_BOOKS"):
            overrides["sharp_books"] = _csv(env["EV_SHARP_BOOKS"])
        if env.get("EV_PLAYABLE_BOOKS"):
            overrides["playable_books"] = frozenset(_csv(env["EV_PLAYABLE_BOOKS"]))

        return cls(**overrides)

    # ------------------------------------------------------------------ #
    #  Convenience accessors                                               #
    # ------------------------------------------------------------------ #

    def with_method(self, method: DevigMethod | str) -> EngineConfig:
        """Return a copy using another de-vig method."""
        return replace(self, devig_method=parse_devig_method(method))

    def tolerance_for(self, market_type: MarketType) -> float:
        if market_type is MarketType.SPREAD:
            return self.spread_line_tolerance
        return self.line_tolerance

    def market(self, key: str) -> Optional[MarketDefinition]:
        return find_market(key, self.markets)

    def market_label(self, key: str) -> str:
        market = self.market(key)
        return market.label if market else key

    def category_for(self, key: str, market_type: MarketType) -> Category:
        market = self.market(key)
        return market.category if market else default_category(market_type)

    def is_playable(self, bookmaker: str) -> bool:
        return not self.playable_books or book_key(bookmaker) in self.playable_books

    def sharp_rank(self, bookmaker: str) -> Optional[int]:
        """Priority index of ``bookmaker`` in :attr:`sharp_books`, or None."""
        try:
            return self.sharp_books.index(book_key(bookmaker))
        except ValueError:
            return None

    def __repr__(self) -> str:
        return (
            f"EngineConfig(method={self.devig_method.value!r}, "
            f"min_ev={self.min_ev_percent}, max_ev={self.max_plausible_ev}, "
            f"min_books={self.min_bookmakers}, sharp={list(self.sharp_books)})"
        )
