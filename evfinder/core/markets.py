"""Market definitions — canonical keys, display labels, and market shape.

A :class:`MarketDefinition` fixes, for one canonical market key, how the
engine treats it: whether the market is one-way (only a "yes" side is
normally priced), a two-way total, or a two-way spread/handicap, and
whether it belongs on the player or the match board.

The default registry covers football match markets and player props as
quoted by the usual European and US books.  ``aliases`` lists the raw
market labels providers use for the same bet; see
:func:`evfinder.services.subject_mapping.resolve_market_key`.

Registries are plain tuples of frozen records and are passed around inside
:class:`~evfinder.core.engine_config.EngineConfig`; nothing here is mutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Iterable, Optional


class MarketType(str, Enum):
    """Shape of a market, which decides tolerance and fair-value strategy."""

    PLAYER_ONE_WAY = "player-one-way"
    TOTALS = "totals"
    SPREAD = "spread"


class Category(str, Enum):
    PLAYER = "player"
    MATCH = "match"


@dataclass(frozen=True)
class MarketDefinition:
    """Immutable description of one canonical market.

    Attributes:
        key: Canonical market key, e.g. ``"player_shots"``.
        label: Human-readable name carried onto opportunities.
        market_type: :class:`MarketType` of the market.
        category: Board the market belongs to.
        aliases: Provider labels that mean the same market.
    """

    key: str
    label: str
    market_type: MarketType
    category: Category
    aliases: tuple[str, ...] = ()

    @property
    def is_one_way(self) -> bool:
        return self.market_type is MarketType.PLAYER_ONE_WAY


def _match(key: str, label: str, market_type: MarketType, *aliases: str) -> MarketDefinition:
    return MarketDefinition(key, label, market_type, Category.MATCH, tuple(aliases))


def _player(key: str, label: str, market_type: MarketType, *aliases: str) -> MarketDefinition:
    return MarketDefinition(key, label, market_type, Category.PLAYER, tuple(aliases))


DEFAULT_MARKETS: Final[tuple[MarketDefinition, ...]] = (
    # Match totals
    _match("totals", "Match Total", MarketType.TOTALS, "total_goals", "Total Goals", "Over/Under"),
    _match("asian_totals", "Asian Total", MarketType.TOTALS, "asian_total_goals", "Asian Total Goals"),
    _match("team_total", "Team Total", MarketType.TOTALS, "team_total_goals", "Team Total Goals"),
    _match("corners_totals", "Corners Total", MarketType.TOTALS, "total_corners", "Total Corners"),
    _match("shots_totals", "Total Shots", MarketType.TOTALS, "total_shots"),
    _match("shots_on_target_totals", "Shots on Target", MarketType.TOTALS, "total_shots_on_target"),
    _match("bookings_totals", "Cards Total", MarketType.TOTALS, "total_cards", "Total Bookings"),
    # Handicaps
    _match("spreads", "Asian Handicap", MarketType.SPREAD, "asian_handicap", "Handicap"),
    _match("goal_spread", "Goal Spread", MarketType.SPREAD, "goal_line"),
    _match("corners_spread", "Corners Spread", MarketType.SPREAD, "corner_handicap", "Corner Handicap"),
    # Player props, one-way
    _player("goalscorer", "Anytime Goalscorer", MarketType.PLAYER_ONE_WAY, "anytime_goal_scorer", "Anytime Goal Scorer"),
    _player("first_goalscorer", "First Goalscorer", MarketType.PLAYER_ONE_WAY, "first_goal_scorer", "First Goal Scorer"),
    _player("player_shots", "Player Shots", MarketType.PLAYER_ONE_WAY, "Player Shots"),
    _player("player_sot", "Player Shots on Target", MarketType.PLAYER_ONE_WAY, "player_shots_on_target", "Player Shots On Target"),
    _player("player_assists", "Player Assists", MarketType.PLAYER_ONE_WAY, "Player Assists"),
    _player("player_tackles", "Player Tackles", MarketType.PLAYER_ONE_WAY, "Player Tackles"),
    _player("player_passes", "Player Passes", MarketType.PLAYER_ONE_WAY, "Player Passes"),
    _player("player_fouls", "Player Fouls", MarketType.PLAYER_ONE_WAY, "Player Fouls"),
    _player("player_cards", "Player Cards", MarketType.PLAYER_ONE_WAY, "anytime_card_receiver", "Player To Be Booked"),
    # Player props, two-way
    _player("goalkeeper_saves", "Goalkeeper Saves", MarketType.TOTALS, "player_saves", "Goalkeeper Saves"),
)


def find_market(
    key: str,
    markets: Iterable[MarketDefinition] = DEFAULT_MARKETS,
) -> Optional[MarketDefinition]:
    """Exact lookup of a canonical key in ``markets``."""
    for market in markets:
        if market.key == key:
            return market
    return None


def default_category(market_type: MarketType) -> Category:
    """Category for a market key the registry does not know."""
    if market_type is MarketType.PLAYER_ONE_WAY:
        return Category.PLAYER
    return Category.MATCH
