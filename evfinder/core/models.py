"""Data-transfer objects flowing through the engine.

All records are frozen: a run builds them from the input snapshot and
never mutates them afterwards, so results can be cached or shared across
threads.

* :class:`Quote`          — one bookmaker's price on one market line.
* :class:`MarketCluster`  — quotes from distinct books on the same line.
* :class:`FairValue`      — de-vigged fair price for one side of a cluster.
* :class:`ReferenceQuote` — audit record of a book used for a fair value.
* :class:`EVOpportunity`  — the engine's output record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from evfinder.core.markets import Category, MarketType


def book_key(bookmaker: str) -> str:
    """Case-insensitive bookmaker identity used for every comparison."""
    return bookmaker.strip().lower()


class BetSide(str, Enum):
    """Side label carried on an opportunity."""

    OVER = "OVER"
    UNDER = "UNDER"
    HOME = "HOME"
    AWAY = "AWAY"
    YES = "YES"


@dataclass(frozen=True, slots=True)
class Quote:
    """One bookmaker's price for one market line on one subject.

    Attributes:
        subject: Player name or match/market label, as quoted.
        market_key: Canonical market key.
        market_type: Shape of the market.
        line: Raw line as quoted.
        normalized_line: Line after :func:`~evfinder.services.line_normalizer.normalize_line`.
        over_odds: Decimal price of the over/home (or "yes") side; always > 1.
        bookmaker: Bookmaker name as quoted.
        under_odds: Decimal price of the under/away side, ``None`` when the
            book does not price it.
        observed_at: When the price was observed, if known.
    """

    subject: str
    market_key: str
    market_type: MarketType
    line: float
    normalized_line: float
    over_odds: float
    bookmaker: str
    under_odds: Optional[float] = None
    observed_at: Optional[datetime] = None

    @property
    def book(self) -> str:
        return book_key(self.bookmaker)

    @property
    def is_two_sided(self) -> bool:
        return self.under_odds is not None


@dataclass(frozen=True, slots=True)
class MarketCluster:
    """Quotes from distinct bookmakers judged to be the same market line."""

    subject: str
    normalized_subject: str
    market_key: str
    market_type: MarketType
    category: Category
    line: float
    quotes: tuple[Quote, ...]

    @property
    def bookmaker_count(self) -> int:
        return len({q.book for q in self.quotes})

    @property
    def bookmakers(self) -> tuple[str, ...]:
        return tuple(q.bookmaker for q in self.quotes)


@dataclass(frozen=True, slots=True)
class FairValue:
    """Fair price for one side of one cluster.

    ``source`` is one of ``"sharp"``, ``"lowest_vig"``, ``"two_sided"``,
    ``"average"`` or ``"median_fallback"``; ``reference_bookmaker`` is
    ``None`` for the last two.
    """

    fair_probability: float
    fair_odds: float
    vig_percent: float
    reference_bookmaker: Optional[str]
    source: str
    contributors: int


@dataclass(frozen=True, slots=True)
class ReferenceQuote:
    """A book's price as used for a fair value, kept for audit/display."""

    bookmaker: str
    odds: float
    line: float
    fair_probability: float
    vig_percent: float
    has_under: bool

    def to_dict(self) -> dict:
        return {
            "bookmaker": self.bookmaker,
            "odds": self.odds,
            "line": self.line,
            "fair_probability": self.fair_probability,
            "vig_percent": self.vig_percent,
            "has_under": self.has_under,
        }


@dataclass(frozen=True, slots=True)
class EVOpportunity:
    """A bookmaker price scored against the cluster's fair value."""

    subject: str
    market_key: str
    market_label: str
    category: Category
    line: float
    side: BetSide
    bookmaker: str
    offered_odds: float
    fair_odds: float
    fair_probability: float
    ev_percent: float
    edge_percent: float
    books_backing: int
    reference_quotes: tuple[ReferenceQuote, ...]
    fair_value_source: str
    reference_bookmaker: Optional[str]
    kelly_fraction: float
    grade: str
    observed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "subject": self.subject,
            "market_key": self.market_key,
            "market_label": self.market_label,
            "category": self.category.value,
            "line": self.line,
            "side": self.side.value,
            "bookmaker": self.bookmaker,
            "offered_odds": self.offered_odds,
            "fair_odds": self.fair_odds,
            "fair_probability": self.fair_probability,
            "ev_percent": self.ev_percent,
            "edge_percent": self.edge_percent,
            "books_backing": self.books_backing,
            "reference_quotes": [r.to_dict() for r in self.reference_quotes],
            "fair_value_source": self.fair_value_source,
            "reference_bookmaker": self.reference_bookmaker,
            "kelly_fraction": self.kelly_fraction,
            "grade": self.grade,
            "observed_at": self.observed_at.isoformat() if self.observed_at else None,
        }
