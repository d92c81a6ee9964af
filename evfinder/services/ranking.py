"""
EV ranking — fair value per cluster, EV per bookmaker price, ranked output.

Fair-value policy
-----------------
Two-way markets (totals, spreads, two-way player props):

  Every cluster member that prices both sides is de-vigged with the
  configured method.  Playable books are contributors too; the engine does
  not exclude a book from the fair value it is then scored against.  One
  fair probability per side is then chosen, in priority order:

    1. sharp      — the highest-priority ``sharp_books`` entry present;
    2. lowest_vig — with exactly two contributors, the one with less margin;
    3. average    — otherwise the mean of all contributors.

  Fewer than ``min_bookmakers`` two-sided contributors → no fair value,
  the cluster is skipped.

One-way markets (goalscorer-style props):

  Any book that happens to price both sides is de-vigged directly (sharp
  priority first, then first in cluster order).  Without one, the median
  implied probability of the one-sided prices is reduced by
  ``one_way_assumed_vig`` (``median_fallback``).

Scoring and filtering
---------------------
Every playable quote offering a side is scored with
``EV% = (fair_probability × offered_odds − 1) × 100``.  A line is surfaced
when ``min_ev_percent ≤ EV% ≤ max_plausible_ev`` and its price is at most
``max_offered_odds`` (when set).  Lines above the EV ceiling are logged
at WARNING as a data-quality signal and collected in
``RankingResult.suspicious`` instead.  Output is sorted by EV descending;
ties keep generation order (stable sort).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from evfinder.core.devig import devig
from evfinder.core.engine_config import EngineConfig
from evfinder.core.kelly import kelly_fraction
from evfinder.core.markets import MarketType
from evfinder.core.models import (
    BetSide,
    EVOpportunity,
    FairValue,
    MarketCluster,
    Quote,
    ReferenceQuote,
)
from evfinder.core.odds_math import edge_percent, ev_percent, fair_odds, implied_probability

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------

@dataclass
class RankingResult:
    """Output of one ranking run."""

    opportunities: List[EVOpportunity] = field(default_factory=list)
    all_lines: List[EVOpportunity] = field(default_factory=list)
    suspicious: List[EVOpportunity] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "opportunities": [o.to_dict() for o in self.opportunities],
            "suspicious": [o.to_dict() for o in self.suspicious],
            "lines_scored": len(self.all_lines),
        }


@dataclass(frozen=True)
class BetSummary:
    """All qualifying bookmakers for one bet, best price first."""

    subject: str
    market_key: str
    market_label: str
    line: float
    side: BetSide
    best: EVOpportunity
    books: Tuple[EVOpportunity, ...]

    def to_dict(self) -> dict:
        return {
            "subject": self.subject,
            "market_key": self.market_key,
            "market_label": self.market_label,
            "line": self.line,
            "side": self.side.value,
            "bookmaker": self.best.bookmaker,
            "odds": self.best.offered_odds,
            "ev_percent": self.best.ev_percent,
            "fair_odds": self.best.fair_odds,
            "all_bookmakers": [
                {"bookmaker": o.bookmaker, "odds": o.offered_odds, "ev_percent": o.ev_percent}
                for o in self.books
            ],
        }


@dataclass(frozen=True)
class _Devigged:
    quote: Quote
    fair_over: float
    fair_under: float
    vig: float


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------

def grade_opportunity(ev: float) -> str:
    """Coarse quality label for an EV reading."""
    if ev <= 0:
        return "poor"
    if ev > 20:
        return "excellent"
    if ev > 10:
        return "great"
    if ev > 5:
        return "good"
    return "fair"


def passes_thresholds(ev: float, config: EngineConfig) -> bool:
    """Inclusive ``min_ev_percent ≤ ev ≤ max_plausible_ev`` check."""
    return config.min_ev_percent <= ev <= config.max_plausible_ev


def within_odds_cap(offered_odds: float, config: EngineConfig) -> bool:
    """True unless ``offered_odds`` exceeds ``max_offered_odds`` (inclusive cap)."""
    return config.max_offered_odds is None or offered_odds <= config.max_offered_odds


def side_labels(market_type: MarketType) -> Tuple[BetSide, BetSide]:
    if market_type is MarketType.SPREAD:
        return BetSide.HOME, BetSide.AWAY
    if market_type is MarketType.PLAYER_ONE_WAY:
        return BetSide.YES, BetSide.UNDER
    return BetSide.OVER, BetSide.UNDER


def devig_cluster(cluster: MarketCluster, config: EngineConfig) -> List[_Devigged]:
    """De-vig every two-sided member of ``cluster``, in member order."""
    rows: List[_Devigged] = []
    for quote in cluster.quotes:
        if not quote.is_two_sided:
            continue
        result = devig(quote.over_odds, quote.under_odds, config.devig_method)
        rows.append(_Devigged(quote, result.fair_prob_a, result.fair_prob_b, result.vig_percent))
    return rows


def _pick_sharp(devigged: Sequence[_Devigged], config: EngineConfig) -> Optional[_Devigged]:
    ranked = [
        (config.sharp_rank(d.quote.bookmaker), i, d)
        for i, d in enumerate(devigged)
        if config.sharp_rank(d.quote.bookmaker) is not None
    ]
    if not ranked:
        return None
    return min(ranked, key=lambda t: (t[0], t[1]))[2]


# ---------------------------------------------------------------------------
# Fair value selection
# ---------------------------------------------------------------------------

def two_way_fair_values(
    devigged: Sequence[_Devigged],
    config: EngineConfig,
) -> Optional[Tuple[FairValue, FairValue]]:
    """
    Choose (over/home, under/away) fair values from de-vigged contributors.

    Returns None when fewer than ``min_bookmakers`` books price both sides.
    """
    n = len(devigged)
    if n < config.min_bookmakers:
        return None

    sharp = _pick_sharp(devigged, config)
    if sharp is not None:
        chosen, source = sharp, "sharp"
    elif n == 2:
        # min() keeps the first on equal vig
        chosen, source = min(devigged, key=lambda d: d.vig), "lowest_vig"
    else:
        chosen, source = None, "average"

    if chosen is not None:
        p_over, p_under, vig = chosen.fair_over, chosen.fair_under, chosen.vig
        reference = chosen.quote.bookmaker
    else:
        p_over = sum(d.fair_over for d in devigged) / n
        p_under = sum(d.fair_under for d in devigged) / n
        vig = sum(d.vig for d in devigged) / n
        reference = None

    return (
        FairValue(p_over, fair_odds(p_over), vig, reference, source, n),
        FairValue(p_under, fair_odds(p_under), vig, reference, source, n),
    )


def one_way_fair_value(
    cluster: MarketCluster,
    devigged: Sequence[_Devigged],
    config: EngineConfig,
) -> Optional[FairValue]:
    """Fair "yes" probability for a one-way cluster."""
    priced = list(cluster.quotes)
    if len(priced) < config.min_bookmakers:
        return None

    chosen = _pick_sharp(devigged, config)
    source = "sharp"
    if chosen is None and devigged:
        chosen, source = devigged[0], "two_sided"

    if chosen is not None:
        p = chosen.fair_over
        return FairValue(p, fair_odds(p), chosen.vig, chosen.quote.bookmaker, source, len(priced))

    median_implied = float(np.median([implied_probability(q.over_odds) for q in priced]))
    p = median_implied * (1.0 - config.one_way_assumed_vig)
    return FairValue(
        p, fair_odds(p), config.one_way_assumed_vig * 100.0, None, "median_fallback", len(priced)
    )


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def _make_opportunity(
    cluster: MarketCluster,
    quote: Quote,
    side: BetSide,
    offered: float,
    fair: FairValue,
    references: Tuple[ReferenceQuote, ...],
    config: EngineConfig,
) -> EVOpportunity:
    ev = ev_percent(fair.fair_probability, offered)
    return EVOpportunity(
        subject=cluster.subject,
        market_key=cluster.market_key,
        market_label=config.market_label(cluster.market_key),
        category=cluster.category,
        line=quote.normalized_line,
        side=side,
        bookmaker=quote.bookmaker,
        offered_odds=offered,
        fair_odds=fair.fair_odds,
        fair_probability=fair.fair_probability,
        ev_percent=ev,
        edge_percent=edge_percent(fair.fair_probability, offered),
        books_backing=fair.contributors,
        reference_quotes=references,
        fair_value_source=fair.source,
        reference_bookmaker=fair.reference_bookmaker,
        kelly_fraction=kelly_fraction(
            fair.fair_probability,
            offered,
            fractional_divisor=config.kelly_divisor,
            max_fraction=config.kelly_cap,
        ),
        grade=grade_opportunity(ev),
        observed_at=quote.observed_at,
    )


def score_cluster(cluster: MarketCluster, config: EngineConfig) -> List[EVOpportunity]:
    """
    Score every playable price in ``cluster`` against its fair value.

    Returns unfiltered lines in generation order: over/home side first, then
    under/away, members in cluster order.
    """
    devigged = devig_cluster(cluster, config)
    over_label, under_label = side_labels(cluster.market_type)
    lines: List[EVOpportunity] = []

    if cluster.market_type is MarketType.PLAYER_ONE_WAY:
        fair = one_way_fair_value(cluster, devigged, config)
        if fair is None:
            return lines
        by_book: Dict[str, _Devigged] = {d.quote.book: d for d in devigged}
        references = tuple(
            ReferenceQuote(
                bookmaker=q.bookmaker,
                odds=q.over_odds,
                line=q.normalized_line,
                fair_probability=(
                    by_book[q.book].fair_over if q.book in by_book
                    else implied_probability(q.over_odds)
                ),
                vig_percent=by_book[q.book].vig if q.book in by_book else 0.0,
                has_under=q.is_two_sided,
            )
            for q in sorted(cluster.quotes, key=lambda q: q.over_odds)
        )
        for quote in cluster.quotes:
            if config.is_playable(quote.bookmaker):
                lines.append(_make_opportunity(
                    cluster, quote, over_label, quote.over_odds, fair, references, config
                ))
        return lines

    fairs = two_way_fair_values(devigged, config)
    if fairs is None:
        logger.debug(
            "Skipping %s %s %s: %d two-sided books (< %d)",
            cluster.subject, cluster.market_key, cluster.line,
            len(devigged), config.min_bookmakers,
        )
        return lines
    fair_over, fair_under = fairs

    over_refs = tuple(
        ReferenceQuote(d.quote.bookmaker, d.quote.over_odds, d.quote.normalized_line,
                       d.fair_over, d.vig, True)
        for d in devigged
    )
    under_refs = tuple(
        ReferenceQuote(d.quote.bookmaker, d.quote.under_odds, d.quote.normalized_line,
                       d.fair_under, d.vig, True)
        for d in devigged
    )

    playable = [q for q in cluster.quotes if config.is_playable(q.bookmaker)]
    for quote in playable:
        lines.append(_make_opportunity(
            cluster, quote, over_label, quote.over_odds, fair_over, over_refs, config
        ))
    for quote in playable:
        if quote.under_odds is not None:
            lines.append(_make_opportunity(
                cluster, quote, under_label, quote.under_odds, fair_under, under_refs, config
            ))
    return lines


def _sort_by_ev(opportunities: Iterable[EVOpportunity]) -> List[EVOpportunity]:
    return sorted(opportunities, key=lambda o: -o.ev_percent)


def rank_clusters(
    clusters: Iterable[MarketCluster],
    config: Optional[EngineConfig] = None,
) -> RankingResult:
    """
    Score all clusters, apply EV thresholds, and rank.

    Args:
        clusters: Output of :func:`~evfinder.services.clustering.cluster_groups`.
        config:   Engine configuration; defaults to :meth:`EngineConfig.default`.

    Returns:
        :class:`RankingResult` with surfaced opportunities, every scored
        line, and the lines withheld as implausible.
    """
    config = config or EngineConfig.default()
    all_lines: List[EVOpportunity] = []
    kept: List[EVOpportunity] = []
    suspicious: List[EVOpportunity] = []
    one_way = two_way = 0

    for cluster in clusters:
        if cluster.market_type is MarketType.PLAYER_ONE_WAY:
            one_way += 1
        else:
            two_way += 1

        for line in score_cluster(cluster, config):
            all_lines.append(line)
            if passes_thresholds(line.ev_percent, config):
                if within_odds_cap(line.offered_odds, config):
                    kept.append(line)
            elif line.ev_percent > config.max_plausible_ev:
                suspicious.append(line)
                logger.warning(
                    "Skipping suspicious EV: %s %s %s %s @ %s (%.1f%% EV, "
                    "above %.0f%% is likely a market mismatch)",
                    line.subject, line.market_label, line.side.value, line.line,
                    line.bookmaker, line.ev_percent, config.max_plausible_ev,
                )

    result = RankingResult(
        opportunities=_sort_by_ev(kept),
        all_lines=_sort_by_ev(all_lines),
        suspicious=_sort_by_ev(suspicious),
    )
    logger.info(
        "EV (%s): %d clusters (%d one-way, %d two-way), %d lines scored, "
        "%d opportunities, %d suspicious",
        config.devig_method.value, one_way + two_way, one_way, two_way,
        len(all_lines), len(result.opportunities), len(result.suspicious),
    )
    return result


# ---------------------------------------------------------------------------
# Presentation helpers
# ---------------------------------------------------------------------------

def consolidate_by_bet(opportunities: Iterable[EVOpportunity]) -> List[BetSummary]:
    """
    Collapse opportunities on the same bet into one summary per bet.

    A bet is ``(subject, market_key, line, side)``.  Each bookmaker appears
    once per bet with its best EV.  Summaries are ordered by their best EV,
    descending.
    """
    buckets: Dict[tuple, Dict[str, EVOpportunity]] = {}
    for opp in opportunities:
        key = (opp.subject, opp.market_key, opp.line, opp.side)
        books = buckets.setdefault(key, {})
        existing = books.get(opp.bookmaker)
        if existing is None or opp.ev_percent > existing.ev_percent:
            books[opp.bookmaker] = opp

    summaries: List[BetSummary] = []
    for (subject, market_key, line, side), books in buckets.items():
        ranked = tuple(_sort_by_ev(books.values()))
        summaries.append(BetSummary(
            subject=subject,
            market_key=market_key,
            market_label=ranked[0].market_label,
            line=line,
            side=side,
            best=ranked[0],
            books=ranked,
        ))
    return sorted(summaries, key=lambda s: -s.best.ev_percent)


def summarize(opportunities: Sequence[EVOpportunity]) -> dict:
    """Aggregate statistics over a list of opportunities."""
    if not opportunities:
        return {
            "count": 0,
            "avg_ev_percent": 0.0,
            "avg_edge_percent": 0.0,
            "avg_odds": 0.0,
            "avg_fair_probability": 0.0,
            "grade_distribution": {},
        }

    n = len(opportunities)
    grades: Dict[str, int] = {}
    for o in opportunities:
        grades[o.grade] = grades.get(o.grade, 0) + 1

    return {
        "count": n,
        "avg_ev_percent": sum(o.ev_percent for o in opportunities) / n,
        "avg_edge_percent": sum(o.edge_percent for o in opportunities) / n,
        "avg_odds": sum(o.offered_odds for o in opportunities) / n,
        "avg_fair_probability": sum(o.fair_probability for o in opportunities) / n,
        "grade_distribution": grades,
    }
