"""
Line clustering — turn one subject/market group into comparable market lines.

Algorithm (per group)
---------------------
1. Stable-sort quotes by normalized line, ascending.
2. Scan in order.  Each quote joins the first open cluster whose *running
   average* line is within tolerance (0.25 for totals/one-way, 0.10 for
   spreads).  If that cluster already holds a quote from the same
   bookmaker, the later quote is dropped.  Otherwise a new cluster opens.
3. Remove price outliers from each cluster (see ``outliers``).
4. Keep clusters with at least ``min_bookmakers`` distinct books; their
   representative line is the member average rounded to the nearest half.

The scan is greedy and never re-clusters once averages drift.  Line
dispersion for one market on one slate is narrow, so the first fit is
the right one in practice, and the result is deterministic for a given
input order.
"""

import logging
from typing import Dict, Iterable, List, Optional

from evfinder.core.engine_config import EngineConfig
from evfinder.core.models import MarketCluster, Quote
from evfinder.core.odds_math import round_half
from evfinder.services.grouping import GroupKey
from evfinder.services.outliers import filter_outliers

logger = logging.getLogger(__name__)


def _average_line(quotes: List[Quote]) -> float:
    return sum(q.normalized_line for q in quotes) / len(quotes)


def cluster_group(
    quotes: List[Quote],
    config: Optional[EngineConfig] = None,
    normalized_subject: str = "",
) -> List[MarketCluster]:
    """
    Cluster one group's quotes into market lines.

    All quotes in ``quotes`` are expected to share subject and market key
    (as produced by :func:`~evfinder.services.grouping.group_quotes`); the
    first quote supplies the cluster's display subject and market type.
    """
    if not quotes:
        return []
    config = config or EngineConfig.default()

    first = quotes[0]
    market_type = first.market_type
    tolerance = config.tolerance_for(market_type)

    open_clusters: List[List[Quote]] = []
    for quote in sorted(quotes, key=lambda q: q.normalized_line):
        placed = False
        for cluster in open_clusters:
            if abs(quote.normalized_line - _average_line(cluster)) <= tolerance:
                if any(member.book == quote.book for member in cluster):
                    logger.debug(
                        "Dropping second %s quote on %s %s line %s",
                        quote.bookmaker, quote.subject, quote.market_key, quote.line,
                    )
                else:
                    cluster.append(quote)
                placed = True
                break
        if not placed:
            open_clusters.append([quote])

    category = config.category_for(first.market_key, market_type)
    clusters: List[MarketCluster] = []
    for members in open_clusters:
        members = filter_outliers(members, config.outlier_high_ratio, config.outlier_low_ratio)
        if len({m.book for m in members}) < config.min_bookmakers:
            continue
        clusters.append(MarketCluster(
            subject=first.subject,
            normalized_subject=normalized_subject,
            market_key=first.market_key,
            market_type=market_type,
            category=category,
            line=round_half(_average_line(members)),
            quotes=tuple(members),
        ))
    return clusters


def cluster_groups(
    groups: Dict[GroupKey, List[Quote]],
    config: Optional[EngineConfig] = None,
) -> List[MarketCluster]:
    """Cluster every group, preserving group order."""
    config = config or EngineConfig.default()
    clusters: List[MarketCluster] = []
    for (normalized_subject, _market_key), quotes in groups.items():
        clusters.extend(cluster_group(quotes, config, normalized_subject))

    logger.info(
        "Clustering: %d market lines with %d+ bookmakers from %d groups",
        len(clusters), config.min_bookmakers, len(groups),
    )
    return clusters


def bookmaker_coverage(clusters: Iterable[MarketCluster]) -> Dict[str, int]:
    """Count how many clusters each bookmaker contributes to."""
    counts: Dict[str, int] = {}
    for cluster in clusters:
        for quote in cluster.quotes:
            counts[quote.bookmaker] = counts.get(quote.bookmaker, 0) + 1
    return counts
