"""
End-to-end run: snapshot → groups → clusters → ranked EV opportunities.

Each call builds everything it needs from its arguments; nothing is cached
between runs, so the same snapshot and config always give the same result.
"""

import logging
from typing import Iterable, List, Mapping, Optional, Union

from evfinder.core.engine_config import EngineConfig
from evfinder.core.models import EVOpportunity, Quote
from evfinder.services.clustering import bookmaker_coverage, cluster_groups
from evfinder.services.grouping import group_quotes
from evfinder.services.quote_builder import quotes_from_records
from evfinder.services.ranking import RankingResult, rank_clusters

logger = logging.getLogger(__name__)

SnapshotItem = Union[Quote, Mapping]


def run_pipeline(
    snapshot: Iterable[SnapshotItem],
    config: Optional[EngineConfig] = None,
) -> RankingResult:
    """
    Rank every positive-EV price in one odds snapshot.

    Args:
        snapshot: :class:`Quote` objects or raw quote records (dicts in the
                  :class:`~evfinder.schemas.QuoteRecord` shape), mixed freely.
                  Malformed records are dropped.
        config:   Engine configuration; defaults to :meth:`EngineConfig.default`.

    Returns:
        :class:`~evfinder.services.ranking.RankingResult`.  An empty snapshot
        yields an empty result.
    """
    config = config or EngineConfig.default()
    quotes = quotes_from_records(snapshot)
    if not quotes:
        logger.info("Empty snapshot, nothing to rank")
        return RankingResult()

    groups = group_quotes(quotes)
    clusters = cluster_groups(groups, config)
    logger.debug("Bookmaker coverage: %s", bookmaker_coverage(clusters))
    return rank_clusters(clusters, config)


def find_ev_opportunities(
    snapshot: Iterable[SnapshotItem],
    config: Optional[EngineConfig] = None,
) -> List[EVOpportunity]:
    """Ranked opportunities only; see :func:`run_pipeline`."""
    return run_pipeline(snapshot, config).opportunities
