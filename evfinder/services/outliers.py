"""
Price outlier rejection inside a candidate cluster.

A price far from the cluster median is almost never a quoting error; it is
a different market that happens to share a line, typically a first-half
total filed under the full-match key.  Such quotes are removed before the
cluster is finalized.

A price is an outlier when ``price / median > high_ratio`` (default 1.8)
or ``price / median < low_ratio`` (default 0.55).
"""

import logging
from typing import List, Sequence

import numpy as np

from evfinder.core.engine_config import DEFAULT_OUTLIER_HIGH_RATIO, DEFAULT_OUTLIER_LOW_RATIO
from evfinder.core.models import Quote

logger = logging.getLogger(__name__)


def outlier_mask(
    prices: Sequence[float],
    high_ratio: float = DEFAULT_OUTLIER_HIGH_RATIO,
    low_ratio: float = DEFAULT_OUTLIER_LOW_RATIO,
) -> List[bool]:
    """
    Flag each price that deviates implausibly from the median of ``prices``.

    With fewer than two prices nothing is flagged.

        outlier_mask([1.9, 2.0, 2.1, 9.5]) → [False, False, False, True]
    """
    if len(prices) < 2:
        return [False] * len(prices)

    median = float(np.median(np.asarray(prices, dtype=float)))
    ratios = np.asarray(prices, dtype=float) / median
    return [bool(r > high_ratio or r < low_ratio) for r in ratios]


def filter_outliers(
    quotes: Sequence[Quote],
    high_ratio: float = DEFAULT_OUTLIER_HIGH_RATIO,
    low_ratio: float = DEFAULT_OUTLIER_LOW_RATIO,
) -> List[Quote]:
    """
    Remove quotes whose over/primary-side price is an outlier.

    The median is taken over the over-side prices of ``quotes``; order of
    the surviving quotes is preserved.
    """
    mask = outlier_mask([q.over_odds for q in quotes], high_ratio, low_ratio)
    kept: List[Quote] = []
    for quote, is_outlier in zip(quotes, mask):
        if is_outlier:
            logger.debug(
                "Excluding outlier: %s %s line %s @ %.3f",
                quote.bookmaker, quote.market_key, quote.line, quote.over_odds,
            )
            continue
        kept.append(quote)
    return kept
