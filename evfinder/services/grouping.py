"""
Quote grouping — bucket a flat snapshot by subject identity and market.

Groups are keyed by ``(normalize_subject(subject), market_key)`` so that
"Kylian Mbappé" at one book and "Kylian Mbappe (2)" at another land in the
same bucket.  Distinct lines stay together in a group; separating them
is the clusterer's job.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from evfinder.core.models import Quote
from evfinder.services.subject_mapping import normalize_subject

logger = logging.getLogger(__name__)

GroupKey = Tuple[str, str]


def group_key(quote: Quote) -> GroupKey:
    return normalize_subject(quote.subject), quote.market_key


def group_quotes(quotes: Iterable[Quote]) -> Dict[GroupKey, List[Quote]]:
    """
    Group quotes by normalized subject and market key.

    Within a group, a quote whose bookmaker *and* normalized line repeat an
    earlier quote is dropped (first one wins).  Group and member order
    follow first appearance in the input.
    """
    groups: Dict[GroupKey, List[Quote]] = {}
    seen: Dict[GroupKey, set] = {}
    duplicates = 0

    for quote in quotes:
        key = group_key(quote)
        members = groups.setdefault(key, [])
        identity = (quote.book, quote.normalized_line)
        seen_here = seen.setdefault(key, set())
        if identity in seen_here:
            duplicates += 1
            continue
        seen_here.add(identity)
        members.append(quote)

    logger.info(
        "Grouping: %d subject/market groups (%d duplicate quotes dropped)",
        len(groups), duplicates,
    )
    return groups
