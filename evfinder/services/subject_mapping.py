"""
Subject and market-label normalization.
This is the single source of truth for deciding that two books are
talking about the same player and the same market.

Subjects
--------
Books disagree on accents ("Kylian Mbappé" vs "Kylian Mbappe"), on
case, and on annotations ("Bukayo Saka (1)", "B. Saka #7").  Grouping is
done on :func:`normalize_subject`, never on the raw string.

Markets
-------
Provider market labels ("total_goals", "Player Shots On Target",
"player_sot") resolve to canonical keys through
:func:`resolve_market_key`: exact alias hit first, then a normalized
exact match, then a guarded rapidfuzz fallback.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Iterable, Optional

from rapidfuzz import fuzz, process

from evfinder.core.markets import DEFAULT_MARKETS, MarketDefinition

logger = logging.getLogger(__name__)

# "(1)", "(2)" team indicators, "#7" jersey numbers, "[GK]" position tags
_ANNOTATION_RE = re.compile(r"\(\s*[^)]*\)|\[[^\]]*\]|#\s*\d+")
_NON_ALPHA_RE = re.compile(r"[^a-z\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_LABEL_SEP_RE = re.compile(r"[_\-\s/]+")

# Fuzzy cut-off for market labels.  Market names are short and many share
# tokens ("Player Shots" / "Player Shots on Target"), so only near-exact
# matches are accepted.
_MARKET_FUZZY_CUTOFF = 90


def normalize_subject(name: str) -> str:
    """
    Canonical grouping key for a player or match label.

    Strips team/jersey annotations, case-folds, removes diacritics, drops
    anything that is not a letter or a space, and collapses whitespace.

        normalize_subject("Kylian Mbappé (2)")  → "kylian mbappe"
        normalize_subject("  B.  Saka #7 ")     → "b saka"
    """
    normalized = _ANNOTATION_RE.sub(" ", name)
    normalized = normalized.casefold()
    normalized = unicodedata.normalize("NFKD", normalized)
    normalized = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    normalized = _NON_ALPHA_RE.sub("", normalized)
    return _WHITESPACE_RE.sub(" ", normalized).strip()


def _label_key(label: str) -> str:
    return _LABEL_SEP_RE.sub(" ", label.casefold()).strip()


def _is_dangerous_substring_match(query: str, matched: str) -> bool:
    """
    Returns True when a fuzzy match is likely a false positive.

    token_set_ratio scores "player shots" against "player shots on target"
    at 100 because one token set contains the other.  When one label is a
    bare substring of the other and the character-level ratio is low, the
    match is rejected: the extra tokens name a different market.
    """
    if matched in query or query in matched:
        if fuzz.ratio(query, matched) < 90:
            return True
    return False


def resolve_market_key(
    label: str,
    markets: Iterable[MarketDefinition] = DEFAULT_MARKETS,
) -> Optional[MarketDefinition]:
    """
    Finds the market definition a provider label refers to.

    Args:
        label: Raw market label or key from a feed.
        markets: Registry to resolve against.

    Returns:
        The matching :class:`MarketDefinition`, or None if no confident
        match exists.
    """
    label = label.strip()
    if not label:
        return None
    markets = tuple(markets)

    # Strategy 1: canonical key or alias, verbatim
    for market in markets:
        if label == market.key or label in market.aliases:
            return market

    # Strategy 2: separator/case-insensitive exact match
    wanted = _label_key(label)
    choices: dict[str, MarketDefinition] = {}
    for market in markets:
        for candidate in (market.key, market.label, *market.aliases):
            choices.setdefault(_label_key(candidate), market)
    if wanted in choices:
        return choices[wanted]

    # Strategy 3: fuzzy fallback
    result = process.extractOne(
        wanted, list(choices), scorer=fuzz.token_set_ratio, score_cutoff=_MARKET_FUZZY_CUTOFF
    )
    if result and _is_dangerous_substring_match(wanted, result[0]):
        logger.warning("Substring guard blocked market match '%s' → '%s'", label, result[0])
        result = None

    if result:
        logger.debug("Fuzzy matched market '%s' to '%s' (score %s)", label, result[0], result[1])
        return choices[result[0]]

    return None
