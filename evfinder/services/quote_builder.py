"""
Quote assembly — raw collaborator payloads → validated :class:`Quote` objects.

Two input shapes are supported:

  quotes_from_records(records)
      Already-paired records (one dict per bookmaker line with over and
      optional under price).  This is the engine's primary input contract.

  quotes_from_selections(rows, config)
      Per-side rows as odds feeds deliver them (one dict per bookmaker /
      subject / market / line / side).  Rows for the same bookmaker line
      are paired into a single two-sided Quote.

Both are skip-and-continue: a malformed record is logged at DEBUG and
dropped, and the rest of the snapshot is processed normally.
"""

import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from evfinder.core.engine_config import EngineConfig
from evfinder.core.models import Quote, book_key
from evfinder.core.odds_math import american_to_decimal, is_valid_decimal
from evfinder.schemas import QuoteRecord, SelectionRow
from evfinder.services.line_normalizer import normalize_line
from evfinder.services.subject_mapping import normalize_subject, resolve_market_key

logger = logging.getLogger(__name__)

# Line assumed for yes/no props that arrive without one ("to score" ≡ over 0.5).
_ONE_WAY_DEFAULT_LINE = 0.5

_OVER_SIDES = frozenset({"over", "home", "yes"})


def quote_from_record(record: QuoteRecord) -> Quote:
    """Build a Quote from a validated record."""
    return Quote(
        subject=record.subject,
        market_key=record.market_key,
        market_type=record.market_type,
        line=record.line,
        normalized_line=normalize_line(record.line, record.market_type),
        over_odds=record.over_odds,
        under_odds=record.under_odds,
        bookmaker=record.bookmaker,
        observed_at=record.timestamp,
    )


def _finite(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def quote_problem(quote: Quote) -> Optional[str]:
    """Reason a prebuilt Quote cannot be priced, or None if it is sound."""
    if not is_valid_decimal(quote.over_odds):
        return f"over_odds {quote.over_odds!r} is not a decimal price > 1.0"
    if quote.under_odds is not None and not is_valid_decimal(quote.under_odds):
        return f"under_odds {quote.under_odds!r} is not a decimal price > 1.0"
    if not _finite(quote.line) or not _finite(quote.normalized_line):
        return f"line {quote.line!r} is not a finite number"
    return None


def quotes_from_records(records: Iterable[Mapping]) -> List[Quote]:
    """
    Validate and convert flat quote records, preserving input order.

    Records that fail :class:`~evfinder.schemas.QuoteRecord` validation
    (missing or non-numeric odds, odds ≤ 1, unparsable lines, unknown
    market type) are dropped.  Prebuilt :class:`Quote` objects are checked
    with :func:`quote_problem` and dropped on the same terms.
    """
    quotes: List[Quote] = []
    dropped = 0

    for idx, raw in enumerate(records):
        if isinstance(raw, Quote):
            problem = quote_problem(raw)
            if problem:
                dropped += 1
                logger.debug("Dropping quote #%d (%s): %s", idx, raw.bookmaker, problem)
                continue
            quotes.append(raw)
            continue
        try:
            record = QuoteRecord.model_validate(raw)
        except ValidationError as e:
            dropped += 1
            logger.debug("Dropping quote record #%d: %s", idx, e.errors()[0].get("msg"))
            continue
        quotes.append(quote_from_record(record))

    if dropped:
        logger.info("Quote records: %d accepted, %d dropped as malformed", len(quotes), dropped)
    return quotes


def _row_decimal(row: SelectionRow) -> float:
    if row.price is not None:
        return row.price
    return american_to_decimal(row.american)


def quotes_from_selections(
    rows: Iterable[Mapping],
    config: Optional[EngineConfig] = None,
) -> List[Quote]:
    """
    Pair per-side selection rows into two-sided Quotes.

    Rows are keyed by ``(normalized subject, market key, normalized line,
    bookmaker)``.  The first row seen for a key fixes the Quote's position
    in the output; later rows fill in the missing side.  A repeated side is
    dropped, so the first price wins, matching the duplicate rule in
    :func:`~evfinder.services.grouping.group_quotes`.  A key that never
    receives an over/home/yes price is discarded: the over side is mandatory.
    Two-way rows without a line are dropped; one-way rows default to 0.5.

    Args:
        rows:   Dicts matching :class:`~evfinder.schemas.SelectionRow`.
        config: Supplies the market registry; defaults to
                :meth:`EngineConfig.default`.
    """
    config = config or EngineConfig.default()

    # (subject, market, line, book) → Quote kwargs, in first-seen order
    pending: Dict[Tuple[str, str, float, str], dict] = {}
    dropped = 0

    for idx, raw in enumerate(rows):
        try:
            row = SelectionRow.model_validate(raw)
        except ValidationError as e:
            dropped += 1
            logger.debug("Dropping selection row #%d: %s", idx, e.errors()[0].get("msg"))
            continue

        market = resolve_market_key(row.market, config.markets)
        if market is None:
            dropped += 1
            logger.debug("Dropping selection row #%d: unknown market %r", idx, row.market)
            continue

        side = row.side
        if side is None and market.is_one_way:
            side = "yes"
        if side is None:
            dropped += 1
            logger.debug("Dropping selection row #%d: no side on two-way market %s", idx, market.key)
            continue

        if row.line is None and not market.is_one_way:
            dropped += 1
            logger.debug("Dropping selection row #%d: no line on two-way market %s", idx, market.key)
            continue
        raw_line = row.line if row.line is not None else _ONE_WAY_DEFAULT_LINE
        line = normalize_line(raw_line, market.market_type)
        key = (normalize_subject(row.subject), market.key, line, book_key(row.bookmaker))

        entry = pending.setdefault(key, {
            "subject": row.subject.strip(),
            "market_key": market.key,
            "market_type": market.market_type,
            "line": raw_line,
            "normalized_line": line,
            "over_odds": None,
            "under_odds": None,
            "bookmaker": row.bookmaker.strip(),
            "observed_at": row.timestamp,
        })

        # An under price on a one-way prop is kept: that book can then be
        # de-vigged directly by the ranking engine.
        slot = "over_odds" if side in _OVER_SIDES else "under_odds"
        if entry[slot] is not None:
            dropped += 1
            logger.debug("Dropping selection row #%d: repeated %s price for %s", idx, side, key)
            continue
        entry[slot] = _row_decimal(row)
        if entry["observed_at"] is None:
            entry["observed_at"] = row.timestamp

    quotes: List[Quote] = []
    for entry in pending.values():
        if entry["over_odds"] is None:
            dropped += 1
            continue
        quotes.append(Quote(**entry))

    logger.info(
        "Selections: %d quotes assembled, %d rows/keys dropped", len(quotes), dropped
    )
    return quotes
