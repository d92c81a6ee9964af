"""
Tests for input validation and quote assembly
Run with: pytest tests/test_quote_builder.py -v
"""

import pytest
from pydantic import ValidationError

from evfinder.core.markets import MarketType
from evfinder.core.models import Quote
from evfinder.schemas import QuoteRecord, SelectionRow
from evfinder.services.quote_builder import (
    quote_problem,
    quotes_from_records,
    quotes_from_selections,
)


def _record(**overrides):
    record = {
        "subject": "Erling Haaland",
        "marketKey": "player_shots",
        "marketType": "player-one-way",
        "line": 3,
        "overOdds": 2.10,
        "bookmaker": "Bet365",
    }
    record.update(overrides)
    return record


def _row(**overrides):
    row = {
        "subject": "Arsenal v Chelsea",
        "market": "total_goals",
        "line": 2.5,
        "side": "over",
        "price": 1.95,
        "sportsbook": "Pinnacle",
    }
    row.update(overrides)
    return row


class TestSchemas:
    """Pydantic input contract"""

    def test_camel_and_snake_case(self):
        camel = QuoteRecord.model_validate(_record())
        snake = QuoteRecord.model_validate({
            "subject": "Erling Haaland", "market_key": "player_shots",
            "market_type": "player-one-way", "line": 3, "over_odds": 2.10,
            "bookmaker": "Bet365",
        })
        assert camel == snake
        assert camel.market_type is MarketType.PLAYER_ONE_WAY

    @pytest.mark.parametrize("bad", [
        {"overOdds": 1.0},
        {"overOdds": float("nan")},
        {"underOdds": 0.0},
        {"line": float("inf")},
        {"line": "abc"},
        {"marketType": "moneyline"},
        {"bookmaker": "   "},
    ])
    def test_rejects_bad_records(self, bad):
        with pytest.raises(ValidationError):
            QuoteRecord.model_validate(_record(**bad))

    def test_selection_needs_exactly_one_price(self):
        with pytest.raises(ValidationError):
            SelectionRow.model_validate(_row(american=-110))
        with pytest.raises(ValidationError):
            SelectionRow.model_validate(_row(price=None))

    def test_selection_rejects_small_american(self):
        with pytest.raises(ValidationError):
            SelectionRow.model_validate(_row(price=None, american=50))

    def test_selection_side_is_lowercased(self):
        assert SelectionRow.model_validate(_row(side="OVER")).side == "over"


class TestQuotesFromRecords:
    """Skip-and-continue conversion of flat records"""

    def test_valid_record(self):
        quotes = quotes_from_records([_record()])

        assert len(quotes) == 1
        assert quotes[0].line == 3
        assert quotes[0].normalized_line == 3.5
        assert quotes[0].under_odds is None

    def test_malformed_records_dropped(self):
        records = [
            _record(bookmaker="A"),
            _record(bookmaker="B", overOdds=None),
            _record(bookmaker="C", overOdds=0.95),
            {"subject": "no odds at all"},
            _record(bookmaker="D"),
        ]
        quotes = quotes_from_records(records)

        assert [q.bookmaker for q in quotes] == ["A", "D"]

    def test_quote_objects_pass_through(self):
        quote = Quote("X", "totals", MarketType.TOTALS, 2.5, 2.5, 1.9, "Book", 1.9)

        assert quotes_from_records([quote]) == [quote]

    def test_timestamp_parsed(self):
        quotes = quotes_from_records([_record(timestamp="2026-03-01T19:45:00Z")])

        assert quotes[0].observed_at.year == 2026


class TestQuotesFromSelections:
    """Per-side rows paired into two-sided quotes"""

    def test_pairs_over_and_under(self):
        quotes = quotes_from_selections([
            _row(side="over", price=1.95),
            _row(side="under", price=1.90),
        ])

        assert len(quotes) == 1
        quote = quotes[0]
        assert quote.market_key == "totals"
        assert quote.over_odds == 1.95
        assert quote.under_odds == 1.90
        assert quote.bookmaker == "Pinnacle"

    def test_american_prices(self):
        quotes = quotes_from_selections([
            _row(side="over", price=None, american=-110),
            _row(side="under", price=None, american=+105),
        ])

        assert quotes[0].over_odds == pytest.approx(1.9091, abs=1e-4)
        assert quotes[0].under_odds == pytest.approx(2.05)

    def test_under_only_is_dropped(self):
        assert quotes_from_selections([_row(side="under")]) == []

    def test_one_way_without_side_or_line(self):
        quotes = quotes_from_selections([{
            "subject": "Bukayo Saka",
            "market": "Anytime Goal Scorer",
            "price": 3.4,
            "bookmaker": "Unibet",
        }])

        assert len(quotes) == 1
        assert quotes[0].market_key == "goalscorer"
        assert quotes[0].market_type is MarketType.PLAYER_ONE_WAY
        assert quotes[0].normalized_line == 0.5
        assert quotes[0].over_odds == 3.4

    def test_two_way_without_side_dropped(self):
        assert quotes_from_selections([_row(side=None)]) == []

    def test_unknown_market_dropped(self):
        assert quotes_from_selections([_row(market="zzz qqq")]) == []

    def test_keys_by_book_and_line(self):
        quotes = quotes_from_selections([
            _row(sportsbook="Pinnacle", line=2.5),
            _row(sportsbook="Bet365", line=2.5),
            _row(sportsbook="Pinnacle", line=3.5),
            _row(sportsbook="pinnacle", line=2, side="under", price=2.0),
        ])

        # whole-number 2 normalizes onto 2.5 and pairs with the first row
        assert len(quotes) == 3
        assert quotes[0].under_odds == 2.0
        assert quotes[0].line == 2.5

    def test_two_way_without_line_dropped(self):
        row = _row()
        del row["line"]

        assert quotes_from_selections([row]) == []

    def test_spread_without_line_dropped(self):
        row = _row(market="spreads", side="home")
        del row["line"]

        assert quotes_from_selections([row]) == []

    def test_repeated_side_keeps_first_price(self):
        quotes = quotes_from_selections([
            _row(side="over", price=1.95),
            _row(side="over", price=2.40),
            _row(side="under", price=1.90),
            _row(side="under", price=1.50),
        ])

        assert quotes[0].over_odds == 1.95
        assert quotes[0].under_odds == 1.90


class TestPrebuiltQuotes:
    """Quote objects handed straight to the builder are checked too"""

    def _quote(self, over=1.9, under=1.9, line=2.5):
        return Quote("Arsenal v Chelsea", "totals", MarketType.TOTALS, line, line, over, "Book", under)

    @pytest.mark.parametrize("bad", [
        {"over": 1.0},
        {"over": 0.5},
        {"over": float("nan")},
        {"under": 0.0},
        {"under": 1.0},
        {"line": float("inf")},
    ])
    def test_unpriceable_quote_dropped(self, bad):
        good = self._quote()

        assert quotes_from_records([good, self._quote(**bad)]) == [good]

    def test_one_sided_quote_kept(self):
        quote = self._quote(under=None)

        assert quote_problem(quote) is None
        assert quotes_from_records([quote]) == [quote]
