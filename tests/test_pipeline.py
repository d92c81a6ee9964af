"""
End-to-end tests for the ranking pipeline
Run with: pytest tests/test_pipeline.py -v
"""

import json

import pytest
from evfinder.core.devig import devig
from evfinder.core.engine_config import EngineConfig
from evfinder.core.markets import MarketType
from evfinder.core.models import BetSide, Quote
from evfinder.services.pipeline import find_ev_opportunities, run_pipeline


def _record(book, over, under=None, line=10.5, subject="Arsenal v Chelsea",
            market_key="corners_totals", market_type="totals"):
    record = {
        "subject": subject,
        "marketKey": market_key,
        "marketType": market_type,
        "line": line,
        "overOdds": over,
        "bookmaker": book,
        "timestamp": "2026-03-01T19:45:00+00:00",
    }
    if under is not None:
        record["underOdds"] = under
    return record


def _snapshot():
    return [
        _record("RefOne", 2.05, 1.95),
        _record("RefTwo", 2.00, 2.00),
        _record("Playable", 2.30),
    ]


class TestEndToEnd:
    """Two reference books and one playable book on Over 10.5"""

    def test_playable_book_has_positive_ev(self):
        config = EngineConfig(sharp_books=(), playable_books={"Playable"})
        result = run_pipeline(_snapshot(), config)

        assert len(result.opportunities) == 1
        opp = result.opportunities[0]
        assert opp.bookmaker == "Playable"
        assert opp.side is BetSide.OVER
        assert opp.line == 10.5
        assert opp.ev_percent > 0

        fair_one = 1 / devig(2.05, 1.95).fair_prob_a
        fair_two = 1 / devig(2.00, 2.00).fair_prob_a
        low, high = sorted([fair_one, fair_two])
        assert low <= opp.fair_odds <= high

    def test_whole_number_line_joins_cluster(self):
        snapshot = _snapshot()
        snapshot[2]["line"] = 10
        config = EngineConfig(sharp_books=(), playable_books={"Playable"})

        assert len(find_ev_opportunities(snapshot, config)) == 1

    def test_idempotent(self):
        config = EngineConfig(sharp_books=())
        first = run_pipeline(_snapshot(), config)
        second = run_pipeline(_snapshot(), config)

        assert [o.to_dict() for o in first.all_lines] == [o.to_dict() for o in second.all_lines]
        assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())

    @pytest.mark.parametrize("method", ["multiplicative", "power", "additive", "worstCase", "shin"])
    def test_method_rerun(self, method):
        config = EngineConfig(sharp_books=(), playable_books={"Playable"}).with_method(method)

        opportunities = find_ev_opportunities(_snapshot(), config)
        assert opportunities
        assert opportunities[0].bookmaker == "Playable"


class TestRobustness:
    """Skip-and-continue on bad data"""

    def test_empty_snapshot(self):
        result = run_pipeline([])

        assert result.opportunities == []
        assert result.all_lines == []

    def test_malformed_records_do_not_block(self):
        snapshot = _snapshot() + [
            {"subject": "broken"},
            _record("Bad", 0.5),
            _record("Nan", float("nan")),
        ]
        config = EngineConfig(sharp_books=(), playable_books={"Playable"})

        assert len(find_ev_opportunities(snapshot, config)) == 1

    def test_mislabeled_market_filtered_as_outlier(self):
        snapshot = _snapshot() + [_record("FirstHalf", 9.5, 1.05)]
        config = EngineConfig(sharp_books=())

        result = run_pipeline(snapshot, config)
        assert all(o.bookmaker != "FirstHalf" for o in result.all_lines)

    def test_subject_spelling_variants_cluster_together(self):
        snapshot = [
            _record("RefOne", 2.05, 1.95, subject="Kylian Mbappé", market_key="player_shots",
                    market_type="player-one-way", line=2.5),
            _record("RefTwo", 2.00, 2.00, subject="Kylian Mbappe (2)", market_key="player_shots",
                    market_type="player-one-way", line=2.5),
            _record("Playable", 2.30, subject="KYLIAN MBAPPE", market_key="player_shots",
                    market_type="player-one-way", line=2.5),
        ]
        config = EngineConfig(sharp_books=(), playable_books={"Playable"})

        opportunities = find_ev_opportunities(snapshot, config)
        assert len(opportunities) == 1
        assert opportunities[0].side is BetSide.YES
        assert opportunities[0].books_backing == 3

    def test_unpriceable_quote_objects_skipped(self):
        def quote(book, over, under):
            return Quote("Arsenal v Chelsea", "totals", MarketType.TOTALS, 2.5, 2.5, over, book, under)

        snapshot = [
            quote("BookA", 1.90, 1.90),
            quote("BookB", 1.95, 1.90),
            quote("Bad", 2.00, 1.0),
            quote("Worse", 2.10, 0.0),
        ]
        result = run_pipeline(snapshot, EngineConfig(sharp_books=()))

        assert {o.bookmaker for o in result.all_lines} == {"BookA", "BookB"}
