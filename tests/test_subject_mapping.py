"""
Tests for subject normalization and market label resolution
Run with: pytest tests/test_subject_mapping.py -v
"""

import logging

from evfinder.services.subject_mapping import normalize_subject, resolve_market_key


class TestNormalizeSubject:
    """Grouping key for player / match labels"""

    def test_diacritics_and_annotations(self):
        assert normalize_subject("Kylian Mbappé (2)") == "kylian mbappe"

    def test_jersey_and_punctuation(self):
        assert normalize_subject("  B.  Saka #7 ") == "b saka"

    def test_position_tag(self):
        assert normalize_subject("Alisson [GK]") == "alisson"

    def test_same_player_across_books(self):
        assert normalize_subject("Kylian Mbappe") == normalize_subject("KYLIAN MBAPPÉ")


class TestResolveMarketKey:
    """Provider labels to canonical market keys"""

    def test_canonical_key(self):
        assert resolve_market_key("totals").key == "totals"

    def test_alias(self):
        assert resolve_market_key("total_goals").key == "totals"
        assert resolve_market_key("Player Shots On Target").key == "player_sot"

    def test_separator_insensitive(self):
        assert resolve_market_key("player-shots-on-target").key == "player_sot"
        assert resolve_market_key("ANYTIME GOALSCORER").key == "goalscorer"

    def test_shorter_label_keeps_its_own_market(self):
        assert resolve_market_key("Player Shots").key == "player_shots"

    def test_fuzzy_typo(self):
        assert resolve_market_key("goalkeeper savess").key == "goalkeeper_saves"

    def test_substring_guard(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert resolve_market_key("anytime goalscorer odds") is None
        assert "Substring guard" in caplog.text

    def test_unknown_and_blank(self):
        assert resolve_market_key("zzz qqq") is None
        assert resolve_market_key("   ") is None
