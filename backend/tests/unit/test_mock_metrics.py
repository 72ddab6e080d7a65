"""
Unit tests for the deterministic synthetic metrics generator.
"""

import pytest

from adapters.keywords.mock_metrics import (
    DISABLED_REASON,
    FALLBACK_REASON,
    generate,
    string_hash,
    synthetic_values,
)
from core.domain.keyword import Competition, DataSource


class TestStringHash:
    """The hash must agree with the 32-bit ``h * 31 + c`` string hash."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("", 0),
            ("a", 97),
            ("ab", 3105),
            ("hello", 99162322),
            ("polygenelubricants", -2147483648),
        ],
    )
    def test_known_values(self, text, expected):
        assert string_hash(text) == expected

    def test_characters_outside_bmp_hash_as_surrogate_pairs(self):
        # U+1F600 is the pair D83D DE00
        assert string_hash("\U0001F600") == 0xD83D * 31 + 0xDE00

    def test_result_is_signed_32_bit(self):
        value = string_hash("a fairly long keyword phrase that overflows many times")
        assert -(2**31) <= value < 2**31


class TestSyntheticValues:
    def test_known_locale_values(self):
        assert synthetic_values("coffee shop", "US", "en") == (29475, Competition.HIGH)
        assert synthetic_values("bulk editor", "US", "en") == (13710, Competition.HIGH)
        assert synthetic_values("coffee shop", "DE", "de") == (36446, Competition.MEDIUM)

    def test_min_int_hash_stays_in_range(self):
        # abs(-2**31) must not go negative
        volume, _ = synthetic_values("polygenelubricants", "", "")
        assert 1000 <= volume <= 90999

    def test_spread_over_many_keywords(self):
        values = [synthetic_values(f"keyword {i}", "US", "en") for i in range(300)]
        volumes = {v for v, _ in values}
        levels = {c for _, c in values}

        assert all(1000 <= v <= 90999 for v in volumes)
        assert len(volumes) > 250
        assert levels == {Competition.LOW, Competition.MEDIUM, Competition.HIGH}


class TestGenerate:
    def test_deterministic_repeat(self):
        first = generate("coffee shop", "US", "en")
        second = generate("coffee shop", "US", "en")

        assert first.search_volume == second.search_volume
        assert first.competition == second.competition

    def test_locale_changes_values(self):
        us = generate("coffee shop", "US", "en")
        de = generate("coffee shop", "DE", "de")
        assert (us.search_volume, us.competition) != (de.search_volume, de.competition)

    def test_default_provenance_is_deterministic_mock(self):
        record = generate("bulk editor", "US", "en")

        assert record.provenance.source == DataSource.DETERMINISTIC_MOCK
        assert record.provenance.cached is False
        assert record.provenance.reason == DISABLED_REASON
        assert record.competition_index is None
        assert record.avg_cpc_micros is None
        assert record.monthly_search_volumes is None

    def test_fallback_provenance(self):
        record = generate("bulk editor", "US", "en", DataSource.FALLBACK_MOCK)

        assert record.provenance.source == DataSource.FALLBACK_MOCK
        assert record.provenance.reason == FALLBACK_REASON

    def test_custom_reason(self):
        record = generate("bulk editor", "US", "en", DataSource.FALLBACK_MOCK, "timed out")
        assert record.provenance.reason == "timed out"

    def test_cannot_claim_provider_source(self):
        with pytest.raises(ValueError):
            generate("bulk editor", "US", "en", DataSource.EXTERNAL_API)

    def test_to_dict(self):
        data = generate("coffee shop", "US", "en").to_dict()

        assert data["keyword"] == "coffee shop"
        assert data["search_volume"] == 29475
        assert data["competition"] == "HIGH"
        assert data["provenance"]["source"] == "mock_deterministic"
