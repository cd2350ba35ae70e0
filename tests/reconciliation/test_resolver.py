"""
Tests for CrossMarketBrandResolver - matching, dedup and verified fallback.
"""

import logging

import pytest

from crossmarket.reconciliation.resolver import CrossMarketBrandResolver, pick_representative
from crossmarket.reconciliation.types import MatchMode, ScoreRecord


@pytest.fixture
def resolver():
    return CrossMarketBrandResolver(fallback_brands=[])


def make_record(brand, country, year=2024, score=50.0, row_id=None):
    return ScoreRecord(brand=brand, country=country, year=year, score=score, row_id=row_id)


def records_for(country, brands, year=2024):
    return [make_record(brand, country, year) for brand in brands]


class TestMatching:

    def test_strict_intersection(self, resolver):
        records = records_for("A", ["x", "y", "z"]) + records_for("B", ["y", "z", "w"])

        resolution = resolver.resolve(["A", "B"], records, MatchMode.ALL_COUNTRIES)

        assert resolution.brand_keys == ["y", "z"]
        assert resolution.countries == ["A", "B"]

    def test_strict_intersection_with_default_fallback_list(self):
        records = records_for("A", ["x", "y", "z"]) + records_for("B", ["y", "z", "w"])

        resolution = CrossMarketBrandResolver().resolve(["A", "B"], records)

        assert set(resolution.brand_keys) == {"y", "z"}
        assert resolution.fallback_added == []

    def test_partial_mode_orders_by_country_count(self, resolver):
        records = (
            records_for("A", ["y", "z", "q"])
            + records_for("B", ["y", "z"])
            + records_for("C", ["y", "x"])
        )

        partial = resolver.resolve(["A", "B", "C"], records, MatchMode.AT_LEAST_TWO)
        strict = resolver.resolve(["A", "B", "C"], records, MatchMode.ALL_COUNTRIES)

        assert partial.brand_keys == ["y", "z"]
        assert partial.matches["z"].country_count == 2
        assert partial.matches["z"].records["C"] is None
        assert not partial.matches["z"].is_complete
        assert strict.brand_keys == ["y"]

    def test_single_country_returns_all_its_brands(self, resolver):
        records = records_for("SE", ["Volvo", "IKEA", "Saab"]) + records_for("NO", ["Rema 1000"])

        resolution = resolver.resolve(["SE"], records)

        assert resolution.brand_keys == ["ikea", "saab", "volvo"]

    def test_spelling_variants_match(self, resolver):
        records = [
            make_record("H&M", "SE"), make_record("h & m", "NO"),
            make_record("McDonald's", "SE"), make_record("McDonalds", "NO"),
        ]

        resolution = resolver.resolve(["SE", "NO"], records)

        assert resolution.brand_keys == ["hm", "mcdonalds"]
        assert resolution.display_names() == {"hm": "H&M", "mcdonalds": "McDonald's"}

    def test_country_names_canonicalized(self, resolver):
        records = records_for("SE", ["Volvo"]) + records_for("NO", ["Volvo"])

        resolution = resolver.resolve(["Sweden", "norway", "SE"], records)

        assert resolution.countries == ["SE", "NO"]
        assert resolution.brand_keys == ["volvo"]

    @pytest.mark.parametrize("countries", [None, [], [None, ""]])
    def test_no_countries_gives_empty_result(self, countries):
        resolver = CrossMarketBrandResolver(fallback_brands=["Volvo"])

        resolution = resolver.resolve(countries, records_for("SE", ["Volvo"]))

        assert resolution.is_empty
        assert resolution.fallback_added == []

    def test_no_records(self, resolver):
        resolution = resolver.resolve(["SE", "NO"], None)

        assert resolution.is_empty
        assert resolution.countries == ["SE", "NO"]


class TestRepresentatives:

    def test_highest_score_wins(self, resolver):
        records = [
            make_record("Volvo", "SE", 2024, 40), make_record("VOLVO", "SE", 2024, 55),
            make_record("Volvo", "NO", 2024, 60),
        ]

        resolution = resolver.resolve(["SE", "NO"], records)

        assert resolution.representative("volvo", "SE", 2024).score == 55
        assert resolution.representative("volvo", "SE").score == 55
        assert len(resolution.duplicates) == 1
        duplicate = resolution.duplicates[0]
        assert (duplicate.country, duplicate.year) == ("SE", 2024)
        assert duplicate.kept_score == 55
        assert duplicate.discarded_scores == [40]

    def test_yearly_representatives(self, resolver):
        records = [
            make_record("Volvo", "SE", 2023, 61), make_record("Volvo", "SE", 2024, 58),
            make_record("Volvo", "NO", 2024, 60),
        ]

        match = resolver.resolve(["SE", "NO"], records).matches["volvo"]

        assert match.years() == [2023, 2024]
        assert match.yearly["SE"][2023].score == 61
        assert 2023 not in match.yearly["NO"]
        # (brand, country) representative: best over all years
        assert match.records["SE"].score == 61

    def test_unknown_accessor_lookups(self, resolver):
        resolution = resolver.resolve(["SE"], records_for("SE", ["Volvo"]))

        assert resolution.representative("saab", "SE") is None
        assert resolution.representative("volvo", "NO") is None
        assert resolution.representative("volvo", "SE", 1999) is None

    def test_duplicates_logged_to_audit_logger(self, caplog):
        audit = logging.getLogger("test.reconciliation.audit")
        resolver = CrossMarketBrandResolver(fallback_brands=[], audit_logger=audit)
        records = [make_record("Volvo", "SE", 2024, 40), make_record("Volvo", "SE", 2024, 55)]

        with caplog.at_level(logging.INFO, logger="test.reconciliation.audit"):
            resolver.resolve(["SE"], records)

        messages = [r.message for r in caplog.records if r.name == "test.reconciliation.audit"]
        assert len(messages) == 1
        assert "volvo/SE/2024" in messages[0]


class TestPickRepresentative:

    def test_none_loses(self):
        records = [make_record("A", "SE", score=None, row_id=1), make_record("A", "SE", score=3, row_id=2)]

        winner, discarded = pick_representative(records)

        assert winner.row_id == 2
        assert [r.row_id for r in discarded] == [1]

    def test_tie_keeps_first_seen(self):
        records = [make_record("A", "SE", score=50, row_id=1), make_record("A", "SE", score=50, row_id=2)]

        winner, _ = pick_representative(records)

        assert winner.row_id == 1

    def test_empty(self):
        assert pick_representative([]) == (None, [])


class TestFallback:

    def test_unverified_fallback_brand_not_added(self):
        all_records = (
            records_for("SE", ["IKEA", "Volvo", "Foo"])
            + records_for("NO", ["Volvo", "Foo"])
        )
        candidates = records_for("SE", ["Foo"]) + records_for("NO", ["Foo"])
        resolver = CrossMarketBrandResolver(fallback_brands=["IKEA", "Volvo", "Nike"])

        resolution = resolver.resolve(["SE", "NO"], all_records, candidate_records=candidates)

        assert resolution.brand_keys == ["foo", "volvo"]
        assert resolution.fallback_added == ["volvo"]
        assert resolution.matches["volvo"].is_fallback
        assert not resolution.matches["foo"].is_fallback
        assert "ikea" not in resolution.matches

    def test_fallback_only_below_threshold(self):
        all_records = records_for("SE", ["A", "B", "Volvo"]) + records_for("NO", ["A", "B", "Volvo"])
        candidates = records_for("SE", ["A", "B"]) + records_for("NO", ["A", "B"])
        resolver = CrossMarketBrandResolver(fallback_brands=["Volvo"])

        below = resolver.resolve(["SE", "NO"], all_records, fallback_threshold=3, candidate_records=candidates)
        reached = resolver.resolve(["SE", "NO"], all_records, fallback_threshold=2, candidate_records=candidates)

        assert below.fallback_added == ["volvo"]
        assert reached.fallback_added == []

    def test_no_fallback_for_single_country(self):
        resolver = CrossMarketBrandResolver(fallback_brands=["Volvo"])
        candidates = records_for("SE", ["Foo"])

        resolution = resolver.resolve(["SE"], records_for("SE", ["Foo", "Volvo"]), candidate_records=candidates)

        assert resolution.brand_keys == ["foo"]

    def test_fallback_disabled(self):
        resolver = CrossMarketBrandResolver(fallback_brands=["Volvo"], fallback_enabled=False)
        all_records = records_for("SE", ["Volvo"]) + records_for("NO", ["Volvo"])

        resolution = resolver.resolve(["SE", "NO"], all_records, candidate_records=[])

        assert resolution.is_empty

    def test_fallback_matches_spelling_variants(self):
        all_records = [make_record("Pull and Bear", "SE"), make_record("PULL & BEAR", "NO")]
        resolver = CrossMarketBrandResolver(fallback_brands=["Pull & Bear"])

        resolution = resolver.resolve(["SE", "NO"], all_records, candidate_records=[])

        assert resolution.fallback_added == ["pull&bear"]
        assert resolution.matches["pull&bear"].display_name == "Pull & Bear"

    def test_fallback_never_duplicates_natural_matches(self):
        all_records = records_for("SE", ["Volvo"]) + records_for("NO", ["Volvo"])
        resolver = CrossMarketBrandResolver(fallback_brands=["Volvo", "VOLVO"])

        resolution = resolver.resolve(["SE", "NO"], all_records)

        assert resolution.brand_keys == ["volvo"]
        assert resolution.fallback_added == []

    def test_fallback_disabled_for_one_call(self):
        all_records = records_for("SE", ["A", "Volvo"]) + records_for("NO", ["A", "Volvo"])
        candidates = records_for("SE", ["A"]) + records_for("NO", ["A"])
        resolver = CrossMarketBrandResolver(fallback_brands=["Volvo"])

        disabled = resolver.resolve(["SE", "NO"], all_records, candidate_records=candidates, fallback_enabled=False)
        default = resolver.resolve(["SE", "NO"], all_records, candidate_records=candidates)

        assert disabled.brand_keys == ["a"]
        assert disabled.fallback_added == []
        assert default.fallback_added == ["volvo"]

    def test_fallback_enabled_for_one_call(self):
        all_records = records_for("SE", ["A", "Volvo"]) + records_for("NO", ["A", "Volvo"])
        candidates = records_for("SE", ["A"]) + records_for("NO", ["A"])
        resolver = CrossMarketBrandResolver(fallback_brands=["Volvo"], fallback_enabled=False)

        resolution = resolver.resolve(["SE", "NO"], all_records, candidate_records=candidates, fallback_enabled=True)

        assert resolution.fallback_added == ["volvo"]
