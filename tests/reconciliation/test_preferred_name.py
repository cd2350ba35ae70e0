"""
Tests for PreferredNameSelector - one display name per normalized brand.
"""

import pytest

from crossmarket.reconciliation.name_normalizer import NameNormalizer
from crossmarket.reconciliation.preferred_name import PreferredNameSelector


@pytest.fixture
def selector():
    return PreferredNameSelector(normalizer=NameNormalizer())


@pytest.fixture
def scoring_only():
    """Selector without canonical capitalizations."""
    return PreferredNameSelector(normalizer=NameNormalizer(), display_names={})


class TestScoring:

    @pytest.mark.parametrize("variant,expected", [
        ("Volvo", 3),                          # uppercase + spacing
        ("volvo", 0),                          # spacing - lowercase
        ("VOLVO", 3),
        ("McDonald's", 4),                     # + apostrophe
        ("Volvo AB", 4),                       # + corporate suffix
        ("Acme  Corp", 3),                     # double space, suffix
        ("The Very Long Brand Name Ltd", 3),   # suffix, too long
        ("   ", -100),
    ])
    def test_score(self, scoring_only, variant, expected):
        assert scoring_only.score(variant) == expected


class TestSelect:

    def test_canonical_capitalization_wins(self, selector):
        assert selector.select(["ikea", "Ikea"], "ikea") == "IKEA"
        assert selector.select(["Mcdonalds", "mcdonald's"], "mcdonalds") == "McDonald's"

    def test_override_applies_with_key_only(self, selector):
        assert selector.select([], "hm") == "H&M"

    def test_highest_score_wins(self, scoring_only):
        assert scoring_only.select(["volvo", "Volvo"], "volvo") == "Volvo"
        assert scoring_only.select(["Mcdonalds", "McDonald's"], "mcdonalds") == "McDonald's"

    def test_tie_keeps_first_seen(self, scoring_only):
        assert scoring_only.select(["VOLVO", "Volvo"], "volvo") == "VOLVO"
        assert scoring_only.select(["Volvo", "VOLVO"], "volvo") == "Volvo"

    def test_corporate_suffix_preferred(self, scoring_only):
        assert scoring_only.select(["acme inc", "Acme Inc"], "acmeinc") == "Acme Inc"

    def test_variants_of_other_keys_ignored(self, scoring_only):
        assert scoring_only.select(["Zara SA Group", "zara"], "zara") == "zara"

    def test_all_variants_used_when_none_match(self, scoring_only):
        assert scoring_only.select(["foo", "Foo"], "bar") == "Foo"

    def test_key_computed_when_missing(self, scoring_only):
        assert scoring_only.select(["burger king", "Burger King"]) == "Burger King"

    def test_empty_input(self, selector):
        assert selector.select([], "unknownbrand") == ""
        assert selector.select([None, "", "  "]) == ""

    def test_result_trimmed(self, scoring_only):
        assert scoring_only.select(["  Rema 1000 "], "rema1000") == "Rema 1000"


def test_select_all(selector):
    grouped = NameNormalizer().group_variants(["ikea", "Rema 1000", "IKEA", "rema 1000"])

    assert selector.select_all(grouped) == {"ikea": "IKEA", "rema1000": "Rema 1000"}
