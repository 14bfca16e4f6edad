import pytest

from app.location_service.autocomplete import (
    AutocompleteMatcher,
    MatchTier,
    match_tier,
    normalize_query,
)
from app.models.city import CatalogSnapshot


def names(matches):
    return [match.record.name for match in matches]


def test_normalize_query():
    assert normalize_query("  MuMbai ") == "mumbai"
    assert normalize_query(None) == ""


def test_prefix_match(sample_snapshot):
    matches = AutocompleteMatcher().match(sample_snapshot, "mum")
    assert names(matches) == ["Mumbai"]
    assert matches[0].tier is MatchTier.prefix


def test_exact_match_on_region(sample_snapshot):
    matches = AutocompleteMatcher().match(sample_snapshot, "Delhi")
    assert names(matches) == ["Delhi"]
    assert matches[0].tier is MatchTier.exact


def test_region_match_returns_all_cities_in_region(sample_snapshot):
    matches = AutocompleteMatcher().match(sample_snapshot, "maharashtra")
    assert names(matches) == ["Mumbai", "Pune"]
    assert {match.tier for match in matches} == {MatchTier.exact}


def test_multi_token_match_across_fields(sample_snapshot):
    matches = AutocompleteMatcher().match(sample_snapshot, "maharashtra pune")
    assert names(matches) == ["Pune"]
    assert matches[0].tier is MatchTier.multi_token


def test_multi_token_requires_every_token(sample_snapshot):
    assert AutocompleteMatcher().match(sample_snapshot, "maharashtra delhi") == []


def test_substring_single_token_matches(sample_snapshot):
    assert names(AutocompleteMatcher().match(sample_snapshot, "umba")) == ["Mumbai"]


@pytest.mark.parametrize("query", ["", "   ", "m", " M ", None])
def test_short_query_returns_empty(sample_snapshot, query):
    assert AutocompleteMatcher().match(sample_snapshot, query) == []


def test_two_char_query_without_match_returns_empty(sample_snapshot):
    assert AutocompleteMatcher().match(sample_snapshot, "xz") == []


def test_results_are_capped_at_ten(city_factory):
    snapshot = CatalogSnapshot(
        records=tuple(
            city_factory(i, f"Nagar {i}", "Gujarat", 22.0, 72.0) for i in range(25)
        ),
        fetched_at=0.0,
    )
    matches = AutocompleteMatcher().match(snapshot, "nagar")
    assert len(matches) == 10
    assert [match.record.id for match in matches] == list(range(10))


def test_duplicates_collapse_to_first_occurrence(city_factory):
    snapshot = CatalogSnapshot(
        records=(
            city_factory(1, "Aurangabad", "Maharashtra", 19.88, 75.34),
            city_factory(2, "Aurangabad", "Maharashtra", 19.87, 75.33),
            city_factory(3, "Aurangabad", "Bihar", 24.75, 84.37),
        ),
        fetched_at=0.0,
    )
    matches = AutocompleteMatcher().match(snapshot, "aurangabad")
    assert [match.record.id for match in matches] == [1, 3]
    keys = [(match.record.name, match.record.region) for match in matches]
    assert len(keys) == len(set(keys))


def test_later_higher_tier_duplicate_does_not_replace_earlier(city_factory):
    snapshot = CatalogSnapshot(
        records=(
            city_factory(1, "Navi Mumbai", "Maharashtra", 19.03, 73.03),
            city_factory(2, "Navi Mumbai", "Maharashtra", 19.03, 73.03),
        ),
        fetched_at=0.0,
    )
    matches = AutocompleteMatcher().match(snapshot, "navi mumbai")
    assert len(matches) == 1
    assert matches[0].record.id == 1


def test_results_keep_catalog_order_not_tier_order(city_factory):
    snapshot = CatalogSnapshot(
        records=(
            city_factory(1, "Goalpara", "Assam", 26.17, 90.62),
            city_factory(2, "Goa", "Goa", 15.3, 74.1),
            city_factory(3, "Goa Velha", "Goa", 15.44, 73.88),
        ),
        fetched_at=0.0,
    )
    matches = AutocompleteMatcher().match(snapshot, "goa")
    assert [match.record.id for match in matches] == [1, 2, 3]
    assert [match.tier for match in matches] == [
        MatchTier.prefix,
        MatchTier.exact,
        MatchTier.exact,
    ]


def test_duplicates_do_not_count_toward_limit(city_factory):
    records = [city_factory(0, "Rampur", "Uttar Pradesh", 28.8, 79.0)] * 5
    records += [city_factory(i, f"Rampur {i}", "Uttar Pradesh", 28.8, 79.0) for i in range(1, 4)]
    snapshot = CatalogSnapshot(records=tuple(records), fetched_at=0.0)
    matches = AutocompleteMatcher(limit=3).match(snapshot, "rampur")
    assert [match.record.name for match in matches] == ["Rampur", "Rampur 1", "Rampur 2"]


def test_match_tier_none_for_unrelated(city_factory):
    record = city_factory(1, "Chennai", "Tamil Nadu", 13.08, 80.27)
    assert match_tier(record, "kochi", ["kochi"]) is None
