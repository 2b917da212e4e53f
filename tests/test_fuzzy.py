# tests/test_fuzzy.py
import pytest

from songsearch.config import DEFAULT_FIELD_WEIGHTS
from songsearch.fuzzy import INCLUDE, PREFIX, FuzzyMatcher
from songsearch.indexer import build_index


@pytest.fixture
def matcher(catalog_doc, fake_romanizer):
    catalog = build_index(catalog_doc, romanizer=fake_romanizer)
    return FuzzyMatcher(catalog.songs, weights=DEFAULT_FIELD_WEIGHTS)


def test_exact_substring_scores_by_position(matcher):
    assert matcher.score_value("canon", "Canon in D") == (0.0, (0, 5))
    score, span = matcher.score_value("canon", "Rock version of Canon in D")
    assert span == (16, 21)
    assert score == pytest.approx(0.16)


def test_location_can_be_ignored(catalog_doc, fake_romanizer):
    catalog = build_index(catalog_doc, romanizer=fake_romanizer)
    m = FuzzyMatcher(catalog.songs, weights=DEFAULT_FIELD_WEIGHTS, ignore_location=True)
    assert m.score_value("canon", "Rock version of Canon in D") == (0.0, (16, 21))


def test_far_match_exceeds_threshold(matcher):
    value = "x" * 80 + "canon"
    assert matcher.score_value("canon", value) is None


def test_typo_is_approximate_match(matcher):
    res = matcher.score_value("canon in b", "Canon in D")
    assert res is not None
    score, span = res
    assert 0 < score <= matcher.threshold
    assert span[0] == 0


def test_unrelated_value_does_not_match(matcher):
    assert matcher.score_value("zzzz", "Moon Halo") is None


def test_prefix_and_include_modes(matcher):
    assert matcher.score_value("moon", "Moon Halo", PREFIX) == (0.0, (0, 4))
    assert matcher.score_value("halo", "Moon Halo", PREFIX) is None
    assert matcher.score_value("halo", "Moon Halo", INCLUDE) == (0.0, (5, 9))
    assert matcher.score_value("hal0", "Moon Halo", INCLUDE) is None


def test_search_orders_by_score(matcher):
    hits = matcher.search("canon in d")
    ids = [h.song.id for h in hits]
    assert ids[0] == "canon_in_d"
    assert "canon_remix" in ids
    assert all(a.score <= b.score for a, b in zip(hits, hits[1:]))


def test_search_restricted_to_keys(matcher):
    hits = matcher.search("pachelbel", keys=("creators.name",), mode=INCLUDE)
    assert [h.song.id for h in hits] == ["canon_in_d"]
    assert {m.key for m in hits[0].matches} == {"creators.name"}


def test_words_index_matches_any_token_position(matcher):
    hits = matcher.search("主题", keys=("words_index",))
    assert [h.song.id for h in hits] == ["moon_halo"]
    match = hits[0].matches[0]
    start, end = match.spans[0]
    assert match.value[start:end] == "主题"


def test_empty_catalog_and_pattern(matcher):
    assert FuzzyMatcher((), weights=DEFAULT_FIELD_WEIGHTS).search("canon") == []
    assert matcher.search("") == []


def test_unknown_mode_raises(matcher):
    with pytest.raises(ValueError):
        matcher.search("canon", mode="regex")


def test_short_value_cannot_fully_match_longer_query(matcher):
    assert matcher.score_value("xyzzy banana", "A") is None
    assert matcher.score_value("hello world", "A") is None
    assert matcher.score_value("主题", "主", ignore_location=True) is None


def test_short_value_similarity_is_scaled_by_length(catalog_doc, fake_romanizer):
    catalog = build_index(catalog_doc, romanizer=fake_romanizer)
    lenient = FuzzyMatcher(catalog.songs, weights=DEFAULT_FIELD_WEIGHTS, threshold=1.0, ignore_location=True)
    score, _ = lenient.score_value("abcd", "ab")
    assert score == pytest.approx(0.5)


def test_unrelated_query_over_short_titles_finds_nothing(fake_romanizer):
    document = {
        "songs": [
            {"id": "canon", "titles": ["Canon in D"]},
            {"id": "short", "titles": ["A"]},
            {"id": "moon", "titles": ["Moon Halo"]},
        ]
    }
    catalog = build_index(document, romanizer=fake_romanizer)
    m = FuzzyMatcher(catalog.songs, weights=DEFAULT_FIELD_WEIGHTS)
    assert m.search("xyzzy banana") == []
    assert m.search("hello world") == []
