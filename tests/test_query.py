"""Tests for query normalization."""

from news_junkie.query import (
    INTERSECTION,
    UNION,
    FeedQuery,
    build_query,
    is_valid_tag,
    normalize_tag_mode,
    normalize_tags,
    normalize_user_ids,
)


class TestNormalizeTags:
    def test_trims_lowercases_and_dedupes(self):
        assert normalize_tags([" Python", "python", "RUST ", "", "  "]) == (
            "python",
            "rust",
        )

    def test_keeps_first_seen_order(self):
        assert normalize_tags(["b", "a", "B"]) == ("b", "a")

    def test_none_is_empty(self):
        assert normalize_tags(None) == ()


class TestNormalizeUserIds:
    def test_none_means_no_filter(self):
        assert normalize_user_ids(None) is None

    def test_empty_list_means_nobody(self):
        assert normalize_user_ids([]) == ()

    def test_drops_empty_and_duplicates(self):
        assert normalize_user_ids(["u1", "", "u2", "u1"]) == ("u1", "u2")


class TestBuildQuery:
    def test_defaults(self):
        assert build_query() == FeedQuery()

    def test_trims_text_without_lowercasing(self):
        assert build_query(search_text="  Climate News ").search_text == "Climate News"

    def test_tag_mode(self):
        assert normalize_tag_mode("intersection") == INTERSECTION
        assert normalize_tag_mode("INTERSECTION") == UNION
        assert normalize_tag_mode(None) == UNION

    def test_mode_irrelevant_without_tags(self):
        assert build_query(tag_mode="intersection") == build_query(tag_mode="union")
        assert build_query(tags=["a"], tag_mode="intersection").tag_mode == INTERSECTION

    def test_matches_nobody(self):
        assert build_query(user_ids=[]).matches_nobody
        assert build_query(user_ids=[""]).matches_nobody
        assert not build_query().matches_nobody
        assert not build_query(user_id="u1", user_ids=[]).matches_nobody

    def test_hashable(self):
        assert len({build_query(tags=["a", "A"]), build_query(tags=["a"])}) == 1


class TestIsValidTag:
    def test_valid(self):
        assert is_valid_tag("ai")
        assert is_valid_tag("web3")

    def test_invalid(self):
        assert not is_valid_tag("Machine")
        assert not is_valid_tag("two words")
        assert not is_valid_tag("c++")
        assert not is_valid_tag("")
