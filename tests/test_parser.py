"""Tests for the PostgREST row parser."""

from datetime import timezone

from news_junkie.parser import parse_post, parse_posts, parse_profile, parse_timestamp


def _row(**overrides) -> dict:
    row = {
        "id": "p1",
        "user_id": "u1",
        "description": "A good read",
        "news_link": "https://example.com/a",
        "archive_link": None,
        "tags": ["news", "ai"],
        "created_at": "2025-03-01T12:00:00.123456+00:00",
        "user_profiles": {
            "id": "u1",
            "name": "Ada",
            "profile_picture_url": "https://cdn.example.com/ada.png",
        },
    }
    row.update(overrides)
    return row


class TestParsePost:
    def test_parses_basic_row(self):
        post = parse_post(_row())
        assert post.id == "p1"
        assert post.tags == ["news", "ai"]
        assert post.created_at.microsecond == 123456
        assert post.author.name == "Ada"
        assert post.is_shared_by_me is False

    def test_null_tags_become_empty(self):
        assert parse_post(_row(tags=None)).tags == []

    def test_author_list_is_unwrapped(self):
        post = parse_post(_row(user_profiles=[{"id": "u1", "name": "Ada"}]))
        assert post.author.id == "u1"
        assert post.author.profile_picture_url is None

    def test_missing_author(self):
        assert parse_post(_row(user_profiles=None)).author is None
        assert parse_post(_row(user_profiles=[])).author is None

    def test_skips_malformed_rows(self):
        rows = [_row(), {"id": "broken"}, _row(id="p2", created_at="not a date")]
        posts = parse_posts(rows)
        assert [p.id for p in posts] == ["p1"]

    def test_skips_non_object_rows(self):
        posts = parse_posts([_row(), "oops", None, ["p2"]])
        assert [p.id for p in posts] == ["p1"]


class TestParseTimestamp:
    def test_zulu_suffix(self):
        ts = parse_timestamp("2025-03-01T12:00:00Z")
        assert ts.tzinfo is not None
        assert ts.utcoffset().total_seconds() == 0

    def test_naive_assumed_utc(self):
        assert parse_timestamp("2025-03-01T12:00:00").tzinfo == timezone.utc


class TestParseProfile:
    def test_optional_fields(self):
        profile = parse_profile({"id": "u1"})
        assert profile.id == "u1"
        assert profile.name is None
        assert profile.description is None
