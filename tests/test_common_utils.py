"""Tests for utils/common.py: ids, timestamps and serialization."""
from datetime import datetime, timedelta, timezone

from utils.common import (
    deep_clone,
    generate_id,
    now_iso,
    parse_iso,
    serialize,
    touch_timestamp,
)


class TestGenerateId:
    def test_ids_are_unique(self):
        ids = {generate_id() for _ in range(500)}
        assert len(ids) == 500

    def test_prefix(self):
        assert generate_id("budget").startswith("budget-")

    def test_no_prefix(self):
        assert "-" not in generate_id()


class TestTimestamps:
    def test_now_iso_is_utc(self):
        parsed = parse_iso(now_iso())
        assert parsed.utcoffset() == timedelta(0)

    def test_parse_accepts_z_suffix(self):
        parsed = parse_iso("2027-03-14T09:00:00Z")
        assert parsed == datetime(2027, 3, 14, 9, tzinfo=timezone.utc)

    def test_parse_naive_is_utc(self):
        assert parse_iso("2027-03-14T09:00:00").tzinfo is not None

    def test_touch_never_goes_backwards(self):
        future = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
        assert touch_timestamp(future) == future

    def test_touch_advances_past_old_value(self):
        old = "2001-01-01T00:00:00+00:00"
        assert parse_iso(touch_timestamp(old)) > parse_iso(old)

    def test_touch_without_previous(self):
        assert parse_iso(touch_timestamp(None))

    def test_touch_with_garbage_previous(self):
        assert parse_iso(touch_timestamp("not a date"))


class TestSerialize:
    def test_key_order_does_not_matter(self):
        assert serialize({"a": 1, "b": [1, 2]}) == serialize({"b": [1, 2], "a": 1})

    def test_list_order_matters(self):
        assert serialize([1, 2]) != serialize([2, 1])

    def test_deep_clone_is_independent(self):
        original = {"items": [{"name": "hat"}]}
        clone = deep_clone(original)
        clone["items"][0]["name"] = "scarf"
        assert original["items"][0]["name"] == "hat"

    def test_deep_clone_none(self):
        assert deep_clone(None) is None
