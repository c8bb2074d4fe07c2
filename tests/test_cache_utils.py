"""Tests for utils/cache.py: collection cache."""
from utils.cache import CollectionCache


class TestCollectionCache:
    def test_basic_set_lookup(self):
        cache = CollectionCache()
        cache.set("key", [1, 2])
        assert cache.lookup("key") == (True, [1, 2])

    def test_miss(self):
        cache = CollectionCache()
        assert cache.lookup("nonexistent") == (False, None)

    def test_lookup_distinguishes_cached_none(self):
        cache = CollectionCache()
        cache.set("empty", None)
        assert cache.lookup("empty") == (True, None)
        assert cache.lookup("absent") == (False, None)

    def test_clear_resets_stats(self):
        cache = CollectionCache()
        cache.set("k1", "v1")
        cache.lookup("k1")
        cache.clear()
        assert cache.lookup("k1") == (False, None)
        stats = cache.stats()
        assert stats["hits"] == 0
        assert stats["misses"] == 1
        assert stats["size"] == 0

    def test_stats_tracks_hits_misses(self):
        cache = CollectionCache()
        cache.set("k", "v")
        cache.lookup("k")    # hit
        cache.lookup("nope")  # miss
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_overwrite_existing(self):
        cache = CollectionCache()
        cache.set("k", "old")
        cache.set("k", "new")
        assert cache.lookup("k") == (True, "new")
