"""Unit tests for the fixed-TTL result cache."""

import pytest

from doctor_match.domain.search import SearchFilters
from doctor_match.services.ttl_cache import TTLCache, make_cache_key


@pytest.fixture
def cache(clock):
    return TTLCache("unit", 60, clock=clock)


@pytest.mark.unit
class TestTTLCache:
    """Test storage, lazy expiry and accounting."""

    def test_miss_on_empty_cache(self, cache):
        assert cache.get("missing") is None
        assert cache.misses == 1

    def test_returns_stored_payload_by_identity(self, cache):
        payload = [1, 2, 3]
        cache.set("key", payload)

        assert cache.get("key") is payload
        assert cache.hits == 1

    def test_empty_payload_is_a_hit(self, cache):
        cache.set("key", [])

        assert cache.get("key") == []
        assert cache.hits == 1

    def test_entry_expires_at_ttl(self, cache, clock):
        cache.set("key", "value")
        clock.advance(59.9)
        assert cache.get("key") == "value"

        clock.advance(0.1)

        assert cache.get("key") is None
        assert "key" not in cache

    def test_set_refreshes_timestamp(self, cache, clock):
        cache.set("key", "old")
        clock.advance(50)
        cache.set("key", "new")
        clock.advance(50)

        assert cache.get("key") == "new"

    def test_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)

        cache.clear()

        assert len(cache) == 0
        assert cache.get("a") is None

    @pytest.mark.parametrize("ttl", [0, -1])
    def test_rejects_non_positive_ttl(self, ttl):
        with pytest.raises(ValueError, match="must be positive"):
            TTLCache("bad", ttl)


@pytest.mark.unit
class TestMakeCacheKey:
    def test_mapping_order_does_not_matter(self):
        first = make_cache_key("match", "p1", {"b": "x", "a": "y"})
        assert first == make_cache_key("match", "p1", {"a": "y", "b": "x"})

    def test_models_are_serialized(self):
        key = make_cache_key("search", "cardio", SearchFilters(max_fees=80), 20)

        assert key == 'search:["cardio",{"max_fees":80.0},20]'

    def test_equal_filters_share_a_key(self):
        by_alias = SearchFilters.model_validate({"maxFees": 80})
        by_name = SearchFilters(max_fees=80)

        assert make_cache_key("search", "q", by_alias) == make_cache_key("search", "q", by_name)

    def test_distinct_parts_give_distinct_keys(self):
        assert make_cache_key("search", "q", None, 10) != make_cache_key("search", "q", None, 20)
        assert make_cache_key("search", "q") != make_cache_key("match", "q")

    def test_unsupported_part_rejected(self):
        with pytest.raises(TypeError):
            make_cache_key("search", object())
