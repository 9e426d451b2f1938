"""Unit tests for cache metadata decorators."""

import pytest

from intelli_stock.cache import (
    CacheOptions,
    cache_key,
    cache_ttl,
    get_cache_options,
    no_cache,
)
from intelli_stock.exceptions import ValidationError


class TestCacheDecorators:
    """Test attaching cache options to handlers."""

    def test_undecorated_handler_has_defaults(self):
        """Test handlers without decorators get default options."""

        async def handler():
            return {}

        assert get_cache_options(handler) == CacheOptions()

    def test_cache_key(self):
        """Test cache_key records the key."""

        @cache_key("top-stocks")
        async def handler():
            return {}

        assert get_cache_options(handler).key == "top-stocks"

    def test_cache_ttl(self):
        """Test cache_ttl records the TTL."""

        @cache_ttl(60_000)
        async def handler():
            return {}

        assert get_cache_options(handler).ttl_ms == 60_000

    @pytest.mark.parametrize("form", ["bare", "called"])
    def test_no_cache_forms(self, form):
        """Test @no_cache and @no_cache() are equivalent."""

        async def handler():
            return {}

        decorated = no_cache(handler) if form == "bare" else no_cache()(handler)

        assert get_cache_options(decorated).no_cache is True

    def test_decorators_compose_in_any_order(self):
        """Test stacking order does not change the resulting options."""

        @cache_key("market-summary")
        @cache_ttl(1000)
        async def first():
            return {}

        @cache_ttl(1000)
        @cache_key("market-summary")
        async def second():
            return {}

        expected = CacheOptions(key="market-summary", ttl_ms=1000)
        assert get_cache_options(first) == expected
        assert get_cache_options(second) == expected

    def test_decorators_return_same_handler(self):
        """Test decorators do not wrap the handler."""

        async def handler():
            return {"ok": True}

        assert cache_key("k")(handler) is handler
        assert no_cache(handler) is handler

    def test_handlers_do_not_share_options(self):
        """Test options are recorded per handler."""

        @cache_key("a")
        async def a():
            return {}

        async def b():
            return {}

        assert get_cache_options(b).key is None
        assert get_cache_options(a).key == "a"

    def test_empty_key_rejected(self):
        """Test empty cache keys raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            cache_key("")

        assert exc_info.value.data["field"] == "key"

    @pytest.mark.parametrize("ttl_ms", [0, -1])
    def test_non_positive_ttl_rejected(self, ttl_ms):
        """Test non-positive TTLs raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            cache_ttl(ttl_ms)

        assert exc_info.value.data["field"] == "ttl_ms"
