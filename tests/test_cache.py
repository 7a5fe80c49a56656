# =============================================================================
# TESTS - Redis cache service
# =============================================================================

import json
from unittest.mock import patch

import redis

from app.config import settings
from app.utils.cache import CacheService, build_cache_key, normalize_topic


class TestKeys:

    def test_normalization_is_case_and_whitespace_insensitive(self):
        assert build_cache_key("Photosynthesis ", "gpt-3.5-turbo") == build_cache_key(
            "photosynthesis", "gpt-3.5-turbo"
        )
        assert build_cache_key("  PHOTOSYNTHESIS\t", "gpt-3.5-turbo") == "photosynthesis:gpt-3.5-turbo"

    def test_model_is_part_of_the_key(self):
        assert build_cache_key("topic", "gpt-3.5-turbo") != build_cache_key("topic", "gpt-4o-mini")

    def test_inner_whitespace_is_kept(self):
        assert normalize_topic(" World  War II ") == "world  war ii"

    def test_redis_key_prefix(self):
        assert CacheService.quiz_key("topic:gpt-3.5-turbo") == "quiz:topic:gpt-3.5-turbo"


class TestCacheOperations:

    def test_set_then_get(self, cache, fake_redis):
        assert cache.set("quiz:k", {"id": "1"}, ttl=120) is True

        assert cache.get("quiz:k") == {"id": "1"}
        assert fake_redis.ttls["quiz:k"] == 120

    def test_default_ttl(self, cache, fake_redis):
        cache.set("quiz:k", {"id": "1"})

        assert fake_redis.ttls["quiz:k"] == settings.QUIZ_CACHE_TTL

    def test_miss(self, cache):
        assert cache.get("quiz:missing") is None

    def test_delete(self, cache, fake_redis):
        cache.set("quiz:k", {"id": "1"})

        assert cache.delete("quiz:k") is True
        assert "quiz:k" not in fake_redis.store

    def test_corrupt_value_is_a_miss(self, cache, fake_redis):
        fake_redis.store["quiz:k"] = "{not json"

        assert cache.get("quiz:k") is None

    def test_values_are_json(self, cache, fake_redis):
        cache.set("quiz:k", {"n": 1})

        assert json.loads(fake_redis.store["quiz:k"]) == {"n": 1}


class TestFailureTolerance:

    def test_errors_are_absorbed(self, broken_cache):
        assert broken_cache.get("quiz:k") is None
        assert broken_cache.set("quiz:k", {"id": "1"}) is False
        assert broken_cache.delete("quiz:k") is False

    def test_unreachable_redis_disables_cache(self):
        client = redis.Redis()
        with patch("app.utils.cache.redis.from_url", return_value=client), \
                patch.object(client, "ping", side_effect=redis.exceptions.ConnectionError("down")):
            cache = CacheService()

        assert cache.redis_client is None
        assert cache.get("quiz:k") is None
        assert cache.set("quiz:k", {}) is False

    def test_connection_uses_bounded_timeouts(self):
        with patch("app.utils.cache.redis.from_url") as from_url:
            CacheService()

        kwargs = from_url.call_args.kwargs
        assert kwargs["socket_timeout"] == settings.CACHE_SOCKET_TIMEOUT
        assert kwargs["socket_connect_timeout"] == settings.CACHE_SOCKET_TIMEOUT
