"""
Redis cache utility for quiz caching
"""
import redis
import json
import logging
from typing import Optional, Any
from app.config import settings

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "quiz"


def normalize_topic(topic: str) -> str:
    """Lowercase and trim a topic for key derivation"""
    return topic.strip().lower()


def build_cache_key(topic: str, model: str) -> str:
    """
    Deterministic reuse key for (topic, model)

    Used both for the Redis key and for Quiz.cache_key in the database,
    so both stores agree on what counts as the same quiz.
    """
    return f"{normalize_topic(topic)}:{model}"


class CacheService:
    """
    Redis-based best-effort cache for sanitized quizzes

    Every failure is logged and reported as a miss or a failed write;
    nothing raised by Redis escapes this class.
    """

    def __init__(self, redis_client=None):
        if redis_client is not None:
            self.redis_client = redis_client
            return

        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=settings.CACHE_SOCKET_TIMEOUT,
                socket_timeout=settings.CACHE_SOCKET_TIMEOUT,
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    @staticmethod
    def quiz_key(cache_key: str) -> str:
        """Redis key for a quiz reuse key"""
        return f"{CACHE_KEY_PREFIX}:{cache_key}"

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None (also on errors and undecodable values)
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.info(f"Cache hit: {key}")
                return json.loads(value)
            logger.info(f"Cache miss: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(
        self,
        key: str,
        value: Any,
        ttl: int = None
    ) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds (default from settings)

        Returns:
            Success status
        """
        if not self.redis_client:
            return False

        try:
            ttl = ttl or settings.QUIZ_CACHE_TTL
            serialized = json.dumps(value, default=str)
            self.redis_client.setex(key, ttl, serialized)
            logger.info(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error: {str(e)}")
            return False

    def delete(self, key: str) -> bool:
        """Delete key from cache"""
        if not self.redis_client:
            return False

        try:
            self.redis_client.delete(key)
            logger.info(f"Cache delete: {key}")
            return True
        except Exception as e:
            logger.error(f"Cache delete error: {str(e)}")
            return False


_cache_service: Optional[CacheService] = None


def get_cache_service() -> CacheService:
    """Lazily connect the shared cache so importing this module needs no Redis"""
    global _cache_service
    if _cache_service is None:
        _cache_service = CacheService()
    return _cache_service
