"""
Quiz generation with cache and database reuse

Lookup order for a (topic, model) request, unless force_new is set:
1. Redis cache (sanitized quiz, 1 hour TTL)
2. Most recent stored quiz for the same key, if younger than the reuse window
3. Fresh generation through the provider adapter
"""
import logging
from datetime import timedelta
from typing import Callable, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import QuizParseError, QuizPersistenceError, QuizValidationError
from app.schemas.quiz import QuizResponse
from app.services import providers
from app.services.quiz_parser import parse_quiz_text
from app.services.quiz_store import QuizStore, check_ownership
from app.utils.cache import CacheService, build_cache_key, get_cache_service
from app.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class QuizService:
    """
    Decides between cached, reused and freshly generated quizzes

    The cache is best-effort and the database is the system of record:
    cache problems degrade to misses, database and provider problems are
    raised to the caller.
    """

    def __init__(
        self,
        db: Session,
        cache: Optional[CacheService] = None,
        generate_raw: Optional[Callable[[str, str], str]] = None,
    ):
        self.store = QuizStore(db)
        self.cache = cache if cache is not None else get_cache_service()
        self.generate_raw = generate_raw or providers.generate_raw

    def generate_quiz(
        self,
        topic: str,
        model: Optional[str] = None,
        force_new: bool = False,
        user_id: Optional[str] = None,
    ) -> QuizResponse:
        """
        Return a sanitized five-question quiz for topic

        Args:
            topic: Free-text topic
            model: Model identifier, defaults to DEFAULT_MODEL
            force_new: Skip the cache and reuse lookups
            user_id: Requester identity, None for anonymous

        Raises:
            QuizValidationError: bad topic or unknown model
            QuizGenerationError: provider failure or unparseable output
            QuizPersistenceError: database failure
        """
        topic, model = self.validate_request(topic, model)
        cache_key = build_cache_key(topic, model)
        redis_key = CacheService.quiz_key(cache_key)

        if not force_new:
            cached = self._get_cached(redis_key)
            if cached is not None:
                logger.info(f"Using cached quiz for topic: {topic!r} with model: {model}")
                return cached

            reused = self._reuse_recent(cache_key, redis_key)
            if reused is not None:
                return reused
        else:
            logger.info(f"Force new quiz generation for topic: {topic!r} with model: {model}")

        return self._generate(topic, model, user_id, redis_key)

    @staticmethod
    def validate_request(topic: str, model: Optional[str]) -> Tuple[str, str]:
        """Check topic and model before any I/O, return them trimmed"""
        if not isinstance(topic, str) or not topic.strip():
            raise QuizValidationError("Topic is required and must be a non-empty string")
        topic = topic.strip()
        if len(topic) > settings.MAX_TOPIC_LENGTH:
            raise QuizValidationError(
                f"Topic must be at most {settings.MAX_TOPIC_LENGTH} characters"
            )

        model = model or settings.DEFAULT_MODEL
        if not isinstance(model, str) or model not in settings.AVAILABLE_MODELS:
            raise QuizValidationError(
                f"Invalid model: {model}. Available models: {', '.join(settings.AVAILABLE_MODELS)}"
            )
        return topic, model

    def _get_cached(self, redis_key: str) -> Optional[QuizResponse]:
        cached = self.cache.get(redis_key)
        if cached is None:
            return None
        try:
            quiz = QuizResponse.model_validate(cached)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {redis_key}: {str(e)}")
            self.cache.delete(redis_key)
            return None

        if quiz.expires_at <= utcnow():
            logger.info(f"Discarding cached quiz {quiz.id}: expired at {quiz.expires_at}")
            self.cache.delete(redis_key)
            return None
        return quiz

    def _reuse_recent(self, cache_key: str, redis_key: str) -> Optional[QuizResponse]:
        try:
            candidates = self.store.find_recent(cache_key, settings.REUSE_CANDIDATE_LIMIT)
        except SQLAlchemyError as e:
            logger.error(f"Failed to look up existing quizzes for {cache_key}: {str(e)}")
            raise QuizPersistenceError("Failed to load existing quizzes. Please try again later.") from e

        if not candidates:
            return None

        # Only the newest candidate is considered; older ones are never reused
        most_recent = candidates[0]
        reuse_cutoff = utcnow() - timedelta(hours=settings.QUIZ_REUSE_WINDOW_HOURS)
        if most_recent.created_at <= reuse_cutoff:
            logger.info(f"Most recent quiz {most_recent.id} for {cache_key} is outside the reuse window")
            return None

        logger.info(f"Reusing recent quiz {most_recent.id} for {cache_key}")
        sanitized = QuizStore.to_sanitized(most_recent)
        self._cache_quiz(redis_key, sanitized)
        return sanitized

    def _generate(self, topic: str, model: str, user_id: Optional[str], redis_key: str) -> QuizResponse:
        logger.info(f"Generating AI quiz for topic: {topic!r} with model: {model}")

        raw_text = self.generate_raw(topic, model)

        questions = parse_quiz_text(raw_text)
        if len(questions) < settings.QUIZ_QUESTION_COUNT:
            logger.error(
                f"Only {len(questions)} valid question(s) parsed for topic {topic!r} "
                f"with model {model}; response starts with: {raw_text[:200]!r}"
            )
            raise QuizParseError()

        quiz = self.store.assemble(topic, model, questions, user_id)
        sanitized = QuizStore.to_sanitized(quiz)
        self._cache_quiz(redis_key, sanitized)
        return sanitized

    def _cache_quiz(self, redis_key: str, quiz: QuizResponse) -> None:
        """Cache the sanitized quiz, never past its own expiration"""
        remaining = int((quiz.expires_at - utcnow()).total_seconds())
        if remaining <= 0:
            return
        ttl = min(settings.QUIZ_CACHE_TTL, remaining)
        self.cache.set(redis_key, quiz.model_dump(mode="json"), ttl)

    def get_quiz(self, quiz_id: str, user_id: Optional[str] = None) -> QuizResponse:
        """Sanitized view of a stored quiz, for its owner or anyone if unbound"""
        quiz = self.store.load_quiz(quiz_id)
        check_ownership(quiz, user_id)
        return QuizStore.to_sanitized(quiz)
