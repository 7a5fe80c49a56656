# =============================================================================
# CONFTEST - shared fixtures
# =============================================================================
# In-memory SQLite database, a Redis double and stub providers
# =============================================================================

import os

# Settings are read at import time, so the environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6399/0")
os.environ.setdefault("LOG_LEVEL", "ERROR")

from datetime import timedelta
from typing import Dict, Optional

import pytest
import redis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base
from app.utils.cache import CacheService

CORRECT_LABELS = ("A", "A", "C", "D", "B")


def make_block(number: int, correct: str = "A", explanation: Optional[str] = "Because.") -> str:
    lines = [
        f"Q{number}: Question number {number}?",
        f"A) Option {number}A",
        f"B) Option {number}B",
        f"C) Option {number}C",
        f"D) Option {number}D",
        f"Correct: {correct}",
    ]
    if explanation is not None:
        lines.append(f"Explanation: {explanation} ({number})")
    return "\n".join(lines)


def make_quiz_text(labels=CORRECT_LABELS) -> str:
    """Well-formed provider output, one block per label"""
    return "\n\n".join(make_block(i, label) for i, label in enumerate(labels, start=1))


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    yield session
    session.close()


# =============================================================================
# CACHE
# =============================================================================


class FakeRedis:
    """Dict-backed stand-in for the few redis-py calls CacheService makes"""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)
            self.ttls.pop(key, None)


class BrokenRedis:
    """Every call fails like a dropped connection"""

    def _fail(self, *args, **kwargs):
        raise redis.exceptions.ConnectionError("connection refused")

    ping = get = setex = delete = _fail


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheService(redis_client=fake_redis)


@pytest.fixture
def broken_cache():
    return CacheService(redis_client=BrokenRedis())


# =============================================================================
# PROVIDERS
# =============================================================================


class StubGenerator:
    """Callable replacing providers.generate_raw; records every call"""

    def __init__(self, text: str = None, error: Exception = None):
        self.text = text if text is not None else make_quiz_text()
        self.error = error
        self.calls = []

    def __call__(self, topic: str, model: str) -> str:
        self.calls.append((topic, model))
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def stub_generator():
    return StubGenerator()


@pytest.fixture
def quiz_service(db_session, cache, stub_generator):
    from app.services.quiz_service import QuizService

    return QuizService(db_session, cache=cache, generate_raw=stub_generator)


@pytest.fixture
def stored_quiz(db_session):
    """A persisted quiz whose answer key is CORRECT_LABELS"""
    from app.services.quiz_parser import parse_quiz_text
    from app.services.quiz_store import QuizStore

    return QuizStore(db_session).assemble("Photosynthesis", "gpt-3.5-turbo", parse_quiz_text(make_quiz_text()))


def age(db_session, quiz, hours: float) -> None:
    """Move a quiz's timestamps into the past"""
    quiz.created_at = quiz.created_at - timedelta(hours=hours)
    quiz.expires_at = quiz.expires_at - timedelta(hours=hours)
    db_session.commit()
