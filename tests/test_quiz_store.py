# =============================================================================
# TESTS - Quiz assembly and storage
# =============================================================================

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.exceptions import QuizPersistenceError, QuizValidationError
from app.models import Question, Quiz
from app.schemas.quiz import ParsedQuestion
from app.services.quiz_parser import parse_quiz_text
from app.services.quiz_store import QuizStore
from tests.conftest import age, make_quiz_text


@pytest.fixture
def store(db_session):
    return QuizStore(db_session)


@pytest.fixture
def parsed():
    return parse_quiz_text(make_quiz_text())


class TestAssemble:

    def test_persists_quiz_and_five_ordered_questions(self, store, db_session, parsed):
        quiz = store.assemble("  Photosynthesis ", "gpt-3.5-turbo", parsed, user_id="u1")

        stored = db_session.get(Quiz, quiz.id)
        assert stored.topic == "Photosynthesis"
        assert stored.model == "gpt-3.5-turbo"
        assert stored.user_id == "u1"
        assert stored.is_ai_generated is True
        assert stored.cache_key == "photosynthesis:gpt-3.5-turbo"
        assert [q.question_order for q in stored.questions] == [1, 2, 3, 4, 5]
        assert [q.correct_answer for q in stored.questions] == ["A", "A", "C", "D", "B"]
        assert stored.questions[0].options == {
            "A": "Option 1A", "B": "Option 1B", "C": "Option 1C", "D": "Option 1D",
        }

    def test_expires_24_hours_after_creation(self, store, parsed):
        quiz = store.assemble("Photosynthesis", "gpt-3.5-turbo", parsed)

        assert quiz.expires_at - quiz.created_at == timedelta(hours=24)

    def test_anonymous_quiz_is_unbound(self, store, parsed):
        assert store.assemble("Photosynthesis", "gpt-3.5-turbo", parsed).user_id is None

    @pytest.mark.parametrize("count", [0, 3, 4, 6])
    def test_requires_exactly_five_questions(self, store, db_session, count):
        questions = parse_quiz_text(make_quiz_text(("A",) * 5)) * 2

        with pytest.raises(QuizValidationError):
            store.assemble("Photosynthesis", "gpt-3.5-turbo", questions[:count])

        assert db_session.query(Quiz).count() == 0

    def test_rejects_correct_label_without_option(self, store, parsed):
        parsed[2] = ParsedQuestion(
            question="Broken?",
            options={"A": "1", "B": "2", "C": "3"},
            correct_answer="D",
        )

        with pytest.raises(QuizValidationError):
            store.assemble("Photosynthesis", "gpt-3.5-turbo", parsed)

    def test_rejects_blank_option(self, store, parsed):
        parsed[0] = ParsedQuestion(
            question="Blank?",
            options={"A": "1", "B": " ", "C": "3", "D": "4"},
            correct_answer="A",
        )

        with pytest.raises(QuizValidationError):
            store.assemble("Photosynthesis", "gpt-3.5-turbo", parsed)

    def test_failed_write_leaves_nothing_behind(self, store, db_session, parsed):
        with patch.object(db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk full"))):
            with pytest.raises(QuizPersistenceError):
                store.assemble("Photosynthesis", "gpt-3.5-turbo", parsed)

        assert db_session.query(Quiz).count() == 0
        assert db_session.query(Question).count() == 0


class TestSanitizedView:

    def test_exposes_only_public_fields(self, store, parsed):
        quiz = store.assemble("Photosynthesis", "gpt-3.5-turbo", parsed)

        view = QuizStore.to_sanitized(quiz).model_dump()

        assert set(view) == {"id", "topic", "model", "created_at", "expires_at", "questions"}
        assert view["id"] == str(quiz.id)
        for question in view["questions"]:
            assert set(question) == {"id", "question", "options"}
            assert set(question["options"]) == {"A", "B", "C", "D"}

    def test_no_answer_key_in_serialized_view(self, store, parsed):
        quiz = store.assemble("Photosynthesis", "gpt-3.5-turbo", parsed)

        dumped = QuizStore.to_sanitized(quiz).model_dump_json()

        assert "correct" not in dumped.lower()
        assert "explanation" not in dumped.lower()
        assert "Because." not in dumped

    def test_questions_in_ordinal_order(self, store, db_session, parsed):
        quiz = store.assemble("Photosynthesis", "gpt-3.5-turbo", parsed)
        db_session.expire_all()

        view = QuizStore.to_sanitized(db_session.get(Quiz, quiz.id))

        assert [q.question for q in view.questions] == [f"Question number {i}?" for i in range(1, 6)]


class TestLookups:

    def test_find_recent_newest_first_and_limited(self, store, db_session, parsed):
        quizzes = [store.assemble("Photosynthesis", "gpt-3.5-turbo", parsed) for _ in range(7)]
        for hours, quiz in enumerate(reversed(quizzes)):
            age(db_session, quiz, hours)

        recent = store.find_recent("photosynthesis:gpt-3.5-turbo", limit=5)

        assert [q.id for q in recent] == [q.id for q in reversed(quizzes)][:5]

    def test_find_recent_matches_case_insensitively(self, store, parsed):
        quiz = store.assemble("PhotoSynthesis", "gpt-3.5-turbo", parsed)

        assert [q.id for q in store.find_recent("photosynthesis:gpt-3.5-turbo")] == [quiz.id]
        assert store.find_recent("photosynthesis:gpt-4o-mini") == []

    def test_get_quiz_with_invalid_id(self, store):
        assert store.get_quiz("not-a-uuid") is None
        assert store.get_quiz("123") is None
