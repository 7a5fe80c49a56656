"""
Quiz assembly and persistence

QuizStore turns parsed questions into a stored Quiz and renders the
sanitized view handed to quiz takers. SubmissionRecorder writes graded
submissions as a two-phase operation with an explicit undo step.
"""
import logging
import uuid
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.exceptions import (
    QuizAccessDeniedError,
    QuizNotFoundError,
    QuizPersistenceError,
    QuizValidationError,
)
from app.models import Question, Quiz, QuizSubmission, UserAnswer
from app.schemas.quiz import OPTION_LABELS, ParsedQuestion, QuestionPublic, QuizOptions, QuizResponse
from app.utils.cache import build_cache_key
from app.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


def parse_id(value) -> Optional[uuid.UUID]:
    """Parse a row id from user input, None when it is not a valid id"""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def check_ownership(quiz: Quiz, user_id: Optional[str]) -> None:
    """Quizzes bound to a requester are only usable by that requester"""
    if quiz.user_id and quiz.user_id != user_id:
        logger.warning(f"Requester {user_id} denied access to quiz {quiz.id} owned by {quiz.user_id}")
        raise QuizAccessDeniedError()


class QuizStore:
    """Durable quiz storage backed by a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def find_recent(self, cache_key: str, limit: int = None) -> List[Quiz]:
        """Most recent quizzes for a reuse key, newest first"""
        limit = limit or settings.REUSE_CANDIDATE_LIMIT
        return (
            self.db.query(Quiz)
            .options(selectinload(Quiz.questions))
            .filter(Quiz.cache_key == cache_key)
            .order_by(Quiz.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_quiz(self, quiz_id) -> Optional[Quiz]:
        """Load a quiz with its questions in order"""
        parsed_id = parse_id(quiz_id)
        if parsed_id is None:
            return None
        return (
            self.db.query(Quiz)
            .options(selectinload(Quiz.questions))
            .filter(Quiz.id == parsed_id)
            .first()
        )

    def load_quiz(self, quiz_id) -> Quiz:
        """Like get_quiz, but a missing quiz is an error"""
        try:
            quiz = self.get_quiz(quiz_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load quiz {quiz_id}: {str(e)}")
            raise QuizPersistenceError("Failed to load quiz. Please try again later.") from e
        if quiz is None:
            raise QuizNotFoundError()
        return quiz

    def assemble(
        self,
        topic: str,
        model: str,
        parsed_questions: Sequence[ParsedQuestion],
        user_id: Optional[str] = None,
    ) -> Quiz:
        """
        Build and persist a quiz from parsed questions

        Args:
            topic: Quiz topic as requested (trimmed before storing)
            model: Model that generated the questions
            parsed_questions: Exactly QUIZ_QUESTION_COUNT questions, in order
            user_id: Requester the quiz is bound to, None for anonymous

        Returns:
            The stored Quiz with its questions

        Raises:
            QuizValidationError: wrong question count or malformed question
            QuizPersistenceError: the write failed and was rolled back
        """
        self._validate_questions(parsed_questions)

        created_at = utcnow()
        quiz = Quiz(
            topic=topic.strip(),
            model=model,
            user_id=user_id,
            created_at=created_at,
            expires_at=created_at + timedelta(hours=settings.QUIZ_LIFETIME_HOURS),
            is_ai_generated=True,
            cache_key=build_cache_key(topic, model),
        )
        quiz.questions = [
            Question(
                question_text=parsed.question,
                options={label: parsed.options[label] for label in OPTION_LABELS},
                correct_answer=parsed.correct_answer,
                explanation=parsed.explanation,
                question_order=position,
            )
            for position, parsed in enumerate(parsed_questions, start=1)
        ]

        # Quiz and questions go in one commit, so a quiz is never stored without them
        try:
            self.db.add(quiz)
            self.db.commit()
            self.db.refresh(quiz)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating quiz in database: {str(e)}")
            raise QuizPersistenceError("Failed to save quiz to database. Please try again later.") from e

        logger.info(f"Quiz created: {quiz.id} (topic={quiz.topic!r}, model={model})")
        return quiz

    @staticmethod
    def _validate_questions(parsed_questions: Sequence[ParsedQuestion]) -> None:
        expected = settings.QUIZ_QUESTION_COUNT
        if len(parsed_questions) != expected:
            raise QuizValidationError(
                f"A quiz needs exactly {expected} questions, got {len(parsed_questions)}"
            )

        for position, parsed in enumerate(parsed_questions, start=1):
            if set(parsed.options) != set(OPTION_LABELS):
                raise QuizValidationError(f"Question {position} must have options A, B, C and D")
            if any(not parsed.options[label].strip() for label in OPTION_LABELS):
                raise QuizValidationError(f"Question {position} has an empty option")
            if parsed.correct_answer not in parsed.options:
                raise QuizValidationError(f"Question {position} has no valid correct answer")

    @staticmethod
    def to_sanitized(quiz: Quiz) -> QuizResponse:
        """
        External view of a quiz: no correct answers, no explanations

        Built field by field from the row, never from a dump of it.
        """
        return QuizResponse(
            id=str(quiz.id),
            topic=quiz.topic,
            model=quiz.model,
            created_at=quiz.created_at,
            expires_at=quiz.expires_at,
            questions=[
                QuestionPublic(
                    id=str(question.id),
                    question=question.question_text,
                    options=QuizOptions(**{label: question.options[label] for label in OPTION_LABELS}),
                )
                for question in sorted(quiz.questions, key=lambda q: q.question_order)
            ],
        )

    def list_submissions(self, user_id: Optional[str]) -> List[QuizSubmission]:
        """Submission history of a requester, newest first"""
        return (
            self.db.query(QuizSubmission)
            .options(selectinload(QuizSubmission.quiz))
            .filter(QuizSubmission.user_id == user_id)
            .order_by(QuizSubmission.submitted_at.desc())
            .all()
        )

    def get_submission(self, submission_id) -> Optional[QuizSubmission]:
        parsed_id = parse_id(submission_id)
        if parsed_id is None:
            return None
        return (
            self.db.query(QuizSubmission)
            .options(
                selectinload(QuizSubmission.quiz),
                selectinload(QuizSubmission.user_answers).selectinload(UserAnswer.question),
            )
            .filter(QuizSubmission.id == parsed_id)
            .first()
        )


class SubmissionRecorder:
    """
    Writes a graded submission as one logical unit

    Phase 1 stores the QuizSubmission, phase 2 stores its UserAnswer rows.
    If phase 2 fails, undo() deletes the submission before the error is
    raised, so no submission exists without its answers.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        quiz: Quiz,
        user_id: Optional[str],
        score: int,
        percentage: int,
        answers: Sequence[dict],
    ) -> QuizSubmission:
        """
        Persist a submission and its answers

        Args:
            quiz: The graded quiz
            user_id: Submitting requester
            score: Number of correct answers
            percentage: Rounded percentage
            answers: One dict per question with question_id, user_answer, is_correct

        Raises:
            QuizPersistenceError: either phase failed; nothing is left behind
        """
        submission = self.create_submission(quiz, user_id, score, len(answers), percentage)
        submission_id = submission.id

        try:
            self.create_answers(submission_id, answers)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save user answers for submission {submission_id}: {str(e)}")
            self.undo(submission_id)
            raise QuizPersistenceError("Failed to save user answers. Please try again later.") from e

        self.db.refresh(submission)
        return submission

    def create_submission(
        self,
        quiz: Quiz,
        user_id: Optional[str],
        score: int,
        total_questions: int,
        percentage: int,
    ) -> QuizSubmission:
        """Phase 1: store the submission row"""
        submission = QuizSubmission(
            quiz_id=quiz.id,
            user_id=user_id,
            submitted_at=utcnow(),
            score=score,
            total_questions=total_questions,
            percentage=Decimal(percentage),
        )
        try:
            self.db.add(submission)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save quiz submission: {str(e)}")
            raise QuizPersistenceError("Failed to save quiz submission. Please try again later.") from e
        return submission

    def create_answers(self, submission_id: uuid.UUID, answers: Sequence[dict]) -> None:
        """Phase 2: store every answer of the submission"""
        submitted_at = utcnow()
        self.db.add_all(
            [
                UserAnswer(
                    submission_id=submission_id,
                    question_id=answer["question_id"],
                    user_answer=answer["user_answer"],
                    is_correct=answer["is_correct"],
                    submitted_at=submitted_at,
                )
                for answer in answers
            ]
        )
        self.db.commit()

    def undo(self, submission_id: uuid.UUID) -> None:
        """Compensating delete for phase 1"""
        try:
            self.db.query(QuizSubmission).filter(QuizSubmission.id == submission_id).delete(
                synchronize_session=False
            )
            self.db.commit()
            logger.info(f"Rolled back quiz submission {submission_id}")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.critical(f"Failed to clean up quiz submission {submission_id}: {str(e)}")
