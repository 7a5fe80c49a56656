"""
Quiz grading service

Answers are graded by ordinal position against the stored answer key.
The submission and its answers are persisted through SubmissionRecorder,
which undoes the submission row if the answers cannot be written.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import (
    QuizAccessDeniedError,
    QuizExpiredError,
    QuizNotFoundError,
    QuizPersistenceError,
    QuizValidationError,
)
from app.models import Question, QuizSubmission
from app.schemas.quiz import (
    OPTION_LABELS,
    QuestionResult,
    QuizResult,
    SubmissionDetail,
    SubmissionSummary,
    SubmittedAnswer,
)
from app.services.quiz_store import QuizStore, SubmissionRecorder, check_ownership
from app.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

NO_EXPLANATION = "No explanation available"

# (minimum percentage, feedback), checked top to bottom
FEEDBACK_BANDS = (
    (90, "Excellent! You have a deep understanding of this topic."),
    (80, "Great job! You have a solid grasp of this topic."),
    (70, "Good work! You understand most of the key concepts."),
    (60, "Not bad! You have a basic understanding but room for improvement."),
    (50, "You're on the right track! Review the material and try again."),
    (0, "Keep studying! This topic needs more attention."),
)


def calculate_percentage(score: int, total: int) -> int:
    """score / total as a whole percentage, halves rounded up"""
    if total <= 0:
        return 0
    exact = Decimal(score) * 100 / Decimal(total)
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def feedback_for(percentage: int) -> str:
    for minimum, message in FEEDBACK_BANDS:
        if percentage >= minimum:
            return message
    return FEEDBACK_BANDS[-1][1]


class GradingService:
    """
    Service for grading quiz submissions

    Strategy:
    - Reject expired quizzes and quizzes owned by someone else before grading
    - Exact label match per ordinal position
    - Persist submission + answers as one unit
    """

    def __init__(self, db: Session):
        self.db = db
        self.store = QuizStore(db)
        self.recorder = SubmissionRecorder(db)

    def submit_quiz(
        self,
        quiz_id: str,
        answers: Sequence[str],
        user_id: Optional[str] = None,
    ) -> QuizResult:
        """
        Grade and store a complete quiz submission

        Args:
            quiz_id: Stored quiz id
            answers: One label (A-D) per question, in question order
            user_id: Submitting requester, None for anonymous

        Returns:
            Score, percentage, per-question breakdown and feedback

        Raises:
            QuizValidationError: malformed answers or wrong answer count
            QuizNotFoundError: unknown quiz id
            QuizExpiredError: the quiz is past its expiration
            QuizAccessDeniedError: the quiz belongs to another requester
            QuizPersistenceError: the submission could not be saved
        """
        self._validate_labels(answers)

        quiz = self.store.load_quiz(quiz_id)

        if utcnow() > quiz.expires_at:
            logger.info(f"Rejected submission for expired quiz {quiz.id}")
            raise QuizExpiredError("Quiz has expired. Please generate a new quiz.")

        check_ownership(quiz, user_id)

        questions = sorted(quiz.questions, key=lambda q: q.question_order)
        if len(answers) != len(questions):
            raise QuizValidationError(
                f"Expected {len(questions)} answers, got {len(answers)}"
            )

        logger.info(f"Grading quiz {quiz.id} for user {user_id}")
        score, results = self.grade(questions, answers)
        total = len(questions)
        percentage = calculate_percentage(score, total)

        submission = self.recorder.record(
            quiz,
            user_id,
            score,
            percentage,
            [
                {
                    "question_id": question.id,
                    "user_answer": result.user_answer,
                    "is_correct": result.is_correct,
                }
                for question, result in zip(questions, results)
            ],
        )

        logger.info(
            f"Quiz submission saved: {submission.id}, user {user_id}, "
            f"score {score}/{total} ({percentage}%)"
        )

        return QuizResult(
            quiz_id=str(quiz.id),
            submission_id=str(submission.id),
            score=score,
            total_questions=total,
            percentage=percentage,
            results=results,
            feedback=feedback_for(percentage),
        )

    @staticmethod
    def grade(questions: Sequence[Question], answers: Sequence[str]) -> Tuple[int, List[QuestionResult]]:
        """Compare each answer with the stored label at the same position"""
        score = 0
        results = []
        for index, (question, answer) in enumerate(zip(questions, answers)):
            is_correct = answer == question.correct_answer
            if is_correct:
                score += 1
            results.append(
                QuestionResult(
                    question_index=index,
                    user_answer=answer,
                    correct_answer=question.correct_answer,
                    is_correct=is_correct,
                    explanation=question.explanation or NO_EXPLANATION,
                )
            )
        return score, results

    @staticmethod
    def _validate_labels(answers: Sequence[str]) -> None:
        if isinstance(answers, str) or not answers:
            raise QuizValidationError("Quiz ID and answers array are required")
        invalid = [answer for answer in answers if answer not in OPTION_LABELS]
        if invalid:
            raise QuizValidationError(
                f"Answers must be one of {', '.join(OPTION_LABELS)}; got {invalid!r}"
            )

    def list_submissions(self, user_id: Optional[str]) -> List[SubmissionSummary]:
        """Submission history of a requester, newest first"""
        self._require_requester(user_id)
        try:
            submissions = self.store.list_submissions(user_id)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching quiz submission history: {str(e)}")
            raise QuizPersistenceError("Failed to fetch quiz submission history") from e
        return [self._summary(submission) for submission in submissions]

    def get_submission(self, submission_id: str, user_id: Optional[str]) -> SubmissionDetail:
        """Detailed results of one submission; correct labels stay hidden"""
        self._require_requester(user_id)
        try:
            submission = self.store.get_submission(submission_id)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching submission details: {str(e)}")
            raise QuizPersistenceError("Failed to fetch submission details") from e

        if submission is None:
            raise QuizNotFoundError("Submission not found.")
        if submission.user_id != user_id:
            raise QuizAccessDeniedError("Access denied. You can only view your own submissions.")

        answers = sorted(submission.user_answers, key=lambda a: a.question.question_order)
        return SubmissionDetail(
            **self._summary(submission).model_dump(),
            user_answers=[
                SubmittedAnswer(
                    question_text=answer.question.question_text,
                    user_answer=answer.user_answer,
                    is_correct=answer.is_correct,
                    explanation=answer.question.explanation or NO_EXPLANATION,
                )
                for answer in answers
            ],
        )

    @staticmethod
    def _require_requester(user_id: Optional[str]) -> None:
        # Anonymous submissions share a null owner, so they are not retrievable
        if not user_id:
            raise QuizAccessDeniedError("Access denied. Submission history requires a user identity.")

    @staticmethod
    def _summary(submission: QuizSubmission) -> SubmissionSummary:
        return SubmissionSummary(
            id=str(submission.id),
            quiz_id=str(submission.quiz_id),
            topic=submission.quiz.topic,
            score=submission.score,
            total_questions=submission.total_questions,
            percentage=float(submission.percentage),
            submitted_at=submission.submitted_at,
        )
