"""
Quiz generation and submission API endpoints
"""

from fastapi import APIRouter, Depends
from typing import Optional
import logging
from app.api.deps import get_grading_service, get_quiz_service, get_requester_id
from app.config import settings
from app.schemas.quiz import (
    ModelsResponse,
    QuizGenerateRequest,
    QuizGenerateResponse,
    QuizResponse,
    QuizSubmitRequest,
    QuizSubmitResponse,
    SubmissionDetailResponse,
    SubmissionHistoryResponse,
)
from app.services.grading_service import GradingService
from app.services.quiz_service import QuizService


router = APIRouter(prefix="/api/quiz", tags=["quiz"])
logger = logging.getLogger(__name__)

# Handlers are plain functions: FastAPI runs them in its threadpool, so the
# blocking provider and database calls do not stall the event loop.


@router.get("/models", response_model=ModelsResponse)
def list_models():
    """Available AI models for quiz generation"""
    return ModelsResponse(models=settings.AVAILABLE_MODELS)


@router.post("/generate", response_model=QuizGenerateResponse)
def generate_quiz(
    request: QuizGenerateRequest,
    user_id: Optional[str] = Depends(get_requester_id),
    quiz_service: QuizService = Depends(get_quiz_service),
):
    """
    Generate a quiz for a topic

    - Checks the Redis cache first (1-hour TTL)
    - Reuses the newest stored quiz for the same topic/model if under 24 hours old
    - Otherwise generates five questions with the model's provider
    - force_new skips both lookups
    - Correct answers and explanations are never returned
    """
    logger.info(
        f"Generating quiz for topic: {request.topic!r} with model: {request.model} "
        f"for user: {user_id}{' (forced new)' if request.force_new else ''}"
    )

    quiz = quiz_service.generate_quiz(
        topic=request.topic,
        model=request.model,
        force_new=request.force_new,
        user_id=user_id,
    )

    return QuizGenerateResponse(
        quiz=quiz,
        message=(
            f"Quiz generated successfully for topic: {quiz.topic}"
            f"{' (new generation)' if request.force_new else ''}"
        ),
    )


@router.post("/submit", response_model=QuizSubmitResponse)
def submit_quiz(
    submission: QuizSubmitRequest,
    user_id: Optional[str] = Depends(get_requester_id),
    grading_service: GradingService = Depends(get_grading_service),
):
    """
    Submit answers for a quiz and receive score, per-question results and feedback

    Expired quizzes and quizzes owned by another user are rejected without grading.
    """
    result = grading_service.submit_quiz(
        quiz_id=submission.quiz_id,
        answers=submission.answers,
        user_id=user_id,
    )
    return QuizSubmitResponse(result=result)


@router.get("/submissions/history", response_model=SubmissionHistoryResponse)
def submission_history(
    user_id: Optional[str] = Depends(get_requester_id),
    grading_service: GradingService = Depends(get_grading_service),
):
    """Quiz submissions of the requesting user, newest first"""
    return SubmissionHistoryResponse(submissions=grading_service.list_submissions(user_id))


@router.get("/submissions/{submission_id}", response_model=SubmissionDetailResponse)
def submission_detail(
    submission_id: str,
    user_id: Optional[str] = Depends(get_requester_id),
    grading_service: GradingService = Depends(get_grading_service),
):
    """Detailed results of one of the requesting user's submissions"""
    return SubmissionDetailResponse(
        submission=grading_service.get_submission(submission_id, user_id)
    )


@router.get("/{quiz_id}", response_model=QuizResponse)
def get_quiz(
    quiz_id: str,
    user_id: Optional[str] = Depends(get_requester_id),
    quiz_service: QuizService = Depends(get_quiz_service),
):
    """Stored quiz without correct answers, for review"""
    return quiz_service.get_quiz(quiz_id, user_id)
