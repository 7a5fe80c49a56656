"""
Shared FastAPI dependencies
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.grading_service import GradingService
from app.services.quiz_service import QuizService

REQUESTER_HEADER = "X-User-Id"


def get_requester_id(x_user_id: Optional[str] = Header(None, alias=REQUESTER_HEADER)) -> Optional[str]:
    """
    Opaque requester identity set by the upstream auth layer

    Missing or blank header means an anonymous requester.
    """
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


def get_quiz_service(db: Session = Depends(get_db)) -> QuizService:
    return QuizService(db)


def get_grading_service(db: Session = Depends(get_db)) -> GradingService:
    return GradingService(db)
