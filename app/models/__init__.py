"""
Database models package
"""
from app.models.quiz import Quiz
from app.models.question import Question
from app.models.quiz_submission import QuizSubmission
from app.models.user_answer import UserAnswer

__all__ = ["Quiz", "Question", "QuizSubmission", "UserAnswer"]
