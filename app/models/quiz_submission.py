"""
QuizSubmission model - stores graded quiz submissions
"""
from sqlalchemy import Column, String, Integer, TIMESTAMP, DECIMAL, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.timeutils import utcnow
import uuid


class QuizSubmission(Base):
    """
    Quiz submissions table - one row per successful submit, never updated
    """
    __tablename__ = "quiz_submissions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(64), index=True)
    submitted_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    percentage = Column(DECIMAL(5, 2), nullable=False)

    quiz = relationship("Quiz", back_populates="submissions")
    user_answers = relationship(
        "UserAnswer",
        back_populates="submission",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<QuizSubmission(user_id={self.user_id}, quiz_id={self.quiz_id}, score={self.score}/{self.total_questions})>"
