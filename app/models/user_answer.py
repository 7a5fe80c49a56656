"""
UserAnswer model - per-question answers of a submission
"""
from sqlalchemy import Column, String, Boolean, TIMESTAMP, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.timeutils import utcnow
import uuid


class UserAnswer(Base):
    """
    User answers table - correctness is frozen at submission time
    """
    __tablename__ = "user_answers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("quiz_submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id"), nullable=False)
    user_answer = Column(String(1), nullable=False)
    is_correct = Column(Boolean, nullable=False)
    submitted_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    submission = relationship("QuizSubmission", back_populates="user_answers")
    question = relationship("Question")

    def __repr__(self):
        return f"<UserAnswer(submission_id={self.submission_id}, question_id={self.question_id}, correct={self.is_correct})>"
