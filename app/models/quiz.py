"""
Quiz model - stores generated quizzes
"""
from sqlalchemy import Column, String, Boolean, TIMESTAMP, Uuid
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.timeutils import utcnow
import uuid


class Quiz(Base):
    """
    Quizzes table - one row per generated quiz, append-only
    """
    __tablename__ = "quizzes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    topic = Column(String(255), nullable=False)
    model = Column(String(100), nullable=False)
    user_id = Column(String(64), index=True)  # Opaque requester id, None for anonymous
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow, index=True)
    expires_at = Column(TIMESTAMP, nullable=False)
    is_ai_generated = Column(Boolean, nullable=False, default=False)
    cache_key = Column(String(320), index=True)  # normalized topic + ":" + model

    questions = relationship(
        "Question",
        back_populates="quiz",
        order_by="Question.question_order",
        cascade="all, delete-orphan",
    )
    submissions = relationship(
        "QuizSubmission",
        back_populates="quiz",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Quiz(id={self.id}, topic={self.topic}, model={self.model})>"
