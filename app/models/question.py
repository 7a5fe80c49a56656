"""
Question model - one multiple-choice question of a quiz
"""
from sqlalchemy import Column, String, Text, Integer, ForeignKey, JSON, Uuid, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from app.database import Base
import uuid


class Question(Base):
    """
    Questions table - ordered questions with answer key
    """
    __tablename__ = "questions"
    __table_args__ = (
        UniqueConstraint("quiz_id", "question_order", name="uq_questions_quiz_order"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_text = Column(Text, nullable=False)
    options = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)  # {"A": ..., "D": ...}
    correct_answer = Column(String(1), nullable=False)
    explanation = Column(Text)
    question_order = Column(Integer, nullable=False)  # 1..5

    quiz = relationship("Quiz", back_populates="questions")

    def __repr__(self):
        return f"<Question(id={self.id}, quiz_id={self.quiz_id}, order={self.question_order})>"
