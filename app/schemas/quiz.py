"""
Pydantic schemas for quiz-related requests and responses
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Literal, Optional
from datetime import datetime

OPTION_LABELS = ("A", "B", "C", "D")
AnswerLabel = Literal["A", "B", "C", "D"]


class QuizOptions(BaseModel):
    """The four labeled options of a question"""
    A: str = Field(..., min_length=1)
    B: str = Field(..., min_length=1)
    C: str = Field(..., min_length=1)
    D: str = Field(..., min_length=1)


class ParsedQuestion(BaseModel):
    """A question recovered from provider text, answer key included"""
    question: str = Field(..., min_length=1)
    options: Dict[str, str]
    correct_answer: AnswerLabel
    explanation: Optional[str] = None


class QuizGenerateRequest(BaseModel):
    """Request schema for quiz generation"""
    topic: str = Field(..., min_length=1, description="Quiz topic")
    model: Optional[str] = Field(None, description="AI model, defaults to the configured model")
    force_new: bool = Field(False, description="Skip cache and reuse, always generate")


class QuestionPublic(BaseModel):
    """
    Question as shown to quiz takers

    Has no correct answer or explanation field; anything extra in the
    source data (e.g. a tampered cache entry) is dropped on validation.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    question: str
    options: QuizOptions


class QuizResponse(BaseModel):
    """Sanitized quiz view"""
    model_config = ConfigDict(extra="ignore")

    id: str
    topic: str
    model: str
    created_at: datetime
    expires_at: datetime
    questions: List[QuestionPublic]


class QuizGenerateResponse(BaseModel):
    success: bool = True
    quiz: QuizResponse
    message: str


class ModelsResponse(BaseModel):
    success: bool = True
    models: List[str]


class QuizSubmitRequest(BaseModel):
    """Schema for quiz submission"""
    quiz_id: str
    answers: List[AnswerLabel] = Field(..., min_length=1)


class QuestionResult(BaseModel):
    """Grading details for a single question"""
    question_index: int
    user_answer: AnswerLabel
    correct_answer: AnswerLabel
    is_correct: bool
    explanation: str


class QuizResult(BaseModel):
    """Response after quiz grading"""
    quiz_id: str
    submission_id: str
    score: int
    total_questions: int
    percentage: int
    results: List[QuestionResult]
    feedback: str


class QuizSubmitResponse(BaseModel):
    success: bool = True
    result: QuizResult


class SubmissionSummary(BaseModel):
    id: str
    quiz_id: str
    topic: str
    score: int
    total_questions: int
    percentage: float
    submitted_at: datetime


class SubmissionHistoryResponse(BaseModel):
    success: bool = True
    submissions: List[SubmissionSummary]


class SubmittedAnswer(BaseModel):
    """Stored answer; the correct label is not revealed here"""
    question_text: str
    user_answer: AnswerLabel
    is_correct: bool
    explanation: str


class SubmissionDetail(SubmissionSummary):
    user_answers: List[SubmittedAnswer]


class SubmissionDetailResponse(BaseModel):
    success: bool = True
    submission: SubmissionDetail
