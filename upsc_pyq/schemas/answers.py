from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime
from enum import Enum


class QuestionAnswer(BaseModel):
    """A row of the question_answers table, one per (question, user)."""

    id: str
    question_id: str
    user_id: str
    answer_text: str
    similarity_score: Optional[float] = None
    awarded_marks: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AnswerSubmit(BaseModel):
    answer_text: str = Field(..., max_length=20000)

    @field_validator("answer_text")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Answer text cannot be empty")
        return value


class ScoreStatus(str, Enum):
    SCORED = "scored"
    UNAVAILABLE = "unavailable"


class ScoreResult(BaseModel):
    similarity: float = Field(..., ge=0.0, le=1.0)
    awarded_marks: float = Field(..., ge=0.0)
    status: ScoreStatus = ScoreStatus.SCORED


class SubmissionResult(BaseModel):
    answer: QuestionAnswer
    score: ScoreResult
    reference_answer: str
    feedback: str


class ModelAnswerResponse(BaseModel):
    question_id: str
    model_answer: str
