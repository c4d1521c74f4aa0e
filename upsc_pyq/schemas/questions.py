from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Dict, Optional, List
from datetime import datetime
from enum import Enum

from upsc_pyq.schemas.answers import QuestionAnswer


SUBJECTS = [
    "History",
    "Geography",
    "Polity",
    "Economy",
    "Environment",
    "Science & Tech",
    "International Relations",
    "Ethics",
    "Essay",
    "General Studies",
    "GS1",
    "GS2",
    "GS3",
    "GS4",
]

DEFAULT_SUBJECT = "General Studies"

OPTION_LETTERS = "ABCDEFGHIJ"


def option_letter(index: int) -> str:
    return OPTION_LETTERS[index]


class ExamType(str, Enum):
    PRELIMS = "Prelims"
    MAINS = "Mains"


class QuestionType(str, Enum):
    MCQ = "mcq"
    DESCRIPTIVE = "descriptive"
    SHORT_ANSWER = "short_answer"
    MATCH = "match"
    CASE_STUDY = "case_study"


class SortField(str, Enum):
    YEAR = "year"
    SUBJECT = "subject"
    EXAM_TYPE = "exam_type"
    QUESTION_TYPE = "question_type"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class QuestionBase(BaseModel):
    question_text: str
    year: int
    subject: str
    exam_type: str
    keywords: List[str] = Field(default_factory=list)
    options: Optional[List[str]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    question_type: QuestionType = QuestionType.MCQ
    marks: int = Field(1, ge=1)


class QuestionCreate(QuestionBase):
    """A user-submitted question."""

    exam_type: ExamType = ExamType.PRELIMS

    @field_validator("subject")
    @classmethod
    def subject_in_taxonomy(cls, value: str) -> str:
        if value not in SUBJECTS:
            raise ValueError(f"Invalid subject {value!r}. Valid subjects: {', '.join(SUBJECTS)}")
        return value

    @field_validator("keywords")
    @classmethod
    def clean_keywords(cls, value: List[str]) -> List[str]:
        return [k.strip() for k in value if k and k.strip()]

    @model_validator(mode="after")
    def options_match_question_type(self):
        if self.question_type != QuestionType.MCQ:
            # only MCQs carry options and an answer key
            self.options = None
            self.correct_answer = None
            return self

        options = [o.strip() for o in (self.options or []) if o and o.strip()]
        if not options:
            raise ValueError("Multiple choice questions need at least one option")
        self.options = options
        if self.correct_answer:
            letter = self.correct_answer.strip().upper()[:1]
            if letter not in OPTION_LETTERS[: len(options)]:
                raise ValueError(f"correct_answer must be one of the option letters, got {self.correct_answer!r}")
            self.correct_answer = letter
        else:
            self.correct_answer = None
        return self

    def to_record(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class ExamQuestion(QuestionBase):
    """A row of the exam_questions table."""

    id: str
    user_id: Optional[str] = None
    is_database_question: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("keywords", mode="before")
    @classmethod
    def null_keywords(cls, value):
        return value or []

    @field_validator("question_type", mode="before")
    @classmethod
    def null_question_type(cls, value):
        # legacy rows have no question_type; they are not MCQs
        return value or QuestionType.DESCRIPTIVE

    @field_validator("marks", mode="before")
    @classmethod
    def null_marks(cls, value):
        # stored rows predating the import checks may hold 0 or negative marks
        if value is None:
            return 1
        try:
            return value if int(value) >= 1 else 1
        except (TypeError, ValueError):
            return value

    @property
    def is_mcq(self) -> bool:
        return self.question_type == QuestionType.MCQ

    def option_text(self, letter: str) -> Optional[str]:
        if not self.options or not letter:
            return None
        index = OPTION_LETTERS.find(letter.upper())
        if index < 0 or index >= len(self.options):
            return None
        return self.options[index]


class SearchParams(BaseModel):
    year_start: Optional[int] = None
    year_end: Optional[int] = None
    exact_year: Optional[int] = None
    subject: Optional[str] = None
    exam_type: Optional[str] = None
    question_type: Optional[QuestionType] = None
    keywords: Optional[List[str]] = None
    sort_by: SortField = SortField.YEAR
    sort_order: Optional[SortOrder] = None
    limit: int = Field(50, ge=1)
    offset: int = Field(0, ge=0)
    user_questions_only: bool = False

    @field_validator("keywords")
    @classmethod
    def clean_keywords(cls, value):
        if value is None:
            return None
        cleaned = [k.strip() for k in value if k and k.strip()]
        return cleaned or None

    @property
    def resolved_sort_order(self) -> SortOrder:
        if self.sort_order is not None:
            return self.sort_order
        return SortOrder.DESC if self.sort_by == SortField.YEAR else SortOrder.ASC

    @property
    def has_empty_year_range(self) -> bool:
        if self.exact_year is not None:
            return False
        return (
            self.year_start is not None
            and self.year_end is not None
            and self.year_start > self.year_end
        )


class SearchResult(BaseModel):
    questions: List[ExamQuestion]
    count: int
    limit: int
    offset: int
    has_next: bool
    next_offset: Optional[int] = None
    # the caller's stored answers for the returned questions, keyed by question id
    answers: Dict[str, QuestionAnswer] = Field(default_factory=dict)
