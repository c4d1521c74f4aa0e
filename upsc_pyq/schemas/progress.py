from pydantic import BaseModel
from typing import Dict, Optional


class SubjectStats(BaseModel):
    answered: int = 0
    awarded: float = 0.0
    available: int = 0


class ProfileStats(BaseModel):
    user: Dict[str, Optional[str]]
    answered_questions: int
    awarded_marks: float
    available_marks: int
    subjects: Dict[str, SubjectStats]
