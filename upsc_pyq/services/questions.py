from typing import List, Optional

from fastapi import Depends
from supabase import Client

from upsc_pyq.config import Settings, get_settings
from upsc_pyq.core.exceptions import (
    AuthenticationRequired,
    QuestionNotFound,
    SearchFailed,
    StorageError,
)
from upsc_pyq.core.logging_config import logger
from upsc_pyq.db import get_supabase
from upsc_pyq.schemas.questions import SUBJECTS, ExamQuestion, QuestionCreate
from upsc_pyq.services.search import apply_visibility


class QuestionCatalogue:
    """Single-question reads and writes on the exam_questions table."""

    def __init__(self, supabase: Client, settings: Settings = None):
        self.supabase = supabase
        self.settings = settings or get_settings()

    @property
    def table(self):
        return self.supabase.table(self.settings.QUESTIONS_TABLE)

    def get_question(self, question_id: str, user_id: Optional[str] = None) -> ExamQuestion:
        query = apply_visibility(self.table.select("*").eq("id", question_id), user_id)
        try:
            response = query.limit(1).execute()
        except Exception as e:
            raise SearchFailed(f"Failed to fetch question {question_id}: {e}") from e
        if not response.data:
            raise QuestionNotFound(f"Question {question_id} not found")
        return ExamQuestion.model_validate(response.data[0])

    def add_question(self, question: QuestionCreate, user_id: Optional[str]) -> ExamQuestion:
        if not user_id:
            raise AuthenticationRequired()

        record = {
            **question.to_record(),
            "user_id": user_id,
            "is_database_question": False,
        }
        try:
            response = self.table.insert(record).execute()
        except Exception as e:
            logger.error("Error adding question", error=str(e), user_id=user_id)
            raise StorageError("Failed to add question") from e
        logger.info("Question added", user_id=user_id, question_id=response.data[0]["id"])
        return ExamQuestion.model_validate(response.data[0])

    def delete_question(self, question_id: str, user_id: Optional[str]) -> None:
        """Delete a question the user owns. Curated questions cannot be deleted."""
        if not user_id:
            raise AuthenticationRequired()

        try:
            response = (
                self.table.delete()
                .eq("id", question_id)
                .eq("user_id", user_id)
                .eq("is_database_question", False)
                .execute()
            )
        except Exception as e:
            logger.error("Error deleting question", error=str(e), question_id=question_id)
            raise StorageError("Failed to delete question") from e
        if not response.data:
            raise QuestionNotFound(f"Question {question_id} not found")
        logger.info("Question deleted", user_id=user_id, question_id=question_id)

    def list_subjects(self) -> List[str]:
        """The fixed taxonomy followed by any other subjects found in stored rows."""
        try:
            response = self.table.select("subject").execute()
        except Exception as e:
            raise SearchFailed(f"Failed to list subjects: {e}") from e
        stored = {row["subject"] for row in response.data if row.get("subject")}
        return SUBJECTS + sorted(stored - set(SUBJECTS))


def get_question_catalogue(supabase: Client = Depends(get_supabase)) -> QuestionCatalogue:
    return QuestionCatalogue(supabase)
