from typing import Optional

from fastapi import Depends
from supabase import Client

from upsc_pyq.config import Settings, get_settings
from upsc_pyq.core.exceptions import SearchFailed
from upsc_pyq.db import get_supabase
from upsc_pyq.schemas.progress import ProfileStats, SubjectStats


class ProgressService:
    def __init__(self, supabase: Client, settings: Settings = None):
        self.supabase = supabase
        self.settings = settings or get_settings()

    def profile(self, user_id: str, name: Optional[str] = None, email: Optional[str] = None) -> ProfileStats:
        """Answered questions and marks, overall and per subject"""
        try:
            answers = (
                self.supabase.table(self.settings.ANSWERS_TABLE)
                .select("question_id, awarded_marks")
                .eq("user_id", user_id)
                .execute()
            ).data
            question_ids = [a["question_id"] for a in answers]
            questions = []
            if question_ids:
                questions = (
                    self.supabase.table(self.settings.QUESTIONS_TABLE)
                    .select("id, subject, marks")
                    .in_("id", question_ids)
                    .execute()
                ).data
        except Exception as e:
            raise SearchFailed(f"Failed to load progress: {e}") from e

        questions_by_id = {q["id"]: q for q in questions}
        subjects = {}
        for answer in answers:
            question = questions_by_id.get(answer["question_id"])
            if question is None:
                continue
            stats = subjects.setdefault(question["subject"], SubjectStats())
            stats.answered += 1
            stats.awarded += answer.get("awarded_marks") or 0.0
            stats.available += question.get("marks") or 1

        return ProfileStats(
            user={"name": name, "email": email},
            answered_questions=sum(s.answered for s in subjects.values()),
            awarded_marks=sum(s.awarded for s in subjects.values()),
            available_marks=sum(s.available for s in subjects.values()),
            subjects=subjects,
        )


def get_progress_service(supabase: Client = Depends(get_supabase)) -> ProgressService:
    return ProgressService(supabase)
