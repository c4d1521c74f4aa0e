from typing import List, Optional

from fastapi import Depends
from pydantic import ValidationError
from supabase import Client

from upsc_pyq.config import Settings, get_settings
from upsc_pyq.core.exceptions import SearchFailed
from upsc_pyq.core.logging_config import OperationLogger, logger
from upsc_pyq.db import get_supabase
from upsc_pyq.schemas.questions import ExamQuestion, SearchParams, SearchResult


def apply_visibility(query, user_id: Optional[str], own_only: bool = False):
    """Restrict a question query to the rows the caller may see.

    Own questions only, curated plus own, or curated only for anonymous callers.
    """
    if user_id and own_only:
        return query.eq("user_id", user_id)
    if user_id:
        return query.or_(f"is_database_question.eq.true,user_id.eq.{user_id}")
    return query.eq("is_database_question", True)


class QuestionSearchService:
    def __init__(self, supabase: Client, settings: Settings = None):
        self.supabase = supabase
        self.settings = settings or get_settings()

    def search(self, params: SearchParams, user_id: Optional[str] = None) -> SearchResult:
        """Filtered, sorted page of questions plus the total number of matches.

        Rows are ordered by ``params.sort_by`` and then by id ascending, so
        equal sort keys always come back in the same order.
        """
        limit = min(params.limit, self.settings.SEARCH_MAX_LIMIT)

        if params.has_empty_year_range:
            logger.info(
                "Empty year range, skipping query",
                year_start=params.year_start,
                year_end=params.year_end,
            )
            return self._page([], 0, limit, params.offset)

        with OperationLogger(
            "question_search",
            user_id=user_id,
            subject=params.subject,
            exam_type=params.exam_type,
            offset=params.offset,
            limit=limit,
        ) as op:
            query = self.supabase.table(self.settings.QUESTIONS_TABLE).select("*", count="exact")
            query = apply_visibility(query, user_id, params.user_questions_only)

            if params.exact_year is not None:
                query = query.eq("year", params.exact_year)
            else:
                if params.year_start is not None:
                    query = query.gte("year", params.year_start)
                if params.year_end is not None:
                    query = query.lte("year", params.year_end)

            if params.subject:
                query = query.eq("subject", params.subject)
            if params.exam_type:
                query = query.eq("exam_type", params.exam_type)
            if params.question_type:
                query = query.eq("question_type", params.question_type.value)
            if params.keywords:
                query = query.overlaps("keywords", params.keywords)

            descending = params.resolved_sort_order.value == "desc"
            query = (
                query.order(params.sort_by.value, desc=descending)
                .order("id")
                .range(params.offset, params.offset + limit - 1)
            )

            try:
                response = query.execute()
            except Exception as e:
                raise SearchFailed(f"Question search failed: {e}") from e
            questions = self._questions(response.data)

            count = response.count if response.count is not None else len(questions)
            op.bind(count=count, returned=len(questions))

        return self._page(questions, count, limit, params.offset)

    @staticmethod
    def _questions(rows) -> List[ExamQuestion]:
        """Validate stored rows, dropping any that no longer fit the model."""
        questions = []
        for row in rows:
            try:
                questions.append(ExamQuestion.model_validate(row))
            except ValidationError as e:
                logger.warning("Skipping invalid question row", question_id=row.get("id"), error=str(e))
        return questions

    @staticmethod
    def _page(questions, count: int, limit: int, offset: int) -> SearchResult:
        has_next = offset + len(questions) < count
        return SearchResult(
            questions=questions,
            count=count,
            limit=limit,
            offset=offset,
            has_next=has_next,
            next_offset=offset + limit if has_next else None,
        )


def get_search_service(supabase: Client = Depends(get_supabase)) -> QuestionSearchService:
    return QuestionSearchService(supabase)
