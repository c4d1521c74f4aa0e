from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional, List

from upsc_pyq.core.auth import get_current_user, get_optional_user
from upsc_pyq.core.exceptions import (
    AIIntegrationError,
    QuestionNotFound,
    SearchFailed,
    StorageError,
)
from upsc_pyq.core.logging_config import logger
from upsc_pyq.schemas.answers import ModelAnswerResponse
from upsc_pyq.schemas.questions import (
    ExamQuestion,
    QuestionCreate,
    QuestionType,
    SearchParams,
    SearchResult,
    SortField,
    SortOrder,
)
from upsc_pyq.services.answers import AnswerService, get_answer_service
from upsc_pyq.services.questions import QuestionCatalogue, get_question_catalogue
from upsc_pyq.services.practice import PracticeSession, get_practice_session
from upsc_pyq.config import get_settings

router = APIRouter()


def _user_id(user) -> Optional[str]:
    return user.id if user is not None else None


@router.get("/", response_model=SearchResult)
def search_questions(
    year_start: Optional[int] = None,
    year_end: Optional[int] = None,
    exact_year: Optional[int] = Query(None, description="Overrides year_start and year_end"),
    subject: Optional[str] = None,
    exam_type: Optional[str] = None,
    question_type: Optional[QuestionType] = None,
    keywords: Optional[List[str]] = Query(None, description="Match questions sharing any keyword"),
    sort_by: SortField = SortField.YEAR,
    sort_order: Optional[SortOrder] = None,
    limit: Optional[int] = Query(None, ge=1, description="Questions per page"),
    offset: int = Query(0, ge=0),
    my_questions: bool = Query(False, description="Only questions you added"),
    session: PracticeSession = Depends(get_practice_session),
):
    # keywords may come as repeated params or one comma separated value
    keyword_list = None
    if keywords:
        keyword_list = [k.strip() for value in keywords for k in value.split(",")]

    params = SearchParams(
        year_start=year_start,
        year_end=year_end,
        exact_year=exact_year,
        subject=subject,
        exam_type=exam_type,
        question_type=question_type,
        keywords=keyword_list,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit or get_settings().SEARCH_DEFAULT_LIMIT,
        offset=offset,
        user_questions_only=my_questions,
    )
    try:
        return session.search(params)
    except SearchFailed as e:
        logger.error(f"Error fetching questions: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch questions")


@router.get("/subjects", response_model=List[str])
async def get_subjects(catalogue: QuestionCatalogue = Depends(get_question_catalogue)):
    """Subjects available for filtering"""
    try:
        return catalogue.list_subjects()
    except SearchFailed as e:
        logger.error(f"Error fetching subjects: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch subjects")


@router.get("/{question_id}", response_model=ExamQuestion)
async def get_question(
    question_id: str,
    current_user=Depends(get_optional_user),
    catalogue: QuestionCatalogue = Depends(get_question_catalogue),
):
    try:
        return catalogue.get_question(question_id, _user_id(current_user))
    except QuestionNotFound:
        raise HTTPException(status_code=404, detail="Question not found")
    except SearchFailed as e:
        logger.error(f"Error fetching question: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch question")


@router.post("/", response_model=ExamQuestion, status_code=status.HTTP_201_CREATED)
async def add_question(
    question: QuestionCreate,
    current_user=Depends(get_current_user),
    catalogue: QuestionCatalogue = Depends(get_question_catalogue),
):
    try:
        return catalogue.add_question(question, current_user.id)
    except StorageError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(
    question_id: str,
    current_user=Depends(get_current_user),
    catalogue: QuestionCatalogue = Depends(get_question_catalogue),
):
    """Delete one of your own questions"""
    try:
        catalogue.delete_question(question_id, current_user.id)
    except QuestionNotFound:
        raise HTTPException(status_code=404, detail="Question not found")
    except StorageError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{question_id}/model-answer", response_model=ModelAnswerResponse)
def generate_model_answer(
    question_id: str,
    current_user=Depends(get_optional_user),
    catalogue: QuestionCatalogue = Depends(get_question_catalogue),
    answer_service: AnswerService = Depends(get_answer_service),
):
    try:
        question = catalogue.get_question(question_id, _user_id(current_user))
        model_answer = answer_service.model_answer(question)
    except QuestionNotFound:
        raise HTTPException(status_code=404, detail="Question not found")
    except SearchFailed as e:
        logger.error(f"Error fetching question: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch question")
    except AIIntegrationError as e:
        logger.error("Error generating model answer", error=str(e), question_id=question_id)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load answer")
    return ModelAnswerResponse(question_id=question_id, model_answer=model_answer)
