from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional

from upsc_pyq.core.auth import get_current_user
from upsc_pyq.core.exceptions import (
    AIIntegrationError,
    AuthenticationRequired,
    InvalidAnswer,
    QuestionNotFound,
    SearchFailed,
    StorageError,
)
from upsc_pyq.core.logging_config import logger
from upsc_pyq.schemas.answers import AnswerSubmit, QuestionAnswer, SubmissionResult
from upsc_pyq.services.answers import AnswerService, get_answer_service

router = APIRouter()


@router.post("/{question_id}/answers", response_model=SubmissionResult)
def submit_answer(
    question_id: str,
    submission: AnswerSubmit,
    current_user=Depends(get_current_user),
    answer_service: AnswerService = Depends(get_answer_service),
):
    """Submit (or resubmit) your answer and get it scored"""
    try:
        return answer_service.submit(question_id, current_user.id, submission.answer_text)
    except AuthenticationRequired as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except InvalidAnswer as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QuestionNotFound:
        raise HTTPException(status_code=404, detail="Question not found")
    except AIIntegrationError as e:
        logger.error("Error evaluating answer", error=str(e), question_id=question_id)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to evaluate your answer")
    except (SearchFailed, StorageError) as e:
        logger.error("Error saving answer", error=str(e), question_id=question_id)
        raise HTTPException(status_code=400, detail="Failed to save your answer")


@router.get("/{question_id}/answers/me", response_model=Optional[QuestionAnswer])
async def get_my_answer(
    question_id: str,
    current_user=Depends(get_current_user),
    answer_service: AnswerService = Depends(get_answer_service),
):
    try:
        return answer_service.get_user_answer(question_id, current_user.id)
    except SearchFailed as e:
        logger.error(f"Error loading answer: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load answer")
