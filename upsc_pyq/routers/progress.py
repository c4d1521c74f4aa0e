from fastapi import APIRouter, Depends, HTTPException, status

from upsc_pyq.core.auth import get_current_user
from upsc_pyq.core.exceptions import SearchFailed
from upsc_pyq.core.logging_config import logger
from upsc_pyq.schemas.progress import ProfileStats
from upsc_pyq.services.progress import ProgressService, get_progress_service

router = APIRouter()


@router.get("/profile", response_model=ProfileStats)
async def get_profile(
    current_user=Depends(get_current_user),
    progress_service: ProgressService = Depends(get_progress_service),
):
    """Answered questions and marks, overall and by subject"""
    metadata = getattr(current_user, "user_metadata", None) or {}
    try:
        return progress_service.profile(
            current_user.id,
            name=metadata.get("name"),
            email=getattr(current_user, "email", None),
        )
    except SearchFailed as e:
        logger.error(f"Error fetching profile: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load progress")
