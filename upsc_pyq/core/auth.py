from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from upsc_pyq.db import get_supabase
from upsc_pyq.core.logging_config import logger
from typing import List, Optional
from supabase import Client
from enum import Enum

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


class UserRole(str, Enum):
    ADMIN = "admin"
    STUDENT = "student"


def user_role(user) -> UserRole:
    metadata = getattr(user, "user_metadata", None) or {}
    try:
        return UserRole(metadata.get("role", UserRole.STUDENT.value))
    except ValueError:
        return UserRole.STUDENT


def check_roles(required_roles: List[UserRole]):
    """Dependency factory for role checking"""

    async def role_checker(current_user=Depends(get_current_user)):
        role = user_role(current_user)
        if role not in required_roles:
            logger.warning(
                f"User {current_user.id} with role {role.value} attempted to access restricted endpoint"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
            )
        return current_user

    return role_checker


def _resolve_user(token: str, supabase: Client):
    try:
        user = supabase.auth.get_user(token)
    except Exception as e:
        logger.error(f"Authentication error: {str(e)}")
        user = None
    if user is None or user.user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user.user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    supabase: Client = Depends(get_supabase),
):
    return _resolve_user(credentials.credentials, supabase)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    supabase: Client = Depends(get_supabase),
):
    """Current user when a bearer token is sent, otherwise None (anonymous)."""
    if credentials is None:
        return None
    return _resolve_user(credentials.credentials, supabase)
