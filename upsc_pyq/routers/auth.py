from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr
from upsc_pyq.core.logging_config import logger
from upsc_pyq.db import get_supabase
from supabase import Client

router = APIRouter()


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    name: str


class UserLogin(BaseModel):
    email: EmailStr
    password: str


@router.post("/signup")
async def signup(user_data: UserCreate, supabase: Client = Depends(get_supabase)):
    """Sign up with email/password"""
    try:
        auth_response = supabase.auth.sign_up({
            "email": user_data.email,
            "password": user_data.password,
            "options": {
                "data": {"name": user_data.name}
            }
        })
    except Exception as e:
        logger.warning(f"Signup failed: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "message": "Signup successful",
        "user_id": auth_response.user.id if auth_response.user else None,
    }


@router.post("/login")
async def login(credentials: UserLogin, supabase: Client = Depends(get_supabase)):
    """Log in with email/password"""
    try:
        auth_response = supabase.auth.sign_in_with_password({
            "email": credentials.email,
            "password": credentials.password
        })
    except Exception as e:
        logger.warning(f"Login failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return {
        "access_token": auth_response.session.access_token,
        "user_id": auth_response.user.id,
    }
