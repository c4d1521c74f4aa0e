from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from the environment or a local .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_TITLE: str = "UPSC PYQ API"
    APP_VERSION: str = "1.0.0"

    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    QUESTIONS_TABLE: str = "exam_questions"
    ANSWERS_TABLE: str = "question_answers"

    # LLM providers, tried in AI_PROVIDER_PRIORITY order
    AI_PROVIDER_PRIORITY: List[str] = ["openai", "gemini"]
    AI_TIMEOUT_SECONDS: int = 30
    OPENAI_API_KEY: str = ""
    OPENAI_API_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_MODEL: str = "gpt-4o-mini"
    GEMINI_API_KEY: str = ""
    GEMINI_API_URL: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-1.5-flash:generateContent"
    )

    SEARCH_DEFAULT_LIMIT: int = 50
    SEARCH_MAX_LIMIT: int = 100
    IMPORT_BATCH_SIZE: int = 100

    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
