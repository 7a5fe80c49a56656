"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "sqlite:///./quiz.db"
    DB_POOL_TIMEOUT: int = 10

    # LLM providers (a missing key only fails calls routed to that provider)
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    GEMINI_API_KEY: Optional[str] = None
    AVAILABLE_MODELS: List[str] = [
        "gpt-3.5-turbo",
        "gpt-4o-mini",
        "claude-3-haiku-20240307",
        "gemini-1.5-flash",
    ]
    DEFAULT_MODEL: str = "gpt-3.5-turbo"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 1000
    LLM_TIMEOUT_SECONDS: float = 30.0

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_SOCKET_TIMEOUT: float = 2.0

    # Application
    APP_NAME: str = "AI Quiz Generation Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_PER_HOUR: int = 1000

    # Quiz Settings
    QUIZ_CACHE_TTL: int = 3600  # 1 hour
    QUIZ_REUSE_WINDOW_HOURS: int = 24
    QUIZ_LIFETIME_HOURS: int = 24
    REUSE_CANDIDATE_LIMIT: int = 5
    QUIZ_QUESTION_COUNT: int = 5
    MAX_TOPIC_LENGTH: int = 200

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
