"""
Application configuration.
All sensitive values loaded from environment variables.
"""
from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""
    
    # Database
    DATABASE_URL: str = "postgresql+asyncpg://postgres:postgres@db:5432/trainer"
    
    # Agent service
    AGENT_BASE_URL: str = "http://localhost:3000"
    AGENT_STREAM_PATH: str = "/agent/stream"
    AGENT_API_TOKEN: str = ""
    AGENT_HTTP_TIMEOUT_SEC: float = 300.0
    
    # Upper bound for a whole agent stream. An agent that never emits
    # done/error would otherwise leave the session stuck in processing.
    AGENT_STREAM_TIMEOUT_SEC: float = 120.0
    
    # Workout artifact validation
    SHARE_SUM_TOLERANCE: float = 0.05
    
    # Goal weights are clamped to this range before persisting
    GOAL_WEIGHT_MIN: float = -10.0
    GOAL_WEIGHT_MAX: float = 10.0
    
    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console
    
    # Stream Debug Logging - logs every applied event (tag and mutation only,
    # never message content)
    STREAM_DEBUG_LOG: bool = False
    
    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
