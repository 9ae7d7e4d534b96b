from typing import List, Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Read-only access to the Kindra application database
    DATABASE_URL: Optional[str] = None

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Insight feed sizes
    MAX_AGGREGATE_INSIGHTS: int = 6
    MAX_CONNECTION_INSIGHTS: int = 4

    # Requests per minute per client
    RATE_LIMIT_PER_MINUTE: int = 60

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
