from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List, Optional, Union
from functools import lru_cache

class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or a .env file.
    """
    # AWS / DynamoDB Configuration
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_SESSION_TOKEN: Optional[str] = None
    AWS_DEFAULT_REGION: str = "us-east-1"
    DYNAMODB_TABLE_NAME: str = "skinvault-users"
    # Point at DynamoDB Local / LocalStack during development
    DYNAMODB_ENDPOINT_URL: Optional[str] = None

    # Firebase Configuration (used by the client's identity adapter)
    FIREBASE_API_KEY: Optional[str] = None

    # Client Configuration
    API_BASE_URL: str = "http://localhost:3000"
    MOJANG_API_URL: str = "https://api.mojang.com"
    SESSION_SERVER_URL: str = "https://sessionserver.mojang.com"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    FAVORITES_POLL_INTERVAL: float = 5.0

    # Comma separated list, or "*"
    CORS_ORIGINS: Union[List[str], str] = ["*"]

    # Logging level
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the Settings object.
    """
    return Settings()
