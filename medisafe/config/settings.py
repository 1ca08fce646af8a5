"""
MediSafe Settings Configuration
Loads configuration from environment variables
"""

from functools import lru_cache
from typing import List, Literal, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Environment
    ENV_NAME: str = "medisafe"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Storage backends: "mongo" for deployments, "memory" for local demo and tests
    STORAGE_BACKEND: Literal["mongo", "memory"] = "mongo"
    MONGODB_URI: str = "mongodb://mongo:27017"
    MONGODB_DATABASE: str = "medisafe"

    # Public URLs
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # CORS - Can be comma-separated string or list
    CORS_ORIGINS: Union[str, List[str]] = "http://localhost:3000,http://127.0.0.1:3000"

    # Identity provider (bearer JWT validated against the provider's JWKS)
    AUTH_JWKS_URL: str = (
        "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
    )
    AUTH_AUDIENCE: Optional[str] = None
    AUTH_ISSUER: Optional[str] = None

    # Accounts served from built-in fixture data instead of the stores
    DEMO_USER_IDS: Union[str, List[str]] = "test-user-id"

    # LLM (any provider LiteLLM supports; model string carries the provider)
    LLM_MODEL: str = "gemini/gemini-2.0-flash"
    LLM_API_KEY: Optional[str] = None
    LLM_API_BASE: Optional[str] = None
    LLM_TIMEOUT: float = 60.0

    # OCR / ingestion
    TESSERACT_CMD: Optional[str] = None
    OCR_LANGUAGE: str = "eng"
    MIN_EXTRACTED_TEXT_LENGTH: int = 10
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024

    @field_validator("CORS_ORIGINS", "DEMO_USER_IDS", mode="before")
    @classmethod
    def parse_comma_separated(cls, v):
        """Parse comma-separated strings into lists."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("PUBLIC_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def is_demo_user(self, user_id: Optional[str]) -> bool:
        """Whether the account is served from fixture data."""
        return bool(user_id) and user_id in self.DEMO_USER_IDS

    class Config:
        env_file = ".env"
        case_sensitive = True
        validate_default = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
