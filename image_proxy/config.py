from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from a .env file if present (local dev only)
load_dotenv()


class Settings(BaseSettings):
    """Application configuration loaded from environment variables or .env file."""

    # General
    app_name: str = Field("Image Proxy API")
    environment: Literal["production", "development"] = Field(
        "production",
        description="Error responses carry cause/stack only in development.",
    )
    log_level: str = Field("INFO")
    max_request_bytes: int = Field(500_000, description="Largest accepted request body.")

    # Access tokens
    access_token_public_key: str = Field(
        ..., description="Base64-encoded PEM public key used to verify bearer tokens."
    )
    access_token_algorithm: str = Field("RS256")

    # Remote image service
    image_service_url: str = Field(..., description="Base URL of the image hosting API.")
    image_service_token: str = Field(..., description="Value of the X-API-Private-Token header.")
    image_service_timeout: float = Field(10.0)

    # Firebase
    firebase_database_url: Optional[str] = Field(
        default=None,
        description="Realtime Database URL, e.g. https://<project>.firebaseio.com",
    )
    firebase_credentials_json: Optional[str] = Field(
        default=None,
        validation_alias="GOOGLE_APPLICATION_CREDENTIALS",
        description="Path to service-account JSON file or JSON string itself.",
    )

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:  # pragma: no cover
    """Return a cached Settings instance so it is only parsed once."""

    return Settings()
