from typing import Any, List
import os

from pydantic import Field, PostgresDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    API_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "StudyForge"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"  # Frontend URL

    # Auth (bearer tokens are decoded without verification in development)
    AUTH_ALGORITHMS: List[str] = ["RS256"]

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "studyforge"
    POSTGRES_PASSWORD: str = "studyforge"
    POSTGRES_DB: str = "studyforge"
    SQLALCHEMY_DATABASE_URI: str | None = Field(default=None, validate_default=True)

    @field_validator("SQLALCHEMY_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: str | None, info: dict[str, Any]) -> Any:
        if isinstance(v, str):
            return v
        return str(PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=info.data.get("POSTGRES_USER"),
            password=info.data.get("POSTGRES_PASSWORD"),
            host=info.data.get("POSTGRES_HOST"),
            port=info.data.get("POSTGRES_PORT"),
            path=f"{info.data.get('POSTGRES_DB') or ''}",
        ))

    # OpenAI (completion + speech-to-text)
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4.1"
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_MAX_TOKENS: int = 3000
    OPENAI_TIMEOUT_SECONDS: float = 120.0
    TRANSCRIPTION_MODEL: str = "whisper-1"

    # Extraction
    NETWORK_TIMEOUT_SECONDS: float = 30.0
    AUDIO_MAX_BYTES: int = 25 * 1024 * 1024
    OCR_TIMEOUT_SECONDS: float = 60.0
    OCR_LANGUAGE: str = "eng"
    # Intermediary used to fetch arbitrary pages; must answer {"contents": "<html>"}
    WEB_PROXY_URL: str = "https://api.allorigins.win/get"
    TRANSCRIPT_LANGUAGES: List[str] = ["en", "de"]
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024

    # Storage
    STORAGE_ROOT: str = os.path.join(
        os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), "data", "blobs"
    )
    STORAGE_PUBLIC_URL: str = "http://localhost:8000/blobs"
    STORAGE_SIGNING_KEY: str = "dev-signing-key-change-me"
    SIGNED_URL_TTL_SECONDS: int = 3600

    # Retries for external calls
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_BACKOFF_SECONDS: float = 1.0
    RETRY_MAX_BACKOFF_SECONDS: float = 30.0

    # Test Database - SQLite in-memory for tests
    TEST_DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",  # Allow extra fields from environment variables
    )


settings = Settings()
