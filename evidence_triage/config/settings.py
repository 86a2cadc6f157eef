"""
Application settings with environment variable support.

Configuration is loaded from environment variables with optional .env file.
The Case.dev API key is only checked when a remote call is made, so the
service can start (and serve the local cache) without it.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Case.dev remote API (vault, OCR, LLM gateway)
    casedev_api_key: Optional[str] = Field(default=None, alias="CASEDEV_API_KEY")
    casedev_api_base: str = Field(
        default="https://api.case.dev", alias="CASEDEV_API_BASE"
    )
    http_timeout: float = Field(default=120.0, gt=0, alias="HTTP_TIMEOUT")

    # Classification
    llm_model: str = Field(
        default="anthropic/claude-sonnet-4-20250514", alias="LLM_MODEL"
    )
    llm_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    llm_max_tokens: int = Field(default=2000, ge=1)
    classify_text_max_chars: int = Field(default=3000, ge=1)

    # OCR
    ocr_engine: Literal["paddleocr", "doctr"] = Field(
        default="paddleocr", alias="OCR_ENGINE"
    )
    ocr_poll_interval: float = Field(default=2.0, ge=0.0)
    ocr_max_attempts: int = Field(default=30, ge=1)
    ocr_min_text_chars: int = Field(default=20, ge=0)

    # Caller-side classify retry loop
    classify_retry_interval: float = Field(default=5.0, ge=0.0)
    classify_max_attempts: int = Field(default=24, ge=1)

    # Local evidence cache
    evidence_backend: Literal["json", "firestore"] = Field(
        default="json", alias="EVIDENCE_BACKEND"
    )
    evidence_data_dir: str = Field(
        default=".evidence-data", alias="EVIDENCE_DATA_DIR"
    )
    extracted_text_max_chars: int = Field(default=5000, ge=0)

    # Firebase settings (firestore backend)
    google_application_credentials: Optional[str] = Field(
        default=None, alias="GOOGLE_APPLICATION_CREDENTIALS"
    )
    firebase_project_id: Optional[str] = Field(
        default=None, alias="FIREBASE_PROJECT_ID"
    )

    # Search
    search_top_k: int = Field(default=20, ge=1, le=100)

    # LangSmith settings
    langchain_api_key: Optional[str] = Field(default=None, alias="LANGCHAIN_API_KEY")
    langchain_project: str = Field(default="evidence-triage", alias="LANGCHAIN_PROJECT")
    langchain_tracing_v2: bool = Field(default=True, alias="LANGCHAIN_TRACING_V2")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def evidence_file(self) -> Path:
        """Path of the JSON evidence document."""
        return Path(self.evidence_data_dir) / "evidence.json"

    @property
    def llm_base_url(self) -> str:
        """OpenAI-compatible LLM gateway base URL."""
        return f"{self.casedev_api_base.rstrip('/')}/llm/v1"

    def is_casedev_configured(self) -> bool:
        """Check if the remote API key is set."""
        return bool(self.casedev_api_key)

    def is_langsmith_configured(self) -> bool:
        """Check if LangSmith is configured."""
        return self.langchain_api_key is not None


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
