"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CONFREV_",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    database_path: Path = Field(Path("confrev.db"), description="SQLite database file")
    upload_dir: Path = Field(Path("uploads"), description="Directory for uploaded papers")

    # Uploads
    allowed_extensions: List[str] = Field(default_factory=lambda: [".pdf", ".doc", ".docx"])
    max_upload_bytes: int = Field(10 * 1024 * 1024, gt=0)

    # Review assignment
    reviewers_per_paper: int = Field(2, ge=1, description="Reviewers auto-assigned at submission")

    # Logging
    log_level: str = Field("INFO")
    log_format: str = Field("json", pattern="^(json|text)$")

    @field_validator("allowed_extensions")
    @classmethod
    def _normalize_extensions(cls, v: List[str]) -> List[str]:
        out = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            out.append(ext if ext.startswith(".") else f".{ext}")
        return out


# Instantiate global settings
settings = Settings()
