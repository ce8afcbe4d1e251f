"""Centralized configuration using Pydantic Settings."""

import re
from functools import lru_cache
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

# Must match what POST /auth/verify-code accepts
CODE_OVERRIDE_PATTERN = re.compile(r"[0-9]{6}")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==================== Server ====================
    host: str = "0.0.0.0"
    port: int = 8083
    log_level: str = "INFO"

    # ==================== MongoDB ====================
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "mailpass"

    # ==================== Verification Codes ====================
    verification_code_ttl_seconds: int = 300
    verification_max_attempts: int = 5
    # Pins every issued code to this value (local development only)
    verification_code_override: Optional[str] = None

    # ==================== Sessions ====================
    session_ttl_days: int = 7

    # ==================== SMTP (Email) ====================
    smtp_host: Optional[str] = None  # If None, print code to console
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: Optional[str] = None

    # Handle empty strings for optional string fields
    @field_validator(
        "verification_code_override",
        "smtp_host",
        "smtp_user",
        "smtp_password",
        "smtp_from_email",
        mode="before",
    )
    @classmethod
    def parse_optional_str(cls, v):
        if v == "":
            return None
        return v

    @field_validator("verification_code_override")
    @classmethod
    def check_code_override(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not CODE_OVERRIDE_PATTERN.fullmatch(v):
            raise ValueError("VERIFICATION_CODE_OVERRIDE must be exactly 6 digits")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
