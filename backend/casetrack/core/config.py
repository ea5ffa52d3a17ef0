# casetrack/core/config.py
"""
Application configuration using Pydantic Settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
import json
from pydantic import field_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """

    # Application
    APP_NAME: str = "Casetrack"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str

    # JWT Authentication (sessions are issued by the identity provider)
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Profile that is always enabled and treated as administrator
    DEFAULT_ADMIN_EMAIL: str = ""

    @field_validator("DEFAULT_ADMIN_EMAIL", mode="before")
    @classmethod
    def normalize_admin_email(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    # CORS
    CORS_ORIGINS: str = '["http://localhost:5173"]'
    CORS_ORIGIN_REGEX: str | None = None

    # Litigation bulk import
    CASE_IMPORT_MAX_FILE_BYTES: int = 5 * 1024 * 1024  # 5MB
    CASE_IMPORT_MAX_ROWS: int = 1000
    CASE_IMPORT_ALLOWED_EXTENSIONS: str = ".xlsx,.xls,.csv"

    # Instance-local fallback store for writes the database refuses
    LOCAL_CASE_STORE_DIR: str = "var/local_cases"

    # Change stream
    CASE_CHANGES_POLL_SECONDS: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from string to list"""
        try:
            if isinstance(self.CORS_ORIGINS, str):
                return json.loads(self.CORS_ORIGINS)
            return self.CORS_ORIGINS
        except json.JSONDecodeError:
            return [part.strip() for part in self.CORS_ORIGINS.split(",") if part.strip()]

    @property
    def case_import_extensions(self) -> tuple[str, ...]:
        """
        Parse comma-separated extensions into lowercase, dot-prefixed suffixes.
        Example env:
          CASE_IMPORT_ALLOWED_EXTENSIONS=.xlsx,xls,.CSV
        """
        out: List[str] = []
        for part in (self.CASE_IMPORT_ALLOWED_EXTENSIONS or "").split(","):
            ext = part.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            if ext not in out:
                out.append(ext)
        return tuple(out)


# Create settings instance
settings = Settings()
