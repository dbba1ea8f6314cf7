# src/clinic_bff/config.py

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import Request
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

# Determine the base directory of this config file
# .env is at the project root, two levels up from src/clinic_bff/
CONFIG_FILE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT_DIR = CONFIG_FILE_DIR.parent.parent
ENV_FILE_PATH = PROJECT_ROOT_DIR / ".env"

if ENV_FILE_PATH.exists():
    load_dotenv(dotenv_path=ENV_FILE_PATH, override=False)


class Settings(BaseSettings):
    # === Upstream clinic API ===
    # Optional on purpose: a missing value is reported per request as HTTP 500.
    API_URL: Optional[str] = None
    UPSTREAM_TIMEOUT_SECONDS: float = 30.0

    # === Session cookies and the dashboard gate ===
    ENVIRONMENT: str = "development"
    REFRESH_THRESHOLD_SECONDS: int = 30
    DEFAULT_SESSION_MAX_AGE: int = 60 * 60 * 24 * 7
    DASHBOARD_PATH_PREFIX: str = "/dashboard"
    LOGIN_PATH: str = "/login"

    # === Server ===
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False
    )

    @field_validator("API_URL", mode="before")
    @classmethod
    def normalize_api_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip().rstrip("/")
        return v or None

    @field_validator("DASHBOARD_PATH_PREFIX")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        return "/" + v.strip("/")

    @property
    def cookie_secure(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    def require_api_url(self) -> str:
        if not self.API_URL:
            raise ConfigurationError("Falta API_URL")
        return self.API_URL


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def get_settings(request: Request) -> Settings:
    """Settings of the running app, injected into handlers via Depends."""
    return request.app.state.settings


settings = Settings()
