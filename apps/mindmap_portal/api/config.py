"""
Mind Map Portal API Configuration
==================================

Loads settings from environment variables.

Environment selection:
- MINDMAP_ENV env var selects the environment (default: development)
- Looks for config/.env.{MINDMAP_ENV} first (e.g., config/.env.development)
- Falls back to root .env if env-specific file not found
- In containers: MINDMAP_ENV=production, no config folder, uses env vars directly

The Settings object is frozen. It is built once at startup and handed to
the token service and the store; request handlers receive it through
FastAPI dependencies instead of importing a module global.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# API is at apps/mindmap_portal/api/, project root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

INSECURE_DEFAULT_SECRET = "CHANGE-THIS-IN-PRODUCTION-use-openssl-rand-hex-32"


def _load_env_file():
    """Load the correct .env file based on MINDMAP_ENV.

    Priority:
    1. config/.env.{MINDMAP_ENV} (e.g., config/.env.development)
    2. Root .env
    3. OS environment variables
    """
    env_name = os.getenv("MINDMAP_ENV", "development")

    env_specific = PROJECT_ROOT / "config" / f".env.{env_name}"
    env_root = PROJECT_ROOT / ".env"

    if env_specific.exists():
        load_dotenv(env_specific, override=True)
    elif env_root.exists():
        load_dotenv(env_root, override=True)


class Settings(BaseSettings):
    """API Settings from environment"""

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    # Environment
    ENV: str = "development"

    # Database
    DATABASE_PATH: str = "data/dev_mindmap.db"

    # JWT Settings
    JWT_SECRET_KEY: str = INSECURE_DEFAULT_SECRET
    JWT_ALGORITHM: str = "HS256"
    TOKEN_EXPIRE_DAYS: int = 7

    # Credentials
    BCRYPT_ROUNDS: int = 12
    PASSWORD_MIN_LENGTH: int = 6

    # Accounts
    DEFAULT_LANGUAGE: str = "zh"
    ALLOW_DIRECT_SIGNUP: bool = False

    # CORS origins, comma-separated ("*" allows any origin)
    CORS_ORIGINS: str = "*"

    # AI generation (DeepSeek chat completions)
    DEEPSEEK_API_KEY: str = ""
    DEEPSEEK_API_BASE: str = "https://api.deepseek.com"
    DEEPSEEK_MODEL: str = "deepseek-chat"
    GENERATION_TEMPERATURE: float = 0.7
    GENERATION_TIMEOUT_SECONDS: Optional[float] = None

    @field_validator("JWT_SECRET_KEY", mode="before")
    @classmethod
    def blank_secret_means_unset(cls, value):
        """A blank JWT_SECRET_KEY (as in .env.example) falls back to the flagged default"""
        if value is None or (isinstance(value, str) and not value.strip()):
            return INSECURE_DEFAULT_SECRET
        return value

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def uses_default_secret(self) -> bool:
        return self.JWT_SECRET_KEY == INSECURE_DEFAULT_SECRET

    @property
    def cors_origins(self) -> List[str]:
        """CORS_ORIGINS as a list.

        Kept as a plain string field so pydantic-settings does not try to
        JSON-parse the comma-separated env var.
        """
        origins = [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
        return origins or ["*"]

    def database_path(self) -> Path:
        """Absolute path to the sqlite database"""
        db_path = Path(self.DATABASE_PATH)
        if db_path.is_absolute():
            return db_path
        return PROJECT_ROOT / db_path


@lru_cache()
def get_settings() -> Settings:
    """Build the process-wide settings once.

    The env file is loaded here, BEFORE Settings reads the environment.
    """
    _load_env_file()
    env_name = os.getenv("MINDMAP_ENV")
    if env_name:
        return Settings(ENV=env_name)
    return Settings()
