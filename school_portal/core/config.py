import json
from datetime import timedelta
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Values that have shipped as hardcoded fallbacks and must never sign tokens.
PLACEHOLDER_SECRETS = {
    "fallback-secret-key",
    "your-jwt-secret",
    "changeme",
    "secret",
}


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "School Portal"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database Settings
    DATABASE_URL: str = Field(...)
    DB_ECHO: bool = False

    # Authentication Settings
    JWT_SECRET: str = Field(...)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24
    BCRYPT_ROUNDS: int = 12

    # Cookie Settings
    AUTH_COOKIE_NAME: str = "auth_token"
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: str = "lax"
    COOKIE_PATH: str = "/"

    # CORS Settings
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Refuse empty or well-known placeholder secrets"""
        if not v or not v.strip():
            raise ValueError("JWT_SECRET must be set")
        if v.strip().lower() in PLACEHOLDER_SECRETS:
            raise ValueError("JWT_SECRET is a placeholder value; configure a real secret")
        return v

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("COOKIE_SAMESITE")
    @classmethod
    def validate_samesite(cls, v: str) -> str:
        allowed_values = ["lax", "strict", "none"]
        if v.lower() not in allowed_values:
            raise ValueError(f"COOKIE_SAMESITE must be one of {allowed_values}")
        return v.lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return v.upper()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )


# Initialize settings
settings = Settings()


# Helper Functions
def get_token_expires_delta(hours: Optional[int] = None) -> timedelta:
    if hours is None:
        hours = settings.ACCESS_TOKEN_EXPIRE_HOURS
    return timedelta(hours=hours)


def get_database_url() -> str:
    return settings.DATABASE_URL


def get_jwt_settings() -> dict:
    return {
        "secret_key": settings.JWT_SECRET,
        "algorithm": settings.JWT_ALGORITHM,
        "access_token_expire_hours": settings.ACCESS_TOKEN_EXPIRE_HOURS,
    }


def get_cookie_settings() -> dict:
    return {
        "httponly": True,
        "secure": settings.COOKIE_SECURE,
        "samesite": settings.COOKIE_SAMESITE,
        "path": settings.COOKIE_PATH,
    }


def get_logging_config() -> dict:
    return {
        "log_level": settings.LOG_LEVEL,
        "log_dir": settings.LOG_DIR,
    }
