from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings
from datetime import timedelta
from enum import Enum
from typing import Optional, List
import logging

from .security import pwd_context

logger = logging.getLogger(__name__)


class TokenMode(str, Enum):
    FIXED_SECRET = "fixed_secret"
    ACCESS_REFRESH = "access_refresh"


class ConfigurationMissing(RuntimeError):
    """Raised at startup when mandatory security settings are absent or invalid."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__(
            "Missing or invalid configuration: " + "; ".join(self.problems)
        )


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Clinic Agenda Admin API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    PORT: int = 3000

    # Admin identity - no defaults, startup fails without them
    ADMIN_USERNAME: str = Field(min_length=1)
    ADMIN_PASSWORD_HASH: str = Field(min_length=1)

    # Tokens
    AUTH_MODE: TokenMode = TokenMode.ACCESS_REFRESH
    JWT_SECRET: str = Field(min_length=1)
    JWT_REFRESH_SECRET: Optional[str] = None
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=15, gt=0)
    ACCESS_TOKEN_EXPIRE_SECONDS: Optional[int] = Field(default=None, gt=0)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=7, gt=0)
    REFRESH_TOKEN_ROTATION: bool = False
    SESSION_SWEEP_INTERVAL_SECONDS: int = Field(default=300, ge=0)

    # Database
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_NAME: str = "softclin_agenda"

    # HTTP
    ALLOWED_ORIGINS: List[str] = ["*"]
    ALLOWED_HOSTS: List[str] = ["*"]

    @field_validator("ADMIN_PASSWORD_HASH")
    @classmethod
    def validate_password_hash(cls, v: str) -> str:
        """Reject plaintext passwords or unknown hash formats."""
        if not pwd_context.identify(v):
            raise ValueError(
                "ADMIN_PASSWORD_HASH is not a recognised bcrypt hash. "
                "Generate one with: clinic-admin-secrets <password>"
            )
        return v

    @model_validator(mode="after")
    def validate_refresh_secret(self) -> "Settings":
        if self.AUTH_MODE is TokenMode.ACCESS_REFRESH:
            if not self.JWT_REFRESH_SECRET:
                raise ValueError(
                    "JWT_REFRESH_SECRET is required when AUTH_MODE=access_refresh"
                )
            if self.JWT_REFRESH_SECRET == self.JWT_SECRET:
                raise ValueError("JWT_REFRESH_SECRET must differ from JWT_SECRET")
        return self

    @property
    def access_token_lifetime(self) -> Optional[timedelta]:
        """Access token validity window; None means tokens never expire."""
        if self.AUTH_MODE is TokenMode.FIXED_SECRET:
            return None
        if self.ACCESS_TOKEN_EXPIRE_SECONDS:
            return timedelta(seconds=self.ACCESS_TOKEN_EXPIRE_SECONDS)
        return timedelta(minutes=self.ACCESS_TOKEN_EXPIRE_MINUTES)

    @property
    def refresh_token_lifetime(self) -> Optional[timedelta]:
        if self.AUTH_MODE is TokenMode.FIXED_SECRET:
            return None
        return timedelta(days=self.REFRESH_TOKEN_EXPIRE_DAYS)

    @property
    def get_database_url(self) -> str:
        """Return DATABASE_URL, or build a PostgreSQL URL from the DB_* parts."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        credentials = self.DB_USER or ""
        if self.DB_PASSWORD:
            credentials += f":{self.DB_PASSWORD}"
        if credentials:
            credentials += "@"
        return (
            f"postgresql://{credentials}{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    def summary(self) -> dict:
        """Presence flags for the configuration, safe to log or expose."""
        return {
            "PORT": self.PORT,
            "AUTH_MODE": self.AUTH_MODE.value,
            "DATABASE_URL": "set" if self.DATABASE_URL else "not set",
            "DB_HOST": self.DB_HOST,
            "DB_USER": "set" if self.DB_USER else "not set",
            "DB_NAME": "set" if self.DB_NAME else "not set",
            "ADMIN_USERNAME": "set" if self.ADMIN_USERNAME else "not set",
            "JWT_SECRET": "set" if self.JWT_SECRET else "not set",
            "JWT_REFRESH_SECRET": "set" if self.JWT_REFRESH_SECRET else "not set",
        }

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


def load_settings(**overrides) -> Settings:
    """Load settings from the environment and fail closed.

    Validation errors are reported by field name only; submitted values
    (secrets, hashes) never reach the error message or the log.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        problems = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"]) or "settings"
            problems.append(f"{location}: {error['msg']}")
        logger.critical("Refusing to start: %s", "; ".join(problems))
        raise ConfigurationMissing(problems) from None
