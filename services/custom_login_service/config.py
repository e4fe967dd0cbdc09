from __future__ import annotations

from enum import Enum
from typing import Literal
from urllib.parse import urljoin, urlsplit

from dotenv import find_dotenv, load_dotenv
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.custom_login_service.flow_enums import Role

# Load .env file from repository root
load_dotenv(find_dotenv(".env"))


class Environment(str, Enum):
    """Defines application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Service settings; also acts as the configuration store for login options."""

    model_config = SettingsConfigDict(env_prefix="CUSTOM_LOGIN_SERVICE_", extra="ignore")

    # Service identity
    SERVICE_NAME: str = "custom_login_service"
    SERVICE_VERSION: str = "1.0.0"

    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WEB_CONCURRENCY: int = 1
    GRACEFUL_TIMEOUT: int = 30
    KEEP_ALIVE_TIMEOUT: int = 5
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT, validation_alias="ENVIRONMENT"
    )

    # Site layout
    SITE_URL: str = "http://localhost:8000"
    ADMIN_URL: str = "/admin/"
    ALLOWED_REDIRECT_HOSTS: list[str] = Field(default_factory=list)
    LOGIN_PAGE_PATH: str = "/login"
    ACCOUNT_PAGE_PATH: str = "/account"
    REGISTER_PAGE_PATH: str = "/register"
    LOST_PASSWORD_PAGE_PATH: str = "/lost-password"
    RESET_PASSWORD_PAGE_PATH: str = "/reset-password"
    LOGOUT_PAGE_PATH: str = "/logout"
    NATIVE_AUTH_PATH: str = "/auth"

    # Login options
    ADMIN_REDIRECT: bool = True
    USERS_CAN_REGISTER: bool = True
    NEW_USER_DEFAULT_ROLE: Role = Role.STANDARD
    GENERATED_PASSWORD_LENGTH: int = 12
    RESET_KEY_TTL_SECONDS: int = 86400

    # reCAPTCHA
    CAPTCHA_ENABLED: bool = True
    CAPTCHA_SITE_KEY: str | None = None
    CAPTCHA_SECRET_KEY: SecretStr = Field(default=SecretStr(""))
    CAPTCHA_VERIFY_URL: str = "https://www.google.com/recaptcha/api/siteverify"
    CAPTCHA_TIMEOUT_SECONDS: float = 5.0

    # Session cookie signing
    SESSION_SECRET_KEY: SecretStr = Field(
        default=SecretStr("dev-session-secret-change-me"),
        description="Signing key for the session cookie",
    )

    DATABASE_URL: str = "sqlite+aiosqlite:///./custom_login.db"

    # Password hashing (argon2id); memory cost is in KiB
    ARGON2_TIME_COST: int = 3
    ARGON2_MEMORY_COST_KIB: int = 65536
    ARGON2_PARALLELISM: int = 4

    # Outgoing mail: "log" writes notifications to the service log only
    NOTIFICATION_BACKEND: Literal["log", "smtp"] = "log"
    NOTIFICATION_FROM_EMAIL: str = "noreply@localhost"
    NOTIFICATION_FROM_NAME: str = "Site Accounts"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: SecretStr | None = None
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT: int = 30

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.ENVIRONMENT == Environment.TESTING

    @property
    def site_host(self) -> str:
        """Host name of SITE_URL, lowercased and without a port."""
        return (urlsplit(self.SITE_URL).hostname or "").lower()

    def home_url(self, path: str = "/") -> str:
        """Absolute URL of a path on this site."""
        return urljoin(self.SITE_URL.rstrip("/") + "/", path.lstrip("/"))

    def native_url(self, action: str) -> str:
        return self.home_url(f"{self.NATIVE_AUTH_PATH.rstrip('/')}/{action}")

    def __str__(self) -> str:
        """Secure string representation that masks sensitive data."""
        return (
            f"{self.__class__.__name__}("
            f"service={self.SERVICE_NAME}, "
            f"version={self.SERVICE_VERSION}, "
            f"environment={self.ENVIRONMENT.value}, "
            f"secrets=***MASKED***)"
        )

    def __repr__(self) -> str:
        """Secure repr for debugging that masks sensitive data."""
        return self.__str__()


settings = Settings()
