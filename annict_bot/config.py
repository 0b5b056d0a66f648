import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    slack_bot_token: str
    slack_app_token: str
    annict_access_token: str
    annict_endpoint: str = "https://api.annict.com/graphql"
    annict_limit_num_to_display: int = 5
    annict_request_timeout_sec: float = 30.0
    image_check_timeout_sec: float = 5.0
    image_validation_concurrency: int = 4
    request_deadline_sec: float = 60.0  # Covers both fetches and all image checks
    log_level: str = "INFO"
    is_development: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("slack_bot_token", "slack_app_token", "annict_access_token")
    @classmethod
    def validate_tokens(cls, value: str, info) -> str:
        """Reject blank tokens."""
        value = value.strip()
        if not value:
            raise ValueError(f"{info.field_name} must not be empty")
        return value

    @field_validator("slack_app_token")
    @classmethod
    def validate_app_token(cls, value: str) -> str:
        """Socket Mode requires an app-level token."""
        if not value.startswith("xapp-"):
            raise ValueError("slack_app_token must be an app-level token (xapp-...)")
        return value

    @field_validator("annict_endpoint")
    @classmethod
    def validate_endpoint(cls, value: str) -> str:
        """Validate Annict endpoint is HTTP/HTTPS."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"Annict endpoint must be HTTP/HTTPS: {value}")
        return value

    @field_validator("annict_limit_num_to_display", "image_validation_concurrency")
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure count settings are positive integers."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator(
        "annict_request_timeout_sec",
        "image_check_timeout_sec",
        "request_deadline_sec",
    )
    @classmethod
    def validate_positive_floats(cls, value: float, info) -> float:
        """Ensure timeouts are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @model_validator(mode="after")
    def validate_timeouts(self):
        """Validate cross-field configuration."""
        if self.request_deadline_sec <= self.image_check_timeout_sec:
            raise ValueError(
                "request_deadline_sec must be greater than image_check_timeout_sec"
            )
        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Annict Endpoint: %s", self.annict_endpoint)
        logger.info("  Display Limit: %s", self.annict_limit_num_to_display)
        logger.info("  Annict Request Timeout: %ss", self.annict_request_timeout_sec)
        logger.info("  Image Check Timeout: %ss", self.image_check_timeout_sec)
        logger.info("  Image Check Concurrency: %s", self.image_validation_concurrency)
        logger.info("  Request Deadline: %ss", self.request_deadline_sec)
        logger.info("  Log Level: %s", self.log_level)
        logger.info("  Development Mode: %s", self.is_development)


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    Returns:
        The loaded Settings
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """
    Drop the cached settings (mainly for testing).
    """
    global _settings
    _settings = None


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
