# Logging adapter for application-wide logging
from vocant.adapters.logging_adapter import LoggingAdapter

from pydantic import HttpUrl, SecretStr, field_validator
from pydantic_settings import BaseSettings
from rich import print

from vocant.core.interfaces.logging import LoggingPort


# pydantic_settings reads the environment (and .env) and casts types in one place
class VocantSettings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }
    VOCANT_LOG_LEVEL: str = "INFO"
    VOCANT_API_KEY: SecretStr = SecretStr("")
    VOCANT_API_BASE_URL: HttpUrl = HttpUrl("https://app.vocant.ai/api/webhook")
    VOCANT_POLL_INTERVAL: float = 5.0  # seconds
    VOCANT_MAX_WAIT: float = 900.0  # seconds
    VOCANT_CONTINUE_ON_FAIL: bool = False
    VOCANT_REQUEST_TIMEOUT: float = 30.0  # seconds, status/fetch/presign
    VOCANT_UPLOAD_TIMEOUT: float = 600.0  # seconds, the PUT of the audio payload
    VOCANT_RETRY_ATTEMPTS: int = 3
    VOCANT_RETRY_WAIT_INITIAL: float = 0.5
    VOCANT_RETRY_WAIT_MAX: float = 5.0
    # Inbound callback receiver
    VOCANT_CALLBACK_PATH: str = "/webhook"
    VOCANT_SERVER_HOST: str = "0.0.0.0"
    VOCANT_SERVER_PORT: int = 8000

    @property
    def api_base_url(self) -> str:
        return str(self.VOCANT_API_BASE_URL).rstrip("/")

    def print_settings(self, logger: LoggingPort):
        """Prints the settings for debugging purposes (secrets stay masked)"""
        logger.info("Vocant Settings:")
        print(self)

    @field_validator("VOCANT_CALLBACK_PATH", mode="before")
    def ensure_leading_slash(cls, value: str) -> str:
        """Ensure VOCANT_CALLBACK_PATH starts with a slash."""
        if not value.startswith("/"):
            value = "/" + value
        return value


app_settings = VocantSettings()

logger = LoggingAdapter("vocant", app_settings.VOCANT_LOG_LEVEL)
