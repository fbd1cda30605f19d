from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv

# Load environment variables from .env file.
# `override=True` ensures that the .env file takes precedence over system environment variables.
load_dotenv(override=True)

class Settings(BaseSettings):
    # Capture service container
    MAILHOG_IMAGE: str = "mailhog/mailhog:v1.0.1"
    MAILHOG_SMTP_PORT: int = 1025
    MAILHOG_HTTP_PORT: int = 8025

    # Retrieval client. 5s matches the httpx default.
    MAILHOG_HTTP_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)

    # Readiness polling after the container starts (30 seconds total by default)
    MAILHOG_STARTUP_RETRY_INTERVAL_SECONDS: float = Field(default=0.5, gt=0)
    MAILHOG_STARTUP_MAX_RETRIES: int = Field(default=60, ge=1)

    # Fixture message synthesis
    OUTBOX_MAILBOX_LENGTH: int = Field(default=10, ge=1)
    OUTBOX_SUBJECT_LENGTH: int = Field(default=50, ge=1)
    OUTBOX_BODY_LENGTH: int = Field(default=200, ge=1)

    model_config = SettingsConfigDict(env_file=(".env", ".env.local"), extra='ignore')

settings = Settings()
