from pydantic_settings import BaseSettings
from pydantic import Field
import os
from pathlib import Path


class Config(BaseSettings):
    # Database Configuration
    database_url: str = Field(
        default=f"sqlite+aiosqlite:///{Path(__file__).parent.parent.parent / 'data' / 'labtrack.db'}",
        alias="DB_URL",
    )

    # JWT Configuration
    secret_key: str = Field(default="change-me", alias="JWT_SECRET")
    algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES"
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Brevo transactional e-mail
    email_enabled: bool = Field(default=False, alias="EMAIL_ENABLED")
    brevo_api_key: str = Field(default="", alias="BREVO_API_KEY")
    brevo_api_url: str = Field(
        default="https://api.brevo.com/v3/smtp/email", alias="BREVO_API_URL"
    )
    brevo_sender_email: str = Field(default="", alias="BREVO_SENDER_EMAIL")
    brevo_sender_name: str = Field(default="Lab Equipment Desk", alias="BREVO_SENDER_NAME")
    brevo_cc_email: str = Field(default="", alias="BREVO_CC_EMAIL")
    email_timeout_seconds: float = Field(default=10.0, alias="EMAIL_TIMEOUT_SECONDS")

    # Post-commit notification/e-mail delivery
    side_effect_max_attempts: int = Field(default=3, alias="SIDE_EFFECT_MAX_ATTEMPTS")

    # Daily overdue sweep
    scheduler_enabled: bool = Field(default=False, alias="SCHEDULER_ENABLED")
    scheduler_timezone: str = Field(default="UTC", alias="SCHEDULER_TIMEZONE")
    overdue_sweep_hour: int = Field(default=0, alias="OVERDUE_SWEEP_HOUR")
    overdue_sweep_minute: int = Field(default=0, alias="OVERDUE_SWEEP_MINUTE")

    is_production: bool = (
        os.getenv("ENVIRONMENT", "development").lower() == "production"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Instantiate the settings
config = Config()
