# accounts_api/core/config.py
import os
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
DOTENV = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), ".env")


class Settings(BaseSettings):
    SECRET_KEY: str
    DATABASE_URL: str = "sqlite:///./accounts.db"

    SECRET_LENGTH: int = 10
    AUTH_TOKEN_NAME: str = "auth-token"
    ADMIN_ROLE: str = "admin"

    # "inline" returns one-time codes in the response, "email" mails them
    SECRET_DELIVERY: str = "inline"
    SMTP_SERVER: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None

    EXPOSE_INTERNAL_ERRORS: bool = False
    LOG_LEVEL: str = "INFO"

    ALLOWED_HOSTS: List[str] = ["*"]
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=DOTENV,
        env_ignore_empty=True,
        extra="ignore"
    )


settings = Settings()
