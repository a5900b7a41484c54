"""Startup validation of the credentials read from the environment."""

import logging
import re
from typing import List

from pydantic import BaseModel, ValidationError, field_validator

from config import CredentialsConfig
from core.errors import ValidationFailure

logger = logging.getLogger(__name__)

REQUIRED_ENV_VARS = {
    "jobkorea_id": "JOBKOREA_ID",
    "jobkorea_pwd": "JOBKOREA_PWD",
    "telegram_token": "TELEGRAM_BOT_TOKEN",
    "telegram_chat_id": "TELEGRAM_CHAT_ID",
}

TELEGRAM_TOKEN_RE = re.compile(r"^\d+:[A-Za-z0-9_-]+$")
TELEGRAM_CHAT_ID_RE = re.compile(r"^(-?\d+|@[a-zA-Z][a-zA-Z0-9_]{4,31})$")


class Credentials(BaseModel):
    """Validated credentials; constructing it enforces the format rules."""

    model_config = {"frozen": True}

    jobkorea_id: str
    jobkorea_pwd: str
    telegram_token: str
    telegram_chat_id: str

    @field_validator("jobkorea_id")
    @classmethod
    def check_jobkorea_id(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("JobKorea ID must be at least 3 characters long")
        if len(v) > 50:
            raise ValueError("JobKorea ID must not exceed 50 characters")
        if re.search(r"\s", v):
            raise ValueError("JobKorea ID must not contain whitespace")
        return v

    @field_validator("jobkorea_pwd")
    @classmethod
    def check_jobkorea_pwd(cls, v: str) -> str:
        if len(v) < 4:
            raise ValueError("JobKorea password must be at least 4 characters long")
        if len(v) > 100:
            raise ValueError("JobKorea password must not exceed 100 characters")
        return v

    @field_validator("telegram_token")
    @classmethod
    def check_telegram_token(cls, v: str) -> str:
        if not TELEGRAM_TOKEN_RE.match(v):
            raise ValueError("Telegram bot token has an invalid format (expected digits:alphanumerics)")
        if len(v) < 20:
            raise ValueError("Telegram bot token is too short")
        if len(v) > 100:
            raise ValueError("Telegram bot token is too long")
        return v

    @field_validator("telegram_chat_id")
    @classmethod
    def check_telegram_chat_id(cls, v: str) -> str:
        if not TELEGRAM_CHAT_ID_RE.match(v):
            raise ValueError("Telegram chat ID has an invalid format (number or @username)")
        return v


def find_missing_credentials(credentials: CredentialsConfig) -> List[str]:
    """Return the names of the required environment variables that are unset or blank."""
    return [
        env_name
        for field_name, env_name in REQUIRED_ENV_VARS.items()
        if not getattr(credentials, field_name, "").strip()
    ]


def validate_credentials(credentials: CredentialsConfig) -> Credentials:
    """
    Validate presence and format of the required credentials.

    Args:
        credentials: Values loaded from the environment.

    Returns:
        The validated credentials.

    Raises:
        ValidationFailure: Listing every missing variable, or every format problem.
    """
    missing = find_missing_credentials(credentials)
    if missing:
        raise ValidationFailure(
            "Required environment variables are not set",
            field=missing[0],
            errors=[f"Environment variable {name} is not set." for name in missing],
        )

    try:
        validated = Credentials(
            jobkorea_id=credentials.jobkorea_id,
            jobkorea_pwd=credentials.jobkorea_pwd,
            telegram_token=credentials.telegram_token,
            telegram_chat_id=credentials.telegram_chat_id,
        )
    except ValidationError as e:
        # Never echo the rejected values, they are secrets
        errors = [f"{REQUIRED_ENV_VARS[str(err['loc'][0])]}: {err['msg']}" for err in e.errors()]
        first_field = REQUIRED_ENV_VARS[str(e.errors()[0]["loc"][0])]
        raise ValidationFailure("Credential validation failed", field=first_field, errors=errors) from None

    logger.info("Credential validation passed.")
    return validated
