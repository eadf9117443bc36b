"""Centralized configuration for the Go Blinds SMS service.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/goblinds-sms/<VARIABLE_NAME>``.

Secrets are read but not validated at startup: a missing value is logged
and resolves to an empty string, so the first Twilio / Anthropic call that
needs it fails (and is handled like any other external-API failure).
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))

REQUIRED_SECRETS = (
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_PHONE_NUMBER",
    "ANTHROPIC_API_KEY",
)


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.
    """
    try:
        import boto3  # noqa: PLC0415  # lazy import to avoid boto3 dep in tests

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/goblinds-sms/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _get_secret(name: str) -> str:
    """Return a secret from env-var or SSM, or an empty string."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    logger.warning(
        "Missing configuration: %s. Set it in .env (local) or "
        "SSM Parameter Store /goblinds-sms/%s (AWS).",
        name, name,
    )
    return ""


def _get_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


# ── Twilio ──────────────────────────────────────────────────────────
TWILIO_ACCOUNT_SID: str = _get_secret("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN: str = _get_secret("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER: str = _get_secret("TWILIO_PHONE_NUMBER")
# Log instead of sending (local development)
SMS_DRY_RUN: bool = _get_bool("SMS_DRY_RUN")

# ── LLM ─────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY: str = _get_secret("ANTHROPIC_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-haiku-4-5")
# SMS replies are short: cap the output, the prompt asks for < 160 chars
COMPOSER_MAX_TOKENS: int = int(os.getenv("COMPOSER_MAX_TOKENS", "50"))
COMPOSER_TEMPERATURE: float = float(os.getenv("COMPOSER_TEMPERATURE", "0.7"))

# ── Business ────────────────────────────────────────────────────────
BUSINESS_NAME: str = os.getenv("BUSINESS_NAME", "Go Blinds LLC")
BUSINESS_PHONE: str = os.getenv("BUSINESS_PHONE", "")

# ── Conversation store ──────────────────────────────────────────────
# 0 disables the corresponding cap
MAX_TRANSCRIPT_MESSAGES: int = int(os.getenv("MAX_TRANSCRIPT_MESSAGES", "100"))
MAX_CONVERSATIONS: int = int(os.getenv("MAX_CONVERSATIONS", "0"))

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("PORT", "3000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000",
).split(",")
