"""Application configuration via environment variables."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic_settings import BaseSettings

log = logging.getLogger("chat_scheduler.config")


class Settings(BaseSettings):
    # OpenAI (small talk in the start stage)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.7

    # Twilio
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""
    # "rest": reply via the Messages API; "twiml": reply inline in the webhook response
    sms_reply_mode: Literal["rest", "twiml"] = "rest"

    # Google Calendar (OAuth web client)
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:3001/auth/google/callback"
    google_calendar_id: str = "primary"
    calendar_timezone: str = "Europe/Berlin"
    token_file: str = "token.json"

    # Bot
    bot_name: str = "Max"
    bot_persona: str = "Mortgage Broker"
    trigger_keywords: list[str] = ["termin"]
    default_country_code: str = "+49"

    # Confirmation email (disabled while smtp_host is empty)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    email_from: str = ""

    # Session store
    session_ttl_seconds: int = 0  # 0 = never expire
    max_sessions: int = 10_000

    # Admin auth
    admin_api_key: str = ""

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    debug: bool = False
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        if not self.default_country_code.lstrip("+").isdigit():
            raise ValueError(
                f"DEFAULT_COUNTRY_CODE must look like '+49', got {self.default_country_code!r}."
            )

        if not self.openai_api_key:
            warnings.append("OPENAI_API_KEY not set — small talk falls back to a static reply.")

        if not (self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number):
            warnings.append("Twilio credentials incomplete — outbound SMS will fail.")

        if not (self.google_client_id and self.google_client_secret):
            warnings.append(
                "GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not set — /setup/google cannot connect a calendar."
            )

        if self.smtp_host and not self.email_from:
            warnings.append("SMTP_HOST set but EMAIL_FROM empty — confirmation emails disabled.")

        if not self.admin_api_key and not self.debug:
            warnings.append(
                "ADMIN_API_KEY not set. Session admin APIs are locked in production."
            )

        return warnings


settings = Settings()
