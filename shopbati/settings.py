# shopbati/settings.py
from __future__ import annotations
from decimal import Decimal
from typing import List, Optional
from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
import os

# storefront dev servers (Next.js)
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

def _parse_cors(raw: Optional[str | List[str]]) -> List[str]:
    """CORS_ORIGINS as a JSON list or a comma-separated string."""
    if isinstance(raw, list):
        return raw
    text = (raw or "").strip()
    if not text:
        return list(DEFAULT_CORS_ORIGINS)
    if text.startswith("["):
        try:
            origins = json.loads(text)
        except ValueError:
            origins = None
        if isinstance(origins, list) and all(isinstance(o, str) for o in origins):
            return origins
    return [o.strip() for o in text.split(",") if o.strip()]

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",   # ignore unknown env keys instead of raising
    )

    # --- API ---
    api_host: str = Field(default="127.0.0.1", validation_alias=AliasChoices("API_HOST",))
    api_port: int = Field(default=8000,        validation_alias=AliasChoices("API_PORT",))
    cors_origins_raw: Optional[str | List[str]] = Field(
        default=None, validation_alias=AliasChoices("CORS_ORIGINS",)
    )
    admin_token: Optional[str] = Field(default=None, validation_alias=AliasChoices("ADMIN_TOKEN",))

    # --- Logging ---
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL",))
    log_file: Optional[str] = Field(default=None, validation_alias=AliasChoices("LOG_FILE",))

    # --- Firebase ---
    firebase_project_id: str = Field(
        default="shopbati",
        validation_alias=AliasChoices("FIREBASE_PROJECT_ID",)
    )
    google_application_credentials: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_APPLICATION_CREDENTIALS",)
    )
    orders_collection: str = Field(
        default="orders", validation_alias=AliasChoices("ORDERS_COLLECTION",)
    )

    # --- Email (Resend) ---
    resend_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("RESEND_API_KEY",)
    )
    resend_api_url: str = Field(
        default="https://api.resend.com/emails",
        validation_alias=AliasChoices("RESEND_API_URL",)
    )
    email_from: str = Field(
        default="SHOPBATI <onboarding@resend.dev>",
        validation_alias=AliasChoices("EMAIL_FROM",)
    )
    # the only address a sandboxed Resend account may deliver to
    email_verified_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("EMAIL_VERIFIED_ADDRESS",)
    )
    email_timeout_seconds: float = Field(
        default=30.0, validation_alias=AliasChoices("EMAIL_TIMEOUT_SECONDS",)
    )

    # --- Invoices ---
    invoice_prefix: str = Field(default="SB", validation_alias=AliasChoices("INVOICE_PREFIX",))
    invoice_locale: str = Field(default="fr_FR", validation_alias=AliasChoices("INVOICE_LOCALE",))
    invoice_currency: str = Field(default="EUR", validation_alias=AliasChoices("INVOICE_CURRENCY",))
    invoice_timezone: str = Field(
        default="Europe/Paris", validation_alias=AliasChoices("INVOICE_TIMEZONE",)
    )
    invoice_tax_rate: Decimal = Field(
        default=Decimal("0.20"), validation_alias=AliasChoices("INVOICE_TAX_RATE",)
    )
    invoice_due_days: int = Field(default=30, validation_alias=AliasChoices("INVOICE_DUE_DAYS",))
    # accept either LOGO_PATH or INVOICE_LOGO_PATH
    logo_path: str = Field(
        default="public/images/logo_shopbat.jpg",
        validation_alias=AliasChoices("LOGO_PATH", "INVOICE_LOGO_PATH")
    )
    logo_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("LOGO_URL",))
    # TrueType faces for invoice text; unset means look in the usual system font dirs
    invoice_font_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("INVOICE_FONT_PATH",)
    )
    invoice_font_bold_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("INVOICE_FONT_BOLD_PATH",)
    )

    @property
    def cors_origins(self) -> List[str]:
        return _parse_cors(self.cors_origins_raw)

# singleton
settings = Settings()

# Make sure GOOGLE_APPLICATION_CREDENTIALS is exported for firebase_admin
if settings.google_application_credentials:
    os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = settings.google_application_credentials
