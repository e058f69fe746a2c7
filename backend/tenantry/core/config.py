# core/config.py
from pydantic import Field, AnyUrl
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    # ────────────────────────────────
    # 1. APP & ENVIRONMENT
    # ────────────────────────────────
    PROJECT_NAME: str = "Tenantry"
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=True)

    # ────────────────────────────────
    # 2. FRONTEND
    # ────────────────────────────────
    FRONTEND_URL: AnyUrl = Field(
        default="http://localhost:3000",
        description="Base URL for the tenant/admin web app"
    )

    # ────────────────────────────────
    # 3. FIREBASE / FIRESTORE
    # ────────────────────────────────
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = Field(
        default=None,
        description="Path to Firebase service account JSON"
    )
    TENANTRY_FIREBASE_KEY: Optional[str] = Field(
        default=None,
        description="Base64-encoded Firebase service account JSON"
    )

    # ────────────────────────────────
    # 4. MOOV (transfers)
    # ────────────────────────────────
    MOOV_DOMAIN: str = "https://api.moov.io"
    MOOV_ACCOUNT_ID: str = Field(..., description="Platform (facilitator) account receiving rent")
    MOOV_PUBLIC_KEY: str = Field(...)
    MOOV_SECRET_KEY: str = Field(...)
    MOOV_DESTINATION_PAYMENT_METHOD_ID: str = Field(
        default="",
        description="Platform payment method (wallet or bank) that rent transfers land in"
    )
    MOOV_WEBHOOK_SECRET: str = Field(default="")
    MOOV_TIMEOUT_SECONDS: float = 15.0

    # ────────────────────────────────
    # 5. STRIPE (cards, ACH debit)
    # ────────────────────────────────
    STRIPE_SECRET_KEY: str = Field(...)
    STRIPE_WEBHOOK_SECRET: str = Field(default="")

    # ────────────────────────────────
    # 6. SECURITY / SESSIONS
    # ────────────────────────────────
    SECRET_KEY: str = Field(default="change-me-in-production")
    SESSION_COOKIE_NAME: str = "session"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 7  # 1 week
    BCRYPT_ROUNDS: int = 10

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Create singleton
settings = Settings()
