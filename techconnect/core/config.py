import os
import logging
from typing import List
from dotenv import load_dotenv

# grab env vars from .env file
load_dotenv()

PAYPAL_LIVE_API_BASE = "https://api-m.paypal.com"
PAYPAL_SANDBOX_API_BASE = "https://api-m.sandbox.paypal.com"
PAYPAL_MODES = ("", "live", "sandbox")


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # app settings
    APP_ENV: str = os.getenv("APP_ENV", "dev")
    APP_HOST: str = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT: int = int(os.getenv("APP_PORT", os.getenv("PORT", "8080")))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    STATIC_DIR: str = os.getenv("STATIC_DIR", "public")

    # PayPal REST credentials and webhook registration
    PAYPAL_CLIENT_ID: str | None = os.getenv("PAYPAL_CLIENT_ID")
    PAYPAL_CLIENT_SECRET: str | None = os.getenv("PAYPAL_CLIENT_SECRET")
    PAYPAL_WEBHOOK_ID: str | None = os.getenv("PAYPAL_WEBHOOK_ID")
    # live|sandbox, empty means derive from APP_ENV
    PAYPAL_MODE: str = os.getenv("PAYPAL_MODE", "")
    PAYPAL_TIMEOUT_SECONDS: float = float(os.getenv("PAYPAL_TIMEOUT_SECONDS", "10"))
    PAYPAL_TOKEN_CACHE: bool = _as_bool(os.getenv("PAYPAL_TOKEN_CACHE"))

    # Firestore via Firebase Admin
    GOOGLE_APPLICATION_CREDENTIALS: str = os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "serviceAccountKey.json")
    FIREBASE_DATABASE_URL: str | None = os.getenv("FIREBASE_DATABASE_URL")
    TECHNICIANS_COLLECTION: str = os.getenv("TECHNICIANS_COLLECTION", "technicians")

    @property
    def PAYPAL_LIVE(self) -> bool:
        """live API only when asked for explicitly or when running in production"""
        mode = (self.PAYPAL_MODE or "").strip().lower()
        if mode:
            return mode == "live"
        return self.APP_ENV == "production"

    @property
    def PAYPAL_API_BASE(self) -> str:
        return PAYPAL_LIVE_API_BASE if self.PAYPAL_LIVE else PAYPAL_SANDBOX_API_BASE

    def paypal_mode_is_valid(self) -> bool:
        """empty (derive from APP_ENV), live or sandbox; anything else falls back to sandbox"""
        return (self.PAYPAL_MODE or "").strip().lower() in PAYPAL_MODES

    def missing_required(self) -> List[str]:
        return [
            name
            for name, value in (
                ("PAYPAL_CLIENT_ID", self.PAYPAL_CLIENT_ID),
                ("PAYPAL_CLIENT_SECRET", self.PAYPAL_CLIENT_SECRET),
                ("PAYPAL_WEBHOOK_ID", self.PAYPAL_WEBHOOK_ID),
            )
            if not value
        ]


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


settings = Settings()
