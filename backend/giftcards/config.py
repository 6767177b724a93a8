# backend/giftcards/config.py
from __future__ import annotations
import os


def _split_csv(value: str | None) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/giftcards.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///giftcards.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Payment provider credentials. Never commit real values.
    RAZORPAY_KEY_SECRET = os.environ.get("RAZORPAY_KEY_SECRET")

    GIFTCARD_CODE_PREFIX = os.environ.get("GIFTCARD_CODE_PREFIX", "LIKE")
    GIFTCARD_MAX_CODE_ATTEMPTS = int(os.environ.get("GIFTCARD_MAX_CODE_ATTEMPTS", "10"))

    # Administrative issuance/expiry is disabled while unset
    ADMIN_API_TOKEN = os.environ.get("ADMIN_API_TOKEN")

    # Outbound mail (SendGrid v3). Without a key, notifications are only logged.
    SENDGRID_API_KEY = os.environ.get("SENDGRID_API_KEY")
    SENDGRID_API_URL = os.environ.get("SENDGRID_API_URL", "https://api.sendgrid.com/v3/mail/send")
    MAIL_FROM_EMAIL = os.environ.get("MAIL_FROM_EMAIL", "giftcards@like.local")
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "LIKE Gift Cards")
    MAIL_TIMEOUT_SECONDS = float(os.environ.get("MAIL_TIMEOUT_SECONDS", "10"))
    REDEMPTION_NOTIFY_EMAIL = os.environ.get("REDEMPTION_NOTIFY_EMAIL")

    CORS_ALLOWED_ORIGINS = _split_csv(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173",
    ))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
