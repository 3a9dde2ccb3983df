"""
Application settings and configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Application
    APP_NAME = os.getenv("APP_NAME", "Hotel Reservation Engine")
    VERSION = "1.0.0"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Security
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

    # Staff account
    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")

    # OTP verification
    OTP_EXPIRY_MINUTES = int(os.getenv("OTP_EXPIRY_MINUTES", "15"))
    OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))
    OTP_LENGTH = int(os.getenv("OTP_LENGTH", "6"))
    OTP_PURGE_INTERVAL_SECONDS = int(os.getenv("OTP_PURGE_INTERVAL_SECONDS", "3600"))

    # Bootstrap
    SEED_DEMO_DATA = _as_bool(os.getenv("SEED_DEMO_DATA", "true"))


settings = Settings()
