# backend/tablepos/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the process unless DATABASE_URL says otherwise
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///tablepos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Whole-operation retries on lock / version conflicts
    TX_RETRY_ATTEMPTS = _env_int("TX_RETRY_ATTEMPTS", 3)

    # Stock alerts
    LOW_STOCK_THRESHOLD = _env_int("LOW_STOCK_THRESHOLD", 20)
    CRITICAL_STOCK_THRESHOLD = _env_int("CRITICAL_STOCK_THRESHOLD", 10)
    DEFAULT_MIN_STOCK = _env_int("DEFAULT_MIN_STOCK", 10)

    DEFAULT_RESERVATION_MINUTES = _env_int("DEFAULT_RESERVATION_MINUTES", 120)

    # "system": every expense ever recorded; "period": only the register's open period
    CLOSURE_EXPENSE_SCOPE = os.environ.get("CLOSURE_EXPENSE_SCOPE", "system")

    # First-run administrator (see `flask system init`)
    DEFAULT_ADMIN_USERNAME = os.environ.get("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD = os.environ.get("DEFAULT_ADMIN_PASSWORD", "Password123!")
    DEFAULT_ADMIN_EMAIL = os.environ.get("DEFAULT_ADMIN_EMAIL", "admin@tablepos.local")

    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)
