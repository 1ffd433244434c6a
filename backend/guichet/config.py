# backend/guichet/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///guichet.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Used when app_settings has no "cash_discrepancy_threshold" row (minor units)
    CASH_DISCREPANCY_THRESHOLD_DEFAULT = int(os.environ.get("CASH_DISCREPANCY_THRESHOLD_DEFAULT", "5000"))

    # Closed-session history page size
    SESSION_HISTORY_LIMIT = int(os.environ.get("SESSION_HISTORY_LIMIT", "50"))
    SESSION_HISTORY_MAX_LIMIT = 500
