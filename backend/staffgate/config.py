# backend/staffgate/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/staffgate.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///staffgate.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Where the role grant matrix is loaded from at startup: "definitions" or "database"
    PERMISSION_MATRIX_SOURCE = os.environ.get("PERMISSION_MATRIX_SOURCE", "definitions")

    # Time-off policy
    TIME_OFF_ALLOW_PAST_DATES = _env_flag("TIME_OFF_ALLOW_PAST_DATES")
    TIME_OFF_REASON_MIN_LENGTH = int(os.environ.get("TIME_OFF_REASON_MIN_LENGTH", "10"))
    TIME_OFF_REASON_MAX_LENGTH = int(os.environ.get("TIME_OFF_REASON_MAX_LENGTH", "500"))
    TIME_OFF_NOTES_MAX_LENGTH = int(os.environ.get("TIME_OFF_NOTES_MAX_LENGTH", "500"))
    TIME_OFF_CONFLICT_TYPE = os.environ.get("TIME_OFF_CONFLICT_TYPE", "TIME_OFF")

    # Admins receive org-wide channels instead of venue submission notices
    NOTIFY_ADMINS_ON_SUBMISSION = _env_flag("NOTIFY_ADMINS_ON_SUBMISSION")
