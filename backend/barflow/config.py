# backend/barflow/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/barflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///barflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cash drawer hardware. Port/baud default to the platform convention
    # chosen by SerialDrawerService when left unset.
    CASH_DRAWER_PORT = os.environ.get("CASH_DRAWER_PORT") or None
    CASH_DRAWER_BAUD_RATE = int(os.environ.get("CASH_DRAWER_BAUD_RATE", "9600"))
    CASH_DRAWER_PULSE_MS = int(os.environ.get("CASH_DRAWER_PULSE_MS", "200"))
    CASH_DRAWER_MAX_OPEN_MS = int(os.environ.get("CASH_DRAWER_MAX_OPEN_MS", "5000"))
    CASH_DRAWER_SENSOR_ENABLED = _env_bool("CASH_DRAWER_SENSOR_ENABLED", False)
    CASH_DRAWER_SIMULATION = _env_bool("CASH_DRAWER_SIMULATION", False)

    # Shift closes off by more than this raise a CASH_MISMATCH alert
    CASH_MISMATCH_TOLERANCE_CENTS = int(os.environ.get("CASH_MISMATCH_TOLERANCE_CENTS", "1000000"))
