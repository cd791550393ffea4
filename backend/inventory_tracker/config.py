# backend/inventory_tracker/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/inventory.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///inventory.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # bcrypt cost factor; tests drop this to keep the suite fast
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # List view paging
    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "100"))

    # Bearer token lifetime
    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))

    # "log" writes stock alerts to the app log, "outbox" persists them
    NOTIFICATION_CHANNEL = os.environ.get("NOTIFICATION_CHANNEL", "log")

    # Remote variant: base URL of the inventory API
    INVENTORY_API_URL = os.environ.get("INVENTORY_API_URL", "http://127.0.0.1:3000")
    INVENTORY_API_TIMEOUT = float(os.environ.get("INVENTORY_API_TIMEOUT", "10"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
