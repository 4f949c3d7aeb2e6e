# backend/cylinderhub/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/cylinderhub.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cylinderhub.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer session lifetime
    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "12"))

    # Invoice numbers look like INV-20260114-001
    INVOICE_PREFIX = os.environ.get("INVOICE_PREFIX", "INV")

    # Unit price used when a sale item does not carry its own price
    DEFAULT_CYLINDER_PRICE_CENTS = int(os.environ.get("DEFAULT_CYLINDER_PRICE_CENTS", "10000"))

    # Size of the in-memory buffer behind GET /api/events/recent
    RECENT_EVENTS_LIMIT = int(os.environ.get("RECENT_EVENTS_LIMIT", "200"))
