# backend/backoffice/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///backoffice.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Analytics window (days) when the caller does not pass one
    BALANCE_HISTORY_DEFAULT_DAYS = int(os.environ.get("BALANCE_HISTORY_DEFAULT_DAYS", "30"))

    # "immediate" deducts ingredients when production is logged,
    # "deferred" waits until the log is marked Complete
    DEFAULT_STOCK_DEDUCTION_MODE = os.environ.get("DEFAULT_STOCK_DEDUCTION_MODE", "immediate")

    # Stock at or below minStock * ratio is reported as critical
    LOW_STOCK_CRITICAL_RATIO = float(os.environ.get("LOW_STOCK_CRITICAL_RATIO", "0.1"))

    # Front-end dev servers allowed to call the API from the browser
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip() for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",") if o.strip()
    )
