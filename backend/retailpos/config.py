# backend/retailpos/config.py
from __future__ import annotations
import os


def _split_csv(value: str) -> set[str]:
    return {item.strip() for item in value.split(",") if item.strip()}


class Config:
    # Signs the session cookie that carries the checkout cart
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/retailpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///retailpos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # One loyalty point per this many currency units of sale total
    POINTS_CURRENCY_UNIT = int(os.environ.get("POINTS_CURRENCY_UNIT", "10"))

    # Days shown by the dashboard sales chart
    DASHBOARD_DAYS = int(os.environ.get("DASHBOARD_DAYS", "7"))

    CORS_ALLOWED_ORIGINS = _split_csv(
        os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        )
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
