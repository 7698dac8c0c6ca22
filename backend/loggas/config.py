# backend/loggas/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/loggas.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///loggas.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Retries for lock / version conflicts before a StorageError is raised
    STORAGE_RETRY_ATTEMPTS = int(os.environ.get("STORAGE_RETRY_ATTEMPTS", "3"))

    # Advisory text generation (Gemini generateContent REST API)
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")
    GEMINI_API_URL = os.environ.get(
        "GEMINI_API_URL",
        "https://generativelanguage.googleapis.com/v1beta/models",
    )
    TEXTGEN_TIMEOUT_SECONDS = float(os.environ.get("TEXTGEN_TIMEOUT_SECONDS", "15"))

    # SaaS plan price used by platform metrics (cents per distributor per month)
    PLAN_PRICE_CENTS = int(os.environ.get("PLAN_PRICE_CENTS", "19900"))

    # bcrypt cost factor for password hashes
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
