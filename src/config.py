"""
Restock Bot — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # SQLite
    DATABASE_PATH: str = "data/restock.db"

    # Batch trigger: operator secret for /api/check-reminders
    CRON_SECRET: str = ""

    # In-process due scan (0 = rely on the external cron only)
    SCAN_INTERVAL_MINUTES: int = 15

    # Wall clock and date-only comparisons
    TIMEZONE: str = "Europe/Amsterdam"

    # HTTP surface (main.py serve)
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    @field_validator("SCAN_INTERVAL_MINUTES", "API_PORT", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator("SCAN_INTERVAL_MINUTES")
    @classmethod
    def non_negative_interval(cls, v: int) -> int:
        if v < 0:
            raise ValueError("SCAN_INTERVAL_MINUTES must be >= 0")
        return v


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/restock.db"),
        CRON_SECRET=os.getenv("CRON_SECRET", ""),
        SCAN_INTERVAL_MINUTES=os.getenv("SCAN_INTERVAL_MINUTES", "15"),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/Amsterdam"),
        API_HOST=os.getenv("API_HOST", "0.0.0.0"),
        API_PORT=os.getenv("API_PORT", "8000"),
    )


# Singleton, imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
