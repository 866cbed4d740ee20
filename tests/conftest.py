"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like a temp DB.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("SCAN_INTERVAL_MINUTES", "15")
os.environ.setdefault("TIMEZONE", "UTC")

from unittest.mock import AsyncMock

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_restock.db")


@pytest.fixture
def household_db(tmp_db_path):
    from src.data.db import HouseholdDB
    return HouseholdDB(db_path=tmp_db_path)


@pytest.fixture
def product_db(tmp_db_path):
    from src.data.db import ProductDB
    return ProductDB(db_path=tmp_db_path)


@pytest.fixture
def reminder_db(tmp_db_path):
    from src.data.db import ReminderDB
    return ReminderDB(db_path=tmp_db_path)


@pytest.fixture
def products(product_db):
    from src.core.product_lifecycle import ProductLifecycle
    return ProductLifecycle(product_db)


@pytest.fixture
def reminders(reminder_db):
    from src.core.reminder_lifecycle import ReminderLifecycle
    return ReminderLifecycle(reminder_db)


@pytest.fixture
def household(household_db):
    """A household linked to chat '1001'."""
    return household_db.add_household("Thuis", telegram_chat_id="1001")


@pytest.fixture
def notifier():
    """NotificationPort double that always delivers."""
    mock = AsyncMock()
    mock.send_message = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def services(notifier, tmp_db_path):
    from src.core.services import build_services
    return build_services(notifier, db_path=tmp_db_path)
