"""Tests for src.data.models — Product / Reminder dataclasses."""

from dataclasses import asdict
from datetime import datetime, timezone

from src.data.models import Household, Product, ProductStatus, Reminder

_WHEN = datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_product_defaults():
    product = Product(
        id=1,
        household_id=1,
        name="Havermelk",
        days_until_empty=7,
        remind_days_before=2,
        last_restocked_at=_WHEN,
    )
    assert product.status == ProductStatus.STOCKED
    assert product.is_active is True
    assert product.is_recurring is True
    assert product.category is None
    assert product.shop_url is None


def test_needed_statuses():
    assert ProductStatus.NEEDED == ("on_list", "reminded")
    assert ProductStatus.BOUGHT in ProductStatus.ALL


def test_reminder_one_off_by_default():
    reminder = Reminder(id=1, household_id=1, title="Stofzuigen", due_date=_WHEN)
    assert reminder.is_done is False
    assert reminder.repeat_days is None
    assert reminder.is_recurring is False


def test_reminder_recurring():
    reminder = Reminder(id=1, household_id=1, title="Filter", due_date=_WHEN, repeat_days=30)
    assert reminder.is_recurring is True


def test_household_serializable():
    household = Household(id=1, name="Thuis")
    d = asdict(household)
    assert d["name"] == "Thuis"
    assert d["telegram_chat_id"] is None
