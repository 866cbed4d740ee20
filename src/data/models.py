"""
Restock Bot — Data Models.

Households own products (consumables with a depletion cycle) and reminders
(due-dated chores). Everything persists in SQLite; derived timing fields are
never stored, see src.core.timing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


class ProductStatus:
    """Allowed values of Product.status."""

    STOCKED = "stocked"
    ON_LIST = "on_list"
    REMINDED = "reminded"
    BOUGHT = "bought"  # legacy value, no transition leads here

    ALL = (STOCKED, ON_LIST, REMINDED, BOUGHT)
    NEEDED = (ON_LIST, REMINDED)


@dataclass
class Household:
    """Tenant boundary. Linked to at most one Telegram chat."""

    id: int
    name: str
    telegram_chat_id: str | None = None
    created_at: str = ""


@dataclass
class Product:
    """A tracked consumable.

    The cycle is anchored on last_restocked_at: the product is expected to
    run out days_until_empty days later, and a reminder goes out
    remind_days_before days ahead of that.
    """

    id: int
    household_id: int
    name: str
    days_until_empty: int
    remind_days_before: int
    last_restocked_at: datetime
    status: str = ProductStatus.STOCKED
    is_active: bool = True
    is_recurring: bool = True
    category: str | None = None
    shop_url: str | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Reminder:
    """A household task with a due date.

    repeat_days=None means one-off; otherwise completing the task moves
    due_date forward instead of marking it done.
    """

    id: int
    household_id: int
    title: str
    due_date: datetime
    description: str | None = None
    repeat_days: int | None = None
    is_done: bool = field(default=False)
    created_at: str = ""

    @property
    def is_recurring(self) -> bool:
        return self.repeat_days is not None


@dataclass
class DispatchLogEntry:
    """One sent restock notification for one product (append-only)."""

    id: int
    product_id: int
    message: str
    sent_at: str
