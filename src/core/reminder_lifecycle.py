"""
Restock Bot — Reminder (task) Lifecycle.

pending --complete--> done                       (one-off)
pending --complete--> pending, due += repeat     (recurring, never done)

Deletion is a hard delete, unlike products.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

from src.data.models import Reminder

if TYPE_CHECKING:
    from src.data.db import ReminderDB

logger = logging.getLogger(__name__)

DEFAULT_DUE_IN_DAYS = 7

_EDITABLE_FIELDS = frozenset({"title", "description", "due_date", "repeat_days"})


class ReminderTransition(Enum):
    COMPLETE = "complete"
    TOGGLE = "toggle"


def apply_reminder_transition(reminder: Reminder, transition: ReminderTransition) -> Reminder:
    """Return a copy of reminder with transition applied. Does not persist.

    COMPLETE on a recurring reminder advances due_date by repeat_days and
    leaves it pending. TOGGLE is the interactive checkbox: it flips is_done
    for one-off reminders and behaves like COMPLETE for pending recurring ones.
    """
    if reminder.is_recurring and not reminder.is_done:
        return replace(reminder, due_date=reminder.due_date + timedelta(days=reminder.repeat_days))

    if transition is ReminderTransition.COMPLETE:
        return replace(reminder, is_done=True)
    return replace(reminder, is_done=not reminder.is_done)


def is_overdue(reminder: Reminder, now: datetime) -> bool:
    """Overdue when the due date's calendar day is before today's.

    Time of day is ignored; the due date is read in now's timezone.
    """
    due = reminder.due_date
    if now.tzinfo is not None and due.tzinfo is not None:
        due = due.astimezone(now.tzinfo)
    return due.date() < now.date()


def _validate_repeat(repeat_days: int | None) -> None:
    if repeat_days is not None and repeat_days <= 0:
        raise ValueError("repeat_days must be a positive number of days")


class ReminderLifecycle:
    """Creates, completes and deletes reminders on top of ReminderDB."""

    def __init__(self, db: ReminderDB) -> None:
        self._db = db

    def create(
        self,
        household_id: int,
        title: str,
        now: datetime,
        due_date: datetime | None = None,
        description: str | None = None,
        repeat_days: int | None = None,
    ) -> Reminder:
        """Create a pending reminder, due in a week unless due_date is given."""
        title = title.strip()
        if not title:
            raise ValueError("Reminder title is required")
        _validate_repeat(repeat_days)
        if due_date is None:
            due_date = now + timedelta(days=DEFAULT_DUE_IN_DAYS)

        reminder = self._db.add_reminder(
            household_id=household_id,
            title=title,
            due_date=due_date,
            description=(description or "").strip() or None,
            repeat_days=repeat_days,
        )
        logger.info("Reminder added: #%d '%s' due %s", reminder.id, title, due_date.isoformat())
        return reminder

    def edit(self, reminder_id: int, **changes) -> Reminder:
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit fields: {', '.join(sorted(unknown))}")

        reminder = self._db.get_reminder(reminder_id)
        if reminder is None:
            raise ValueError(f"Reminder {reminder_id} not found")

        updated = replace(reminder, **changes)
        updated.title = updated.title.strip()
        if not updated.title:
            raise ValueError("Reminder title is required")
        _validate_repeat(updated.repeat_days)
        return self._db.update_reminder(updated)

    def complete(self, reminder: Reminder) -> Reminder:
        updated = self._db.update_reminder(
            apply_reminder_transition(reminder, ReminderTransition.COMPLETE)
        )
        if updated.is_done:
            logger.info("Reminder #%d '%s' done", reminder.id, reminder.title)
        else:
            logger.info(
                "Recurring reminder #%d '%s' moved to %s",
                reminder.id, reminder.title, updated.due_date.isoformat(),
            )
        return updated

    def toggle(self, reminder: Reminder) -> Reminder:
        return self._db.update_reminder(
            apply_reminder_transition(reminder, ReminderTransition.TOGGLE)
        )

    def delete(self, reminder_id: int) -> bool:
        return self._db.delete_reminder(reminder_id)

    def pending(self, household_id: int) -> list[Reminder]:
        """Open reminders of a household, earliest due first."""
        return self._db.list_reminders(household_id=household_id, pending_only=True)

    def find_pending_by_title(self, household_id: int, query: str) -> Reminder | None:
        query = query.strip()
        if not query:
            return None
        matches = self._db.find_pending_by_title(household_id, query)
        return matches[0] if matches else None

    def due(self, now: datetime) -> list[Reminder]:
        """Pending reminders of every household whose due_date has passed."""
        return self._db.list_due(now)
