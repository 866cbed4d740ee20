"""Tests for src.core.reminder_lifecycle."""

from datetime import datetime, timedelta, timezone

import pytest

from src.core.reminder_lifecycle import (
    ReminderTransition,
    apply_reminder_transition,
    is_overdue,
)
from src.data.models import Reminder

T0 = datetime(2025, 1, 1, 18, 0, tzinfo=timezone.utc)


def _reminder(repeat_days=None, is_done=False, due=T0):
    return Reminder(
        id=1, household_id=1, title="Filter vervangen", due_date=due,
        repeat_days=repeat_days, is_done=is_done,
    )


class TestApplyReminderTransition:
    def test_complete_one_off(self):
        assert apply_reminder_transition(_reminder(), ReminderTransition.COMPLETE).is_done is True

    @pytest.mark.parametrize("repeat", [1, 7, 30])
    def test_complete_recurring_advances_and_stays_pending(self, repeat):
        updated = apply_reminder_transition(_reminder(repeat_days=repeat), ReminderTransition.COMPLETE)
        assert updated.is_done is False
        assert updated.due_date == T0 + timedelta(days=repeat)

    def test_toggle_one_off_both_ways(self):
        done = apply_reminder_transition(_reminder(), ReminderTransition.TOGGLE)
        assert done.is_done is True
        undone = apply_reminder_transition(done, ReminderTransition.TOGGLE)
        assert undone.is_done is False

    def test_toggle_recurring_advances(self):
        updated = apply_reminder_transition(_reminder(repeat_days=14), ReminderTransition.TOGGLE)
        assert updated.is_done is False
        assert updated.due_date == T0 + timedelta(days=14)


class TestIsOverdue:
    def test_same_day_is_not_overdue_even_if_time_passed(self):
        assert is_overdue(_reminder(due=T0), T0 + timedelta(hours=5, minutes=59)) is False

    def test_previous_day_is_overdue(self):
        now = datetime(2025, 1, 2, 0, 1, tzinfo=timezone.utc)
        assert is_overdue(_reminder(due=T0), now) is True

    def test_date_portion_read_in_now_timezone(self):
        # 23:30 UTC on Jan 1 is already Jan 2 in UTC+2
        due = datetime(2025, 1, 1, 23, 30, tzinfo=timezone.utc)
        now = datetime(2025, 1, 2, 9, 0, tzinfo=timezone(timedelta(hours=2)))
        assert is_overdue(_reminder(due=due), now) is False


class TestReminderLifecycle:
    def test_create_defaults_due_in_a_week(self, reminders):
        r = reminders.create(1, "Banden wisselen", now=T0)
        assert r.due_date == T0 + timedelta(days=7)
        assert r.is_done is False

    def test_create_with_explicit_due(self, reminders):
        due = datetime(2025, 2, 15, tzinfo=timezone.utc)
        r = reminders.create(1, "Stofzuigen", now=T0, due_date=due, description="  ")
        assert r.due_date == due
        assert r.description is None

    def test_create_requires_title(self, reminders):
        with pytest.raises(ValueError):
            reminders.create(1, " ", now=T0)

    def test_create_rejects_non_positive_repeat(self, reminders):
        with pytest.raises(ValueError):
            reminders.create(1, "X", now=T0, repeat_days=0)

    def test_complete_recurring_persists_new_due(self, reminders, reminder_db):
        r = reminders.create(1, "Filter", now=T0, due_date=T0, repeat_days=30)
        reminders.complete(r)
        stored = reminder_db.get_reminder(r.id)
        assert stored.is_done is False
        assert stored.due_date == T0 + timedelta(days=30)

    def test_complete_one_off_leaves_pending_list(self, reminders):
        r = reminders.create(1, "Stofzuigen", now=T0)
        reminders.complete(r)
        assert reminders.pending(1) == []

    def test_toggle_back(self, reminders, reminder_db):
        r = reminders.create(1, "Stofzuigen", now=T0)
        done = reminders.toggle(r)
        reminders.toggle(done)
        assert reminder_db.get_reminder(r.id).is_done is False

    def test_edit(self, reminders):
        r = reminders.create(1, "Stofzuigen", now=T0)
        edited = reminders.edit(r.id, title="Dweilen", repeat_days=7)
        assert edited.title == "Dweilen"
        assert edited.repeat_days == 7

    def test_edit_unknown(self, reminders):
        with pytest.raises(ValueError):
            reminders.edit(999, title="X")

    def test_delete(self, reminders):
        r = reminders.create(1, "Stofzuigen", now=T0)
        assert reminders.delete(r.id) is True
        assert reminders.pending(1) == []

    def test_find_pending_by_title(self, reminders):
        reminders.create(1, "Banden wisselen", now=T0)
        assert reminders.find_pending_by_title(1, "BANDEN").title == "Banden wisselen"
        assert reminders.find_pending_by_title(1, "auto") is None

    def test_due(self, reminders):
        reminders.create(1, "Now", now=T0, due_date=T0)
        reminders.create(1, "Later", now=T0)
        assert [r.title for r in reminders.due(T0)] == ["Now"]
