"""Tests for src.data.db — SQLite storage."""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from src.data.db import ProductDB, from_db_timestamp, to_db_timestamp
from src.data.models import ProductStatus

T0 = datetime(2025, 1, 1, 8, 30, tzinfo=timezone.utc)


class TestTimestamps:
    def test_round_trip_keeps_instant(self):
        cet = timezone(timedelta(hours=1))
        value = datetime(2025, 1, 1, 9, 30, tzinfo=cet)
        assert from_db_timestamp(to_db_timestamp(value)) == value

    def test_naive_is_treated_as_utc(self):
        assert to_db_timestamp(datetime(2025, 1, 1)) == "2025-01-01T00:00:00.000000+00:00"

    def test_fixed_width_sorts_lexically(self):
        early = to_db_timestamp(datetime(2025, 1, 1, 23, 59, tzinfo=timezone.utc))
        late = to_db_timestamp(datetime(2025, 1, 2, 0, 0, 0, 1, tzinfo=timezone.utc))
        assert early < late


class TestHouseholdDB:
    def test_add_and_get(self, household_db):
        hh = household_db.add_household("Thuis")
        fetched = household_db.get_household(hh.id)
        assert fetched.name == "Thuis"
        assert fetched.telegram_chat_id is None

    def test_find_by_chat_id(self, household_db):
        hh = household_db.add_household("Thuis", telegram_chat_id="42")
        assert household_db.find_by_chat_id("42").id == hh.id

    def test_find_unknown_chat_returns_none_and_creates_nothing(self, household_db):
        assert household_db.find_by_chat_id("nope") is None
        assert household_db.list_households() == []

    def test_link_and_unlink(self, household_db):
        hh = household_db.add_household("Thuis")
        assert household_db.set_chat_id(hh.id, "77") is True
        assert household_db.find_by_chat_id("77").id == hh.id
        assert household_db.set_chat_id(hh.id, None) is True
        assert household_db.find_by_chat_id("77") is None

    def test_link_unknown_household(self, household_db):
        assert household_db.set_chat_id(999, "77") is False

    def test_chat_id_is_unique(self, household_db):
        household_db.add_household("A", telegram_chat_id="1")
        with pytest.raises(sqlite3.IntegrityError):
            household_db.add_household("B", telegram_chat_id="1")


class TestProductDB:
    def test_add_product_returns_product(self, product_db):
        p = product_db.add_product(1, "Havermelk", 7, last_restocked_at=T0)
        assert p.id is not None
        assert p.status == ProductStatus.STOCKED
        assert p.remind_days_before == 2
        assert p.last_restocked_at == T0
        assert p.is_active is True

    def test_list_active_filters_household_and_status(self, product_db):
        product_db.add_product(1, "A", 7, last_restocked_at=T0)
        product_db.add_product(1, "B", 7, last_restocked_at=T0, status=ProductStatus.ON_LIST)
        product_db.add_product(2, "C", 7, last_restocked_at=T0)
        assert [p.name for p in product_db.list_active(household_id=1)] == ["A", "B"]
        assert [p.name for p in product_db.list_active(statuses=(ProductStatus.STOCKED,))] == ["A", "C"]

    def test_list_active_excludes_inactive(self, product_db):
        p = product_db.add_product(1, "A", 7, last_restocked_at=T0)
        p.is_active = False
        product_db.update_product(p)
        assert product_db.list_active(household_id=1) == []
        assert product_db.get_product(p.id).is_active is False

    def test_find_active_by_name_is_case_insensitive_substring(self, product_db):
        product_db.add_product(1, "Havermelk", 7, last_restocked_at=T0)
        product_db.add_product(1, "Bananen", 7, last_restocked_at=T0)
        found = product_db.find_active_by_name(1, "HAVER")
        assert [p.name for p in found] == ["Havermelk"]

    def test_find_active_by_name_scoped_to_household(self, product_db):
        product_db.add_product(2, "Havermelk", 7, last_restocked_at=T0)
        assert product_db.find_active_by_name(1, "haver") == []

    def test_find_active_by_name_folds_non_ascii_case(self, product_db):
        product_db.add_product(1, "Crème fraîche", 7, last_restocked_at=T0)
        product_db.add_product(1, "Één liter melk", 7, last_restocked_at=T0)
        assert [p.name for p in product_db.find_active_by_name(1, "CRÈME")] == ["Crème fraîche"]
        assert [p.name for p in product_db.find_active_by_name(1, "één")] == ["Één liter melk"]

    def test_find_treats_wildcards_literally(self, product_db):
        product_db.add_product(1, "Melk", 7, last_restocked_at=T0)
        assert product_db.find_active_by_name(1, "%") == []
        assert product_db.find_active_by_name(1, "_elk") == []

    def test_update_product_persists_fields(self, product_db):
        p = product_db.add_product(1, "A", 7, last_restocked_at=T0)
        p.status = ProductStatus.REMINDED
        p.last_restocked_at = T0 + timedelta(days=3)
        product_db.update_product(p)
        fetched = product_db.get_product(p.id)
        assert fetched.status == ProductStatus.REMINDED
        assert fetched.last_restocked_at == T0 + timedelta(days=3)

    def test_update_missing_product_raises(self, product_db):
        p = product_db.add_product(1, "A", 7, last_restocked_at=T0)
        p.id = 999
        with pytest.raises(ValueError):
            product_db.update_product(p)

    def test_dispatch_log(self, product_db):
        p = product_db.add_product(1, "A", 7, last_restocked_at=T0)
        product_db.log_dispatch(p.id, "msg", T0)
        log = product_db.list_dispatch_log(product_id=p.id)
        assert len(log) == 1
        assert log[0].message == "msg"
        assert product_db.list_dispatch_log(product_id=999) == []


class TestProductDBSchema:
    def test_fresh_table_has_every_column(self, product_db, tmp_db_path):
        conn = sqlite3.connect(tmp_db_path)
        cols = {row[1] for row in conn.execute("PRAGMA table_info(products)").fetchall()}
        conn.close()
        assert {"is_recurring", "shop_url", "category", "is_active"} <= cols

    def test_reopening_existing_file_keeps_rows(self, product_db, tmp_db_path):
        product_db.add_product(1, "Havermelk", 7, last_restocked_at=T0, shop_url="https://x")
        (reopened,) = ProductDB(db_path=tmp_db_path).list_active()
        assert reopened.shop_url == "https://x"
        assert reopened.is_recurring is True


class TestReminderDB:
    def test_add_and_get(self, reminder_db):
        r = reminder_db.add_reminder(1, "Stofzuigen", due_date=T0)
        fetched = reminder_db.get_reminder(r.id)
        assert fetched.title == "Stofzuigen"
        assert fetched.due_date == T0
        assert fetched.is_done is False

    def test_list_pending_ordered_by_due_date(self, reminder_db):
        reminder_db.add_reminder(1, "Later", due_date=T0 + timedelta(days=3))
        reminder_db.add_reminder(1, "Sooner", due_date=T0)
        done = reminder_db.add_reminder(1, "Done", due_date=T0)
        done.is_done = True
        reminder_db.update_reminder(done)
        assert [r.title for r in reminder_db.list_reminders(household_id=1)] == ["Sooner", "Later"]
        assert len(reminder_db.list_reminders(household_id=1, pending_only=False)) == 3

    def test_list_due(self, reminder_db):
        reminder_db.add_reminder(1, "Due", due_date=T0)
        reminder_db.add_reminder(2, "Not yet", due_date=T0 + timedelta(hours=1))
        assert [r.title for r in reminder_db.list_due(T0)] == ["Due"]

    def test_find_pending_by_title(self, reminder_db):
        reminder_db.add_reminder(1, "Banden wisselen", due_date=T0)
        assert reminder_db.find_pending_by_title(1, "banden")[0].title == "Banden wisselen"
        assert reminder_db.find_pending_by_title(2, "banden") == []

    def test_find_pending_by_title_folds_non_ascii_case(self, reminder_db):
        reminder_db.add_reminder(1, "Ontkalken koffiezetapparaat", due_date=T0)
        reminder_db.add_reminder(1, "Crèmekleurige gordijnen wassen", due_date=T0)
        found = reminder_db.find_pending_by_title(1, "CRÈMEKLEURIGE")
        assert [r.title for r in found] == ["Crèmekleurige gordijnen wassen"]

    def test_delete_is_hard(self, reminder_db):
        r = reminder_db.add_reminder(1, "X", due_date=T0)
        assert reminder_db.delete_reminder(r.id) is True
        assert reminder_db.get_reminder(r.id) is None
        assert reminder_db.delete_reminder(r.id) is False
