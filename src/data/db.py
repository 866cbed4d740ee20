"""
Restock Bot — SQLite storage.

One class per table, all sharing the same database file. Timestamps are
stored as UTC ISO-8601 text with a fixed width, so plain string comparison
in SQL orders them correctly.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from src.data.models import DispatchLogEntry, Household, Product, ProductStatus, Reminder

logger = logging.getLogger(__name__)


def to_db_timestamp(value: datetime) -> str:
    """Serialize an aware datetime as fixed-width UTC text (naive = UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _now_text() -> str:
    return to_db_timestamp(datetime.now(timezone.utc))


def _contains(text: str, fragment: str) -> bool:
    """Unicode-aware case-insensitive substring test (SQLite LIKE folds ASCII only)."""
    return fragment.casefold() in text.casefold()


class _SQLiteStore:
    """Shared connection handling for the table classes below."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


class HouseholdDB(_SQLiteStore):
    """SQLite-backed storage for households and their chat links."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS households (
                    id               INTEGER PRIMARY KEY AUTOINCREMENT,
                    name             TEXT NOT NULL,
                    telegram_chat_id TEXT UNIQUE,
                    created_at       TEXT NOT NULL
                )
            """)
        logger.debug("Households table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_household(row: sqlite3.Row) -> Household:
        return Household(
            id=row["id"],
            name=row["name"],
            telegram_chat_id=row["telegram_chat_id"],
            created_at=row["created_at"],
        )

    def add_household(self, name: str, telegram_chat_id: str | None = None) -> Household:
        """Insert a new household, optionally already linked to a chat."""
        now = _now_text()
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO households (name, telegram_chat_id, created_at) VALUES (?, ?, ?)",
                (name.strip(), telegram_chat_id, now),
            )
            household_id = cursor.lastrowid

        logger.info("Household added: #%d '%s'", household_id, name)
        return Household(
            id=household_id,
            name=name.strip(),
            telegram_chat_id=telegram_chat_id,
            created_at=now,
        )

    def get_household(self, household_id: int) -> Household | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM households WHERE id = ?", (household_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_household(row)

    def find_by_chat_id(self, telegram_chat_id: str) -> Household | None:
        """Resolve a chat to its household. Never creates one."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM households WHERE telegram_chat_id = ?",
                (telegram_chat_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_household(row)

    def set_chat_id(self, household_id: int, telegram_chat_id: str | None) -> bool:
        """Link (or unlink, with None) a household's notification chat."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE households SET telegram_chat_id = ? WHERE id = ?",
                (telegram_chat_id, household_id),
            )
        updated = cursor.rowcount > 0
        if updated:
            logger.info("Household #%d linked to chat %s", household_id, telegram_chat_id)
        return updated

    def list_households(self) -> list[Household]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM households ORDER BY id").fetchall()
        return [self._row_to_household(r) for r in rows]


class ProductDB(_SQLiteStore):
    """SQLite-backed storage for products and the reminder dispatch log."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS products (
                    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
                    household_id       INTEGER NOT NULL,
                    name               TEXT    NOT NULL,
                    category           TEXT,
                    days_until_empty   INTEGER NOT NULL,
                    remind_days_before INTEGER NOT NULL DEFAULT 2,
                    last_restocked_at  TEXT    NOT NULL,
                    status             TEXT    NOT NULL DEFAULT 'stocked',
                    is_active          INTEGER NOT NULL DEFAULT 1,
                    is_recurring       INTEGER NOT NULL DEFAULT 1,
                    shop_url           TEXT,
                    created_at         TEXT    NOT NULL,
                    updated_at         TEXT    NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reminder_log (
                    id         INTEGER PRIMARY KEY AUTOINCREMENT,
                    product_id INTEGER NOT NULL,
                    message    TEXT    NOT NULL,
                    sent_at    TEXT    NOT NULL
                )
            """)
        logger.debug("Products table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_product(row: sqlite3.Row) -> Product:
        return Product(
            id=row["id"],
            household_id=row["household_id"],
            name=row["name"],
            category=row["category"],
            days_until_empty=row["days_until_empty"],
            remind_days_before=row["remind_days_before"],
            last_restocked_at=from_db_timestamp(row["last_restocked_at"]),
            status=row["status"],
            is_active=bool(row["is_active"]),
            is_recurring=bool(row["is_recurring"]),
            shop_url=row["shop_url"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def add_product(
        self,
        household_id: int,
        name: str,
        days_until_empty: int,
        last_restocked_at: datetime,
        remind_days_before: int = 2,
        status: str = ProductStatus.STOCKED,
        is_recurring: bool = True,
        category: str | None = None,
        shop_url: str | None = None,
    ) -> Product:
        """Insert a new active product."""
        now = _now_text()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO products
                    (household_id, name, category, days_until_empty,
                     remind_days_before, last_restocked_at, status,
                     is_active, is_recurring, shop_url, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?, ?, ?, ?)
                """,
                (
                    household_id, name, category, days_until_empty,
                    remind_days_before, to_db_timestamp(last_restocked_at), status,
                    int(is_recurring), shop_url, now, now,
                ),
            )
            product_id = cursor.lastrowid

        return Product(
            id=product_id,
            household_id=household_id,
            name=name,
            category=category,
            days_until_empty=days_until_empty,
            remind_days_before=remind_days_before,
            last_restocked_at=from_db_timestamp(to_db_timestamp(last_restocked_at)),
            status=status,
            is_active=True,
            is_recurring=is_recurring,
            shop_url=shop_url,
            created_at=now,
            updated_at=now,
        )

    def get_product(self, product_id: int) -> Product | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM products WHERE id = ?", (product_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_product(row)

    def list_active(
        self,
        household_id: int | None = None,
        statuses: tuple[str, ...] | list[str] | None = None,
    ) -> list[Product]:
        """Active products, optionally scoped to a household and/or statuses."""
        conditions = ["is_active = 1"]
        params: list = []
        if household_id is not None:
            conditions.append("household_id = ?")
            params.append(household_id)
        if statuses:
            conditions.append(f"status IN ({', '.join('?' for _ in statuses)})")
            params.extend(statuses)

        query = "SELECT * FROM products WHERE " + " AND ".join(conditions) + " ORDER BY id"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_product(r) for r in rows]

    def find_active_by_name(self, household_id: int, fragment: str) -> list[Product]:
        """Case-insensitive substring match on name, in creation order."""
        fragment = fragment.strip()
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM products WHERE household_id = ? AND is_active = 1 ORDER BY id",
                (household_id,),
            ).fetchall()
        return [self._row_to_product(r) for r in rows if _contains(r["name"], fragment)]

    def update_product(self, product: Product) -> Product:
        """Write every mutable column of product back to its row."""
        product.updated_at = _now_text()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE products SET
                    name = ?, category = ?, days_until_empty = ?,
                    remind_days_before = ?, last_restocked_at = ?, status = ?,
                    is_active = ?, is_recurring = ?, shop_url = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    product.name, product.category, product.days_until_empty,
                    product.remind_days_before, to_db_timestamp(product.last_restocked_at),
                    product.status, int(product.is_active), int(product.is_recurring),
                    product.shop_url, product.updated_at, product.id,
                ),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"Product {product.id} not found")
        return product

    def log_dispatch(self, product_id: int, message: str, sent_at: datetime) -> DispatchLogEntry:
        """Append one entry to the reminder dispatch log."""
        sent_text = to_db_timestamp(sent_at)
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO reminder_log (product_id, message, sent_at) VALUES (?, ?, ?)",
                (product_id, message, sent_text),
            )
        return DispatchLogEntry(
            id=cursor.lastrowid, product_id=product_id, message=message, sent_at=sent_text,
        )

    def list_dispatch_log(self, product_id: int | None = None) -> list[DispatchLogEntry]:
        query = "SELECT * FROM reminder_log"
        params: list = []
        if product_id is not None:
            query += " WHERE product_id = ?"
            params.append(product_id)
        query += " ORDER BY id"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            DispatchLogEntry(
                id=r["id"], product_id=r["product_id"], message=r["message"], sent_at=r["sent_at"],
            )
            for r in rows
        ]


class ReminderDB(_SQLiteStore):
    """SQLite-backed storage for household reminders (tasks)."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reminders (
                    id           INTEGER PRIMARY KEY AUTOINCREMENT,
                    household_id INTEGER NOT NULL,
                    title        TEXT    NOT NULL,
                    description  TEXT,
                    due_date     TEXT    NOT NULL,
                    repeat_days  INTEGER,
                    is_done      INTEGER NOT NULL DEFAULT 0,
                    created_at   TEXT    NOT NULL
                )
            """)
        logger.debug("Reminders table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_reminder(row: sqlite3.Row) -> Reminder:
        return Reminder(
            id=row["id"],
            household_id=row["household_id"],
            title=row["title"],
            description=row["description"],
            due_date=from_db_timestamp(row["due_date"]),
            repeat_days=row["repeat_days"],
            is_done=bool(row["is_done"]),
            created_at=row["created_at"],
        )

    def add_reminder(
        self,
        household_id: int,
        title: str,
        due_date: datetime,
        description: str | None = None,
        repeat_days: int | None = None,
    ) -> Reminder:
        now = _now_text()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO reminders
                    (household_id, title, description, due_date, repeat_days, is_done, created_at)
                VALUES (?, ?, ?, ?, ?, 0, ?)
                """,
                (household_id, title, description, to_db_timestamp(due_date), repeat_days, now),
            )
            reminder_id = cursor.lastrowid

        return Reminder(
            id=reminder_id,
            household_id=household_id,
            title=title,
            description=description,
            due_date=from_db_timestamp(to_db_timestamp(due_date)),
            repeat_days=repeat_days,
            is_done=False,
            created_at=now,
        )

    def get_reminder(self, reminder_id: int) -> Reminder | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM reminders WHERE id = ?", (reminder_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_reminder(row)

    def list_reminders(
        self, household_id: int | None = None, pending_only: bool = True,
    ) -> list[Reminder]:
        """Reminders ordered by due date (then creation order)."""
        conditions: list[str] = []
        params: list = []
        if pending_only:
            conditions.append("is_done = 0")
        if household_id is not None:
            conditions.append("household_id = ?")
            params.append(household_id)

        query = "SELECT * FROM reminders"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY due_date, id"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_reminder(r) for r in rows]

    def list_due(self, now: datetime) -> list[Reminder]:
        """Pending reminders (all households) with due_date <= now."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM reminders WHERE is_done = 0 AND due_date <= ? ORDER BY due_date, id",
                (to_db_timestamp(now),),
            ).fetchall()
        return [self._row_to_reminder(r) for r in rows]

    def find_pending_by_title(self, household_id: int, fragment: str) -> list[Reminder]:
        """Case-insensitive substring match on title among pending reminders."""
        fragment = fragment.strip()
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM reminders
                WHERE household_id = ? AND is_done = 0
                ORDER BY due_date, id
                """,
                (household_id,),
            ).fetchall()
        return [self._row_to_reminder(r) for r in rows if _contains(r["title"], fragment)]

    def update_reminder(self, reminder: Reminder) -> Reminder:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE reminders SET
                    title = ?, description = ?, due_date = ?, repeat_days = ?, is_done = ?
                WHERE id = ?
                """,
                (
                    reminder.title, reminder.description, to_db_timestamp(reminder.due_date),
                    reminder.repeat_days, int(reminder.is_done), reminder.id,
                ),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"Reminder {reminder.id} not found")
        return reminder

    def delete_reminder(self, reminder_id: int) -> bool:
        """Permanently delete a reminder by ID."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Reminder #%d deleted", reminder_id)
        return deleted
