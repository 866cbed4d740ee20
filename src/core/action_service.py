"""
Restock Bot — Command Interpreter.

Resolves the sending chat to its household, runs the parsed command through
the product/reminder lifecycles and sends the reply back to the same chat.

The caller always gets None back: delivery problems and store failures are
logged here, never surfaced to whoever fed in the message.
"""

from __future__ import annotations

import html
import logging
import sqlite3
from datetime import datetime
from typing import TYPE_CHECKING

from src.core.clock import now_local
from src.core.parser import (
    AddProduct,
    AddTask,
    Command,
    CompleteTask,
    Help,
    ListAll,
    ListNeeded,
    ListTasks,
    ListUrgent,
    MarkBought,
    QuickAdd,
    RemoveProduct,
    Usage,
    parse_command,
)
from src.core.reminder_lifecycle import is_overdue
from src.core.timing import URGENCY_OK, URGENCY_OVERDUE, URGENCY_URGENT

if TYPE_CHECKING:
    from src.core.product_lifecycle import ProductLifecycle, ProductView
    from src.core.reminder_lifecycle import ReminderLifecycle
    from src.data.db import HouseholdDB
    from src.data.models import Reminder
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Static texts
# ---------------------------------------------------------------------------

HELP_TEXT = "\n".join([
    "<b>Available commands:</b>",
    "",
    "/lijst - Shopping list",
    "/voorraad - All products with days left",
    "/bijna - Products running low",
    "/gekocht &lt;name&gt; - Mark a product as bought",
    "/nodig &lt;name&gt; - Put a product on the shopping list",
    "/voeg &lt;name&gt; &lt;days&gt; [reminder] - Track a new product",
    "/verwijder &lt;name&gt; - Stop tracking a product",
    "/taak &lt;description&gt; [date] - Add a task",
    "/taken - Open tasks",
    "/klaar &lt;name&gt; - Complete a task",
    "/help - Show this menu",
    "",
    "English names work too: /list /status /urgent /bought /need /add /remove /task /tasks /done",
])

USAGE_TEXT = {
    "mark_bought": "Usage: /gekocht &lt;product name&gt;",
    "quick_add": "Usage: /nodig &lt;product name&gt;",
    "remove_product": "Usage: /verwijder &lt;product name&gt;",
    "add_product": (
        "Usage: /voeg &lt;name&gt; &lt;days_until_empty&gt; [reminder_days]\n"
        "E.g.: /voeg Havermelk 7 2"
    ),
    "add_task": (
        "Usage: /taak &lt;description&gt; [YYYY-MM-DD | DD-MM-YYYY | DD/MM]\n"
        "E.g.: /taak Stofzuigen 15/02"
    ),
    "complete_task": "Usage: /klaar &lt;task name&gt;",
}

STORE_ERROR_TEXT = "Something went wrong while saving. Please try again later."

_URGENCY_MARKER = {
    URGENCY_OVERDUE: "!!!",
    URGENCY_URGENT: "(!)",
    URGENCY_OK: "   ",
}


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _product_label(view: ProductView) -> str:
    name = html.escape(view.product.name)
    if view.product.shop_url:
        return f'<a href="{html.escape(view.product.shop_url, quote=True)}">{name}</a>'
    return name


def _format_day(value: datetime, now: datetime) -> str:
    if now.tzinfo is not None and value.tzinfo is not None:
        value = value.astimezone(now.tzinfo)
    return value.strftime("%d-%m-%Y")


def format_needed(views: list[ProductView]) -> str:
    if not views:
        return "Nothing needed! Everything is in stock."
    lines = []
    for v in views:
        days = v.timing.days_remaining
        suffix = " (OUT!)" if days <= 0 else f" ({days}d)"
        lines.append(f"  - {_product_label(v)}{suffix}")
    return "<b>Shopping list:</b>\n\n" + "\n".join(lines)


def format_overview(views: list[ProductView]) -> str:
    if not views:
        return "No products tracked yet."
    lines = [
        f"{_URGENCY_MARKER[v.urgency]} {html.escape(v.product.name)}: "
        f"{v.timing.days_remaining}d left"
        for v in views
    ]
    return "<b>Stock overview:</b>\n\n" + "\n".join(lines)


def format_urgent(views: list[ProductView]) -> str:
    if not views:
        return "Nothing is running low."
    lines = [
        f"  - {_product_label(v)} ({v.timing.days_remaining}d left)"
        for v in views
    ]
    return "<b>Running low:</b>\n\n" + "\n".join(lines)


def format_tasks(reminders: list[Reminder], now: datetime) -> str:
    if not reminders:
        return "No open tasks."
    lines = []
    for r in reminders:
        marker = "(!) " if is_overdue(r, now) else ""
        line = f"  - {marker}<b>{html.escape(r.title)}</b>: {_format_day(r.due_date, now)}"
        if r.repeat_days is not None:
            line += f" (every {r.repeat_days} days)"
        lines.append(line)
    return "<b>Open tasks:</b>\n\n" + "\n".join(lines)


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------


class CommandInterpreter:
    """Maps chat lines to lifecycle operations and replies over the notifier."""

    def __init__(
        self,
        notifier: NotificationPort,
        households: HouseholdDB,
        products: ProductLifecycle,
        reminders: ReminderLifecycle,
    ) -> None:
        self._notifier = notifier
        self._households = households
        self._products = products
        self._reminders = reminders

    async def handle_message(
        self, chat_id: str, text: str, now: datetime | None = None,
    ) -> None:
        """Process one inbound line from chat_id. Unknown input is ignored."""
        if now is None:
            now = now_local()

        command = parse_command(text, now)
        if command is None:
            return

        try:
            household = self._households.find_by_chat_id(chat_id)
        except sqlite3.Error as exc:
            logger.error("Household lookup for chat %s failed: %s", chat_id, exc)
            return

        if household is None:
            logger.warning("Command from unlinked chat %s ignored", chat_id)
            return

        reply = self.execute(command, household.id, now)
        delivered = await self._notifier.send_message(chat_id, reply)
        if not delivered:
            logger.warning("Reply to chat %s (%s) was not delivered", chat_id, command.intent)

    def execute(self, command: Command, household_id: int, now: datetime) -> str:
        """Run command for household_id and return the reply text."""
        try:
            return self._dispatch(command, household_id, now)
        except sqlite3.Error as exc:
            logger.error("Store error while handling %s: %s", command.intent, exc)
            return STORE_ERROR_TEXT
        except ValueError as exc:
            logger.warning("Rejected %s: %s", command.intent, exc)
            return USAGE_TEXT.get(command.intent, HELP_TEXT)

    def _dispatch(self, command: Command, household_id: int, now: datetime) -> str:
        if isinstance(command, ListNeeded):
            return format_needed(self._products.needed(household_id, now))

        if isinstance(command, ListAll):
            return format_overview(self._products.views(household_id, now))

        if isinstance(command, ListUrgent):
            return format_urgent(self._products.urgent(household_id, now))

        if isinstance(command, MarkBought):
            product = self._products.find_by_name(household_id, command.name)
            if product is None:
                return f'Product "{html.escape(command.name)}" not found.'
            updated = self._products.mark_bought(product, now)
            name = html.escape(product.name)
            if updated.is_active:
                return f"<b>{name}</b> marked as bought! Timer reset."
            return f"<b>{name}</b> bought and removed from the list."

        if isinstance(command, QuickAdd):
            product, created = self._products.quick_add(household_id, command.name, now)
            name = html.escape(product.name)
            if created:
                return f"<b>{name}</b> added to the shopping list (one-off)."
            return f"<b>{name}</b> is on the shopping list."

        if isinstance(command, AddProduct):
            product = self._products.create(
                household_id=household_id,
                name=command.name,
                days_until_empty=command.days_until_empty,
                now=now,
                remind_days_before=command.remind_days_before,
                is_recurring=True,
            )
            return (
                f"<b>{html.escape(product.name)}</b> added! Lasts ~{product.days_until_empty} days, "
                f"reminder {product.remind_days_before} days ahead."
            )

        if isinstance(command, RemoveProduct):
            product = self._products.find_by_name(household_id, command.name)
            if product is None:
                return f'Product "{html.escape(command.name)}" not found.'
            self._products.remove(product, now)
            return f"<b>{html.escape(product.name)}</b> removed."

        if isinstance(command, AddTask):
            reminder = self._reminders.create(
                household_id=household_id,
                title=command.title,
                now=now,
                due_date=command.due_date,
            )
            return (
                f"Task <b>{html.escape(reminder.title)}</b> added, "
                f"due {_format_day(reminder.due_date, now)}."
            )

        if isinstance(command, ListTasks):
            return format_tasks(self._reminders.pending(household_id), now)

        if isinstance(command, CompleteTask):
            reminder = self._reminders.find_pending_by_title(household_id, command.title)
            if reminder is None:
                return f'Task "{html.escape(command.title)}" not found.'
            updated = self._reminders.complete(reminder)
            title = html.escape(reminder.title)
            if updated.is_done:
                return f"<b>{title}</b> done!"
            return f"<b>{title}</b> done! Next time: {_format_day(updated.due_date, now)}."

        if isinstance(command, Usage):
            return USAGE_TEXT.get(command.command, HELP_TEXT)

        if isinstance(command, Help):
            return HELP_TEXT

        logger.warning("Unhandled command %r", command)
        return HELP_TEXT
