"""
Restock Bot — Due-Item Scan & Dispatch.

One pass over everything that is due: stocked products whose reminder time
has passed and pending reminders whose due date has passed. Items are grouped
per household and each household gets at most one product message and one
reminder message.

Products only advance to "reminded" after their message was delivered, so a
failed delivery leaves them eligible for the next pass, and a delivered one
is never sent twice. Reminders are reported only; completing them is an
explicit user action.

This module is provider-agnostic: it depends on the NotificationPort
protocol, not on Telegram.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.core.product_lifecycle import ProductLifecycle, ProductView
    from src.core.reminder_lifecycle import ReminderLifecycle
    from src.data.db import HouseholdDB
    from src.data.models import Household, Reminder
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


@dataclass
class ScanSummary:
    """Outcome of one scan pass."""

    notified: int = 0            # households with at least one delivered message
    products_checked: int = 0    # due products found
    reminders_checked: int = 0   # due reminders found

    def as_dict(self) -> dict:
        return {
            "notified": self.notified,
            "productsChecked": self.products_checked,
            "remindersChecked": self.reminders_checked,
        }


# ---------------------------------------------------------------------------
# Message formatting
# ---------------------------------------------------------------------------


def format_product_reminder(views: list[ProductView]) -> str:
    lines = []
    for v in views:
        days = v.timing.days_remaining
        unit = "day" if days == 1 else "days"
        lines.append(f"  - <b>{html.escape(v.product.name)}</b> (~{days} {unit} left)")
    return "\n".join([
        "Restock reminder!",
        "",
        "These products are almost out:",
        *lines,
        "",
        "Time to order!",
    ])


def format_task_reminder(reminders: list[Reminder]) -> str:
    lines = []
    for r in reminders:
        line = f"  - <b>{html.escape(r.title)}</b>"
        if r.description:
            line += f" ({html.escape(r.description)})"
        lines.append(line)
    return "\n".join(["Tasks due today:", "", *lines])


# ---------------------------------------------------------------------------
# Scan
# ---------------------------------------------------------------------------


def _group_by_household(items: list, household_of) -> dict[int, list]:
    grouped: dict[int, list] = {}
    for item in items:
        grouped.setdefault(household_of(item), []).append(item)
    return grouped


def _notification_target(households: HouseholdDB, household_id: int) -> Household | None:
    """Household with a linked chat, or None if it can't be notified."""
    household = households.get_household(household_id)
    if household is None or not household.telegram_chat_id:
        logger.debug("Household #%d has no notification chat, skipping", household_id)
        return None
    return household


async def _dispatch_products(
    notifier: NotificationPort,
    products: ProductLifecycle,
    household: Household,
    views: list[ProductView],
    now: datetime,
) -> bool:
    message = format_product_reminder(views)
    delivered = await notifier.send_message(household.telegram_chat_id, message)
    if not delivered:
        logger.warning(
            "Product reminder for household #%d not delivered, state left unchanged",
            household.id,
        )
        return False

    for v in views:
        try:
            products.mark_reminded(v.product, now, message)
        except Exception as exc:
            logger.error("Failed to mark product #%d reminded: %s", v.product.id, exc)
    return True


async def run_due_scan(
    notifier: NotificationPort,
    households: HouseholdDB,
    products: ProductLifecycle,
    reminders: ReminderLifecycle,
    now: datetime,
) -> ScanSummary:
    """Find due products and reminders, notify each household, advance products."""
    summary = ScanSummary()

    try:
        due_products = products.due_for_reminder(now)
    except Exception as exc:
        logger.error("Due scan: product query failed: %s", exc)
        due_products = []

    try:
        due_reminders = reminders.due(now)
    except Exception as exc:
        logger.error("Due scan: reminder query failed: %s", exc)
        due_reminders = []

    summary.products_checked = len(due_products)
    summary.reminders_checked = len(due_reminders)

    products_by_hh = _group_by_household(due_products, lambda v: v.product.household_id)
    reminders_by_hh = _group_by_household(due_reminders, lambda r: r.household_id)

    for household_id in sorted(set(products_by_hh) | set(reminders_by_hh)):
        try:
            household = _notification_target(households, household_id)
            if household is None:
                continue

            notified = False
            if household_id in products_by_hh:
                notified = await _dispatch_products(
                    notifier, products, household, products_by_hh[household_id], now,
                )

            if household_id in reminders_by_hh:
                message = format_task_reminder(reminders_by_hh[household_id])
                if await notifier.send_message(household.telegram_chat_id, message):
                    notified = True
                else:
                    logger.warning("Task reminder for household #%d not delivered", household_id)

            if notified:
                summary.notified += 1
        except Exception as exc:
            logger.error("Due scan failed for household #%d: %s", household_id, exc)

    logger.info(
        "Due scan: %d products, %d reminders, %d households notified",
        summary.products_checked, summary.reminders_checked, summary.notified,
    )
    return summary
