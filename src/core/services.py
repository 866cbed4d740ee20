"""
Restock Bot — Service wiring.

Builds the stores, lifecycles and interpreter once so the Telegram bot, the
HTTP surface and the CLI all share the same objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from src.core.action_service import CommandInterpreter
from src.core.clock import now_local
from src.core.product_lifecycle import ProductLifecycle
from src.core.reminder_lifecycle import ReminderLifecycle
from src.core.scheduler import ScanSummary, run_due_scan
from src.data.db import HouseholdDB, ProductDB, ReminderDB

if TYPE_CHECKING:
    from src.ports.notification_port import NotificationPort


@dataclass
class Services:
    notifier: NotificationPort
    households: HouseholdDB
    products: ProductLifecycle
    reminders: ReminderLifecycle
    interpreter: CommandInterpreter

    async def scan(self, now: datetime | None = None) -> ScanSummary:
        """Run one due scan pass at now (default: current local time)."""
        return await run_due_scan(
            self.notifier,
            self.households,
            self.products,
            self.reminders,
            now if now is not None else now_local(),
        )


def build_services(notifier: NotificationPort, db_path: str | None = None) -> Services:
    households = HouseholdDB(db_path=db_path)
    products = ProductLifecycle(ProductDB(db_path=db_path))
    reminders = ReminderLifecycle(ReminderDB(db_path=db_path))
    interpreter = CommandInterpreter(notifier, households, products, reminders)
    return Services(
        notifier=notifier,
        households=households,
        products=products,
        reminders=reminders,
        interpreter=interpreter,
    )
