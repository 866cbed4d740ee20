"""Timing projection — pure business logic.

Derives when a product runs out, when its reminder is due, and how many
whole days are left, from the stored cycle fields and an explicit "now".

No I/O: this module only transforms data. Every other module gets these
numbers from here so the rounding rule lives in one place.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.data.models import Product

_SECONDS_PER_DAY = 86400

URGENCY_OVERDUE = "overdue"
URGENCY_URGENT = "urgent"
URGENCY_OK = "ok"


@dataclass(frozen=True)
class Timing:
    """Derived temporal fields of one product at one instant."""

    runs_out_at: datetime
    remind_at: datetime
    days_remaining: int


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end, floored (negative once end has passed)."""
    return math.floor((end - start).total_seconds() / _SECONDS_PER_DAY)


def project(product: Product, now: datetime) -> Timing:
    """Compute runs_out_at, remind_at and days_remaining for product at now."""
    runs_out_at = product.last_restocked_at + timedelta(days=product.days_until_empty)
    remind_at = runs_out_at - timedelta(days=product.remind_days_before)
    return Timing(
        runs_out_at=runs_out_at,
        remind_at=remind_at,
        days_remaining=days_between(now, runs_out_at),
    )


def is_due_for_reminder(product: Product, now: datetime) -> bool:
    return project(product, now).remind_at <= now


def urgency(product: Product, timing: Timing) -> str:
    """Classify a projection: overdue (<= 0 days), urgent (within lead time) or ok."""
    if timing.days_remaining <= 0:
        return URGENCY_OVERDUE
    if timing.days_remaining <= product.remind_days_before:
        return URGENCY_URGENT
    return URGENCY_OK
