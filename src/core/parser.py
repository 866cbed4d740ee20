"""
Restock Bot — Command Parser.

Turns one chat line into a structured command. The first token selects the
command (exact, case-sensitive, with any "@botname" suffix dropped); the rest
of the line is parsed per command. Lines that are not a known command parse
to None and are ignored by the caller.

Every command answers to a Dutch and an English name, e.g. /lijst and /list.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time

from pydantic import BaseModel

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Command models
# ---------------------------------------------------------------------------


class ListNeeded(BaseModel):
    """Shopping list: products on the list or reminded."""
    intent: str = "list_needed"


class ListAll(BaseModel):
    """Every active product with its urgency tier."""
    intent: str = "list_all"


class ListUrgent(BaseModel):
    """Stocked products inside their reminder window."""
    intent: str = "list_urgent"


class MarkBought(BaseModel):
    intent: str = "mark_bought"
    name: str


class QuickAdd(BaseModel):
    intent: str = "quick_add"
    name: str


class AddProduct(BaseModel):
    """JSON example:
    {
        "intent": "add_product",
        "name": "Havermelk",
        "days_until_empty": 7,
        "remind_days_before": 2
    }
    """
    intent: str = "add_product"
    name: str
    days_until_empty: int
    remind_days_before: int = 2


class RemoveProduct(BaseModel):
    intent: str = "remove_product"
    name: str


class AddTask(BaseModel):
    """JSON example:
    {
        "intent": "add_task",
        "title": "Stofzuigen",
        "due_date": "2025-02-15T00:00:00+01:00"
    }
    due_date is None when the line carried no recognisable date.
    """
    intent: str = "add_task"
    title: str
    due_date: datetime | None = None


class ListTasks(BaseModel):
    intent: str = "list_tasks"


class CompleteTask(BaseModel):
    intent: str = "complete_task"
    title: str


class Help(BaseModel):
    intent: str = "help"


class Usage(BaseModel):
    """A known command with missing or malformed arguments."""
    intent: str = "usage"
    command: str  # the intent whose usage line should be shown


Command = (
    ListNeeded | ListAll | ListUrgent | MarkBought | QuickAdd | AddProduct
    | RemoveProduct | AddTask | ListTasks | CompleteTask | Help | Usage
)


# ---------------------------------------------------------------------------
# Command table
# ---------------------------------------------------------------------------

_ALIASES: dict[str, str] = {
    "/lijst": "list_needed",
    "/list": "list_needed",
    "/voorraad": "list_all",
    "/status": "list_all",
    "/bijna": "list_urgent",
    "/urgent": "list_urgent",
    "/gekocht": "mark_bought",
    "/bought": "mark_bought",
    "/nodig": "quick_add",
    "/need": "quick_add",
    "/voeg": "add_product",
    "/add": "add_product",
    "/verwijder": "remove_product",
    "/remove": "remove_product",
    "/taak": "add_task",
    "/task": "add_task",
    "/taken": "list_tasks",
    "/tasks": "list_tasks",
    "/klaar": "complete_task",
    "/done": "complete_task",
    "/help": "help",
    "/start": "help",
}

_NO_ARGS = {
    "list_needed": ListNeeded,
    "list_all": ListAll,
    "list_urgent": ListUrgent,
    "list_tasks": ListTasks,
    "help": Help,
}

_NAME_ARG = {
    "mark_bought": MarkBought,
    "quick_add": QuickAdd,
    "remove_product": RemoveProduct,
}

_INT_RE = re.compile(r"^\d+$")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_DMY_DATE_RE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")
_DM_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})$")


def command_token(text: str) -> str:
    """First whitespace-delimited token with any '@botname' suffix removed."""
    parts = text.strip().split(maxsplit=1)
    if not parts:
        return ""
    return parts[0].split("@", 1)[0]


def parse_command(text: str, now: datetime) -> Command | None:
    """Parse one chat line. None means "not a command, ignore it"."""
    if not text or not text.strip():
        return None

    intent = _ALIASES.get(command_token(text))
    if intent is None:
        return None

    parts = text.strip().split(maxsplit=1)
    args = parts[1].strip() if len(parts) > 1 else ""

    if intent in _NO_ARGS:
        return _NO_ARGS[intent]()

    if intent in _NAME_ARG:
        if not args:
            return Usage(command=intent)
        return _NAME_ARG[intent](name=args)

    if intent == "add_product":
        return parse_product_args(args) or Usage(command=intent)

    if intent == "add_task":
        return parse_task_args(args, now) or Usage(command=intent)

    if intent == "complete_task":
        if not args:
            return Usage(command=intent)
        return CompleteTask(title=args)

    logger.warning("No parser for intent %s", intent)
    return None


def _is_int(token: str) -> bool:
    return bool(_INT_RE.match(token))


def parse_product_args(args: str) -> AddProduct | None:
    """Parse '<name...> <days> [remind_days]'.

    The trailing one or two integer tokens are the cycle and lead time; all
    leading tokens form the name. Returns None when the shape doesn't fit.
    """
    tokens = args.split()
    if len(tokens) < 2:
        return None

    if len(tokens) >= 3 and _is_int(tokens[-2]) and _is_int(tokens[-1]):
        return AddProduct(
            name=" ".join(tokens[:-2]),
            days_until_empty=int(tokens[-2]),
            remind_days_before=int(tokens[-1]),
        )
    if _is_int(tokens[-1]):
        return AddProduct(
            name=" ".join(tokens[:-1]),
            days_until_empty=int(tokens[-1]),
        )
    return None


def parse_due_date(token: str, now: datetime) -> datetime | None:
    """Parse YYYY-MM-DD, DD-MM-YYYY or DD/MM into midnight in now's timezone.

    DD/MM takes the current year, or next year if that day already passed.
    Anything else, including impossible dates, returns None.
    """
    day: date | None = None
    try:
        if m := _ISO_DATE_RE.match(token):
            day = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        elif m := _DMY_DATE_RE.match(token):
            day = date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        elif m := _DM_DATE_RE.match(token):
            d, mo = int(m.group(1)), int(m.group(2))
            day = date(now.year, mo, d)
            if day < now.date():
                day = date(now.year + 1, mo, d)
    except ValueError:
        return None

    if day is None:
        return None
    return datetime.combine(day, time.min, tzinfo=now.tzinfo)


def parse_task_args(args: str, now: datetime) -> AddTask | None:
    """Parse '<title...> [date]'. A bare date without a title returns None."""
    tokens = args.split()
    if not tokens:
        return None

    due = parse_due_date(tokens[-1], now)
    if due is not None:
        if len(tokens) == 1:
            return None
        return AddTask(title=" ".join(tokens[:-1]), due_date=due)
    return AddTask(title=" ".join(tokens))
