"""
Restock Bot — Entry Point.

    python main.py                     start the Telegram bot (long polling)
    python main.py serve               HTTP surface (cron trigger + webhook)
    python main.py scan                run one due scan and print the summary
    python main.py household add NAME [--chat CHAT_ID]
    python main.py household link ID CHAT_ID
    python main.py household unlink ID
    python main.py household list
"""

import argparse
import asyncio
import json
import logging
import sqlite3
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger("main")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Household restock tracker")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("bot", help="Run the Telegram bot (default)")
    sub.add_parser("serve", help="Run the HTTP surface")
    sub.add_parser("scan", help="Run one due scan")

    household = sub.add_parser("household", help="Manage households")
    hh_sub = household.add_subparsers(dest="action", required=True)
    add = hh_sub.add_parser("add", help="Create a household")
    add.add_argument("name")
    add.add_argument("--chat", dest="chat_id", default=None, help="Telegram chat id")
    link = hh_sub.add_parser("link", help="Link a household to a Telegram chat")
    link.add_argument("household_id", type=int)
    link.add_argument("chat_id")
    unlink = hh_sub.add_parser("unlink", help="Remove a household's Telegram chat")
    unlink.add_argument("household_id", type=int)
    hh_sub.add_parser("list", help="List households")

    return parser


def _run_household(args: argparse.Namespace) -> int:
    from src.data.db import HouseholdDB

    db = HouseholdDB()
    if args.action == "add":
        try:
            hh = db.add_household(args.name, telegram_chat_id=args.chat_id)
        except sqlite3.IntegrityError:
            print(f"Chat {args.chat_id} is already linked to a household", file=sys.stderr)
            return 1
        print(f"Household #{hh.id} '{hh.name}' created")
    elif args.action == "link":
        try:
            linked = db.set_chat_id(args.household_id, args.chat_id)
        except sqlite3.IntegrityError:
            print(f"Chat {args.chat_id} is already linked to a household", file=sys.stderr)
            return 1
        if not linked:
            print(f"Household #{args.household_id} not found", file=sys.stderr)
            return 1
        print(f"Household #{args.household_id} linked to chat {args.chat_id}")
    elif args.action == "unlink":
        if not db.set_chat_id(args.household_id, None):
            print(f"Household #{args.household_id} not found", file=sys.stderr)
            return 1
        print(f"Household #{args.household_id} unlinked")
    elif args.action == "list":
        for hh in db.list_households():
            print(f"{hh.id}\t{hh.name}\t{hh.telegram_chat_id or '-'}")
    return 0


async def _run_scan() -> dict:
    from telegram import Bot

    from src.adapters.telegram_notifier import TelegramNotifier
    from src.config import settings
    from src.core.services import build_services

    async with Bot(settings.TELEGRAM_BOT_TOKEN) as bot:
        services = build_services(TelegramNotifier(bot))
        summary = await services.scan()
    return summary.as_dict()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.command in (None, "bot"):
        from src.bot.telegram_bot import main as run_bot
        run_bot()
        return 0

    if args.command == "serve":
        import uvicorn

        from src.api.server import create_app
        from src.config import settings

        uvicorn.run(create_app(), host=settings.API_HOST, port=settings.API_PORT)
        return 0

    if args.command == "scan":
        print(json.dumps(asyncio.run(_run_scan())))
        return 0

    if args.command == "household":
        return _run_household(args)

    return 1


if __name__ == "__main__":
    sys.exit(main())
