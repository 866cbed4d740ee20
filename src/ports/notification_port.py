"""Notification port — abstract interface for sending messages to households.

Core modules depend on this protocol, never on a specific messaging provider.
"""

from __future__ import annotations

from typing import Protocol


class NotificationPort(Protocol):
    """Abstract notification interface used by core modules.

    Implementations report delivery failure by returning False and must not
    raise for it. Message text may contain <b> and <a href> markup.
    """

    async def send_message(self, chat_id: str, text: str) -> bool: ...
