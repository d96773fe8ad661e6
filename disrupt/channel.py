"""Channel abstraction: the ordered, append-only log every bot reads and writes."""

import itertools
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from disrupt.models import ChannelMessage


class Channel(ABC):
    """One bot's view of the shared channel."""

    @abstractmethod
    async def append(self, text: str) -> int:
        """Post ``text`` as this bot and return the new message id."""
        ...

    @abstractmethod
    async def edit(self, message_id: int, text: str) -> None:
        """Replace the text of a message this bot posted."""
        ...

    @abstractmethod
    async def fetch(self, limit: int, before: int | None = None) -> list[ChannelMessage]:
        """Return up to ``limit`` most recent messages, oldest first.

        Args:
            limit: Window size.
            before: Only messages older than this message id.
        """
        ...


class InMemoryLog:
    """Process-local append-only log shared by several InMemoryChannel views."""

    def __init__(self) -> None:
        self._messages: list[ChannelMessage] = []
        self._ids = itertools.count(1)
        self._subscribers: list[Callable[[ChannelMessage], None]] = []

    def subscribe(self, callback: Callable[[ChannelMessage], None]) -> None:
        self._subscribers.append(callback)

    def post(self, author: str, text: str, *, is_bot: bool = True) -> ChannelMessage:
        msg = ChannelMessage(
            author=author,
            text=text,
            timestamp=datetime.now(timezone.utc),
            is_bot=is_bot,
            message_id=next(self._ids),
        )
        self._messages.append(msg)
        for callback in self._subscribers:
            callback(msg)
        return msg

    def edit(self, message_id: int, author: str, text: str) -> None:
        for i, msg in enumerate(self._messages):
            if msg.message_id == message_id:
                if msg.author != author:
                    raise PermissionError(f"{author} cannot edit a message posted by {msg.author}")
                self._messages[i] = replace(msg, text=text)
                return
        raise KeyError(f"No message with id {message_id}")

    def window(self, limit: int, before: int | None = None) -> list[ChannelMessage]:
        messages = self._messages
        if before is not None:
            messages = [m for m in messages if m.message_id is not None and m.message_id < before]
        return list(messages[-limit:]) if limit > 0 else []

    @property
    def messages(self) -> list[ChannelMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)


class InMemoryChannel(Channel):
    """Channel view that posts into an InMemoryLog under a fixed author."""

    def __init__(self, log: InMemoryLog, author: str, *, is_bot: bool = True) -> None:
        self._log = log
        self._author = author
        self._is_bot = is_bot

    async def append(self, text: str) -> int:
        msg = self._log.post(self._author, text, is_bot=self._is_bot)
        return msg.message_id

    async def edit(self, message_id: int, text: str) -> None:
        self._log.edit(message_id, self._author, text)

    async def fetch(self, limit: int, before: int | None = None) -> list[ChannelMessage]:
        return [
            replace(m, from_self=(m.author == self._author))
            for m in self._log.window(limit, before)
        ]
