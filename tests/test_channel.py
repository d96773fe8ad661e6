"""Tests for disrupt/channel.py and disrupt/discord_channel.py."""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from disrupt.channel import InMemoryChannel, InMemoryLog
from disrupt.discord_channel import DISCORD_CHAR_LIMIT, DebateBot, DiscordChannel, to_channel_message
from disrupt.models import Turn
from disrupt.protocol import format_turn, parse_turn


# --- InMemoryLog / InMemoryChannel ---

async def test_append_assigns_increasing_ids(log):
    channel = InMemoryChannel(log, "A")
    first = await channel.append("one")
    second = await channel.append("two")
    assert second > first
    assert [m.text for m in log.messages] == ["one", "two"]


async def test_fetch_is_oldest_first_and_marks_own_messages(log):
    log.post("A", "from A")
    log.post("alice", "from alice", is_bot=False)
    log.post("B", "from B")

    window = await InMemoryChannel(log, "B").fetch(2)

    assert [m.text for m in window] == ["from alice", "from B"]
    assert [m.from_self for m in window] == [False, True]
    assert window[0].is_bot is False


async def test_fetch_before_message_id(log):
    ids = [log.post("A", str(i)).message_id for i in range(5)]
    window = await InMemoryChannel(log, "A").fetch(10, before=ids[3])
    assert [m.text for m in window] == ["0", "1", "2"]


async def test_fetch_zero_limit(log):
    log.post("A", "x")
    assert await InMemoryChannel(log, "A").fetch(0) == []


async def test_edit_own_message(log):
    channel = InMemoryChannel(log, "A")
    msg_id = await channel.append("draft")
    await channel.edit(msg_id, "final")
    assert log.messages[0].text == "final"


async def test_cannot_edit_someone_elses_message(log):
    msg_id = await InMemoryChannel(log, "A").append("mine")
    with pytest.raises(PermissionError):
        await InMemoryChannel(log, "B").edit(msg_id, "hijacked")
    with pytest.raises(KeyError):
        await InMemoryChannel(log, "A").edit(999, "nothing")


def test_subscribers_see_every_post(log):
    seen = []
    log.subscribe(seen.append)
    log.post("A", "x")
    log.post("B", "y")
    assert [m.author for m in seen] == ["A", "B"]
    assert len(log) == 2


# --- discord.py adapter ---

def _discord_message(msg_id: int, author_id: int, name: str, content: str, bot: bool = True):
    return SimpleNamespace(
        id=msg_id,
        content=content,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        author=SimpleNamespace(id=author_id, display_name=name, bot=bot),
        channel="debate-channel",
    )


class _FakeHistory:
    def __init__(self, messages):
        self._messages = messages
        self.kwargs = None

    def __call__(self, **kwargs):
        self.kwargs = kwargs
        return self._iterate()

    async def _iterate(self):
        for m in self._messages:
            yield m


def test_to_channel_message_flags_own_author():
    msg = _discord_message(10, 1, "Claude", "hi")
    converted = to_channel_message(msg, own_user_id=1)
    assert converted.author == "Claude"
    assert converted.from_self is True
    assert converted.message_id == 10
    assert to_channel_message(msg, own_user_id=None).from_self is False


async def test_discord_fetch_reverses_history():
    history = _FakeHistory([
        _discord_message(3, 2, "Gemini", "newest"),
        _discord_message(2, 9, "alice", "middle", bot=False),
        _discord_message(1, 1, "Claude", "oldest"),
    ])
    channel = DiscordChannel(SimpleNamespace(history=history), own_user_id=1)

    window = await channel.fetch(50, before=4)

    assert [m.text for m in window] == ["oldest", "middle", "newest"]
    assert window[0].from_self is True
    assert history.kwargs["limit"] == 50
    assert history.kwargs["before"].id == 4


async def test_discord_append_keeps_marker_under_limit():
    sent = MagicMock(id=77)
    raw = SimpleNamespace(send=AsyncMock(return_value=sent))
    channel = DiscordChannel(raw, own_user_id=1)
    text = format_turn(Turn("Claude", "x" * 3000, 1, 1, "ChatGPT"))

    msg_id = await channel.append(text)

    assert msg_id == 77
    posted = raw.send.call_args.args[0]
    assert len(posted) <= DISCORD_CHAR_LIMIT
    assert parse_turn(posted).next == "ChatGPT"


async def test_discord_edit_uses_partial_message():
    partial = SimpleNamespace(edit=AsyncMock())
    raw = SimpleNamespace(get_partial_message=MagicMock(return_value=partial))
    await DiscordChannel(raw, own_user_id=1).edit(5, "new text")
    raw.get_partial_message.assert_called_once_with(5)
    partial.edit.assert_awaited_once_with(content="new text")


async def test_bot_forwards_messages_to_fresh_driver():
    driver = SimpleNamespace(handle_message=AsyncMock())
    factory = MagicMock(return_value=driver)
    bot = DebateBot("Claude", factory)

    await bot.on_message(_discord_message(1, 5, "ChatGPT", "hello"))

    factory.assert_called_once()
    assert isinstance(factory.call_args.args[0], DiscordChannel)
    forwarded = driver.handle_message.call_args.args[0]
    assert forwarded.author == "ChatGPT"


async def test_bot_survives_driver_errors():
    driver = SimpleNamespace(handle_message=AsyncMock(side_effect=RuntimeError("boom")))
    bot = DebateBot("Claude", MagicMock(return_value=driver))
    await bot.on_message(_discord_message(1, 5, "ChatGPT", "hello"))
    driver.handle_message.assert_awaited_once()


async def test_start_command_rejects_blank_topic():
    factory = MagicMock()
    bot = DebateBot("Disruption", factory, debate_command=True)
    interaction = SimpleNamespace(response=SimpleNamespace(send_message=AsyncMock(), defer=AsyncMock()))

    await bot.start_debate(interaction, "   ", None, None)

    interaction.response.send_message.assert_awaited_once()
    factory.assert_not_called()


async def test_start_command_posts_through_driver():
    driver = SimpleNamespace(start_debate=AsyncMock())
    bot = DebateBot("Disruption", MagicMock(return_value=driver), debate_command=True)
    interaction = SimpleNamespace(
        channel=SimpleNamespace(),
        response=SimpleNamespace(send_message=AsyncMock(), defer=AsyncMock()),
        edit_original_response=AsyncMock(),
    )

    await bot.start_debate(interaction, "Cats or dogs", 3, None)

    driver.start_debate.assert_awaited_once_with("Cats or dogs", 3, None)
    assert "Cats or dogs" in interaction.edit_original_response.call_args.kwargs["content"]


async def test_bot_handles_one_event_at_a_time():
    active = 0
    peak = 0

    async def slow_handle(message):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1

    driver = SimpleNamespace(handle_message=AsyncMock(side_effect=slow_handle))
    bot = DebateBot("Claude", MagicMock(return_value=driver))

    await asyncio.gather(
        bot.on_message(_discord_message(1, 5, "ChatGPT", "first")),
        bot.on_message(_discord_message(2, 6, "Gemini", "second")),
    )

    assert driver.handle_message.await_count == 2
    assert peak == 1
