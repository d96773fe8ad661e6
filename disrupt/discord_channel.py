"""discord.py transport: a Discord text channel as the shared debate log."""

import asyncio
import logging
from collections.abc import Callable

import discord
from discord import app_commands

from disrupt.channel import Channel
from disrupt.debate import TurnDriver
from disrupt.models import ChannelMessage
from disrupt.protocol import fit_message

logger = logging.getLogger(__name__)

DISCORD_CHAR_LIMIT = 2000


def to_channel_message(message: discord.Message, own_user_id: int | None) -> ChannelMessage:
    return ChannelMessage(
        author=message.author.display_name,
        text=message.content,
        timestamp=message.created_at,
        is_bot=message.author.bot,
        from_self=own_user_id is not None and message.author.id == own_user_id,
        message_id=message.id,
    )


class DiscordChannel(Channel):
    """Channel backed by a discord.py messageable (text channel or thread)."""

    def __init__(self, channel: discord.abc.Messageable, own_user_id: int | None) -> None:
        self._channel = channel
        self._own_user_id = own_user_id

    async def append(self, text: str) -> int:
        message = await self._channel.send(fit_message(text, DISCORD_CHAR_LIMIT))
        return message.id

    async def edit(self, message_id: int, text: str) -> None:
        partial = self._channel.get_partial_message(message_id)
        await partial.edit(content=fit_message(text, DISCORD_CHAR_LIMIT))

    async def fetch(self, limit: int, before: int | None = None) -> list[ChannelMessage]:
        kwargs: dict = {"limit": limit}
        if before is not None:
            kwargs["before"] = discord.Object(id=before)
        # history() yields newest first
        messages = [m async for m in self._channel.history(**kwargs)]
        messages.reverse()
        return [to_channel_message(m, self._own_user_id) for m in messages]


class DebateBot(discord.Client):
    """One bot process: forwards channel messages to a fresh TurnDriver per event."""

    def __init__(
        self,
        identifier: str,
        driver_factory: Callable[[Channel], TurnDriver],
        *,
        guild_id: int | None = None,
        debate_command: bool = False,
    ) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents)
        self.identifier = identifier
        self.tree = app_commands.CommandTree(self)
        self._driver_factory = driver_factory
        self._guild_id = guild_id
        self._debate_command = debate_command
        # discord.py dispatches each event in its own task; handle them one at a time
        self._event_lock = asyncio.Lock()

    def _own_id(self) -> int | None:
        return self.user.id if self.user else None

    async def setup_hook(self) -> None:
        if not self._debate_command:
            return

        @self.tree.command(name="debate", description="Start an AI debate on a topic")
        @app_commands.describe(
            topic="The topic to debate",
            rounds="Number of rounds",
            article="Optional article text the debate is about",
        )
        async def debate(
            interaction: discord.Interaction,
            topic: str,
            rounds: int | None = None,
            article: str | None = None,
        ) -> None:
            await self.start_debate(interaction, topic, rounds, article)

        try:
            if self._guild_id:
                guild = discord.Object(id=self._guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                logger.info("Commands registered to guild %s", self._guild_id)
            else:
                await self.tree.sync()
                logger.info("Commands registered globally")
        except discord.HTTPException as exc:
            logger.error("Failed to register commands: %s", exc)

    async def on_ready(self) -> None:
        logger.info("%s (%s) is online", self.user, self.identifier)

    async def start_debate(
        self,
        interaction: discord.Interaction,
        topic: str,
        rounds: int | None,
        article: str | None,
    ) -> None:
        if not topic.strip():
            await interaction.response.send_message("❌ Please provide a topic!", ephemeral=True)
            return

        await interaction.response.defer(thinking=True)
        driver = self._driver_factory(DiscordChannel(interaction.channel, self._own_id()))
        try:
            async with self._event_lock:
                await driver.start_debate(topic, rounds, article)
            await interaction.edit_original_response(content=f"🎙️ Debate started: **{topic}**")
        except Exception as exc:
            logger.exception("Error starting debate")
            await interaction.edit_original_response(content=f"❌ Error starting debate: {exc}")

    async def on_message(self, message: discord.Message) -> None:
        own_id = self._own_id()
        if own_id is not None and message.author.id == own_id:
            return

        driver = self._driver_factory(DiscordChannel(message.channel, own_id))
        try:
            async with self._event_lock:
                await driver.handle_message(to_channel_message(message, own_id))
        except Exception:
            logger.exception("Debate turn error in channel %s", message.channel)
