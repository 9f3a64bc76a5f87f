"""
Discord implementation of the notifier's chat adapter.
"""

import asyncio
from typing import Optional

import discord

from errors import ChatUnavailableError, NotFoundError
from models.store import EntityStore
from services.embeds import build_match_summary_embed
from services.notifier import MatchSummary


class DiscordChatAdapter:
    """
    Sends match summaries through the bot's Discord connection.

    The demoParsed webhook runs on the web server's loop, while discord.py
    objects belong to the bot's loop, so sends are scheduled there.
    """

    def __init__(
        self,
        store: EntityStore,
        timeout_seconds: float = 30,
        client: Optional[discord.Client] = None,
    ):
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.client = client

    def attach(self, client: discord.Client) -> None:
        """Bind the adapter to the bot once it exists (it needs the pipeline first)."""
        self.client = client

    async def _send_on_bot_loop(self, channel_id: int, embed: discord.Embed) -> None:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            channel = await self.client.fetch_channel(channel_id)
        await channel.send(embed=embed)

    async def send_notification(self, channel_id: str, summary: MatchSummary) -> None:
        """
        Deliver a summary embed to a channel.

        Raises:
            ChatUnavailableError: the bot is not connected yet
            ValueError: channel_id is not a Discord snowflake
            discord.DiscordException: channel missing or not writable
            asyncio.TimeoutError: the bot loop did not finish in time
        """
        if self.client is None or not self.client.is_ready():
            raise ChatUnavailableError("Discord client is not ready")

        embed = build_match_summary_embed(summary)
        coro = self._send_on_bot_loop(int(channel_id), embed)

        bot_loop = self.client.loop
        current_loop = asyncio.get_running_loop()
        if bot_loop is current_loop:
            await asyncio.wait_for(coro, timeout=self.timeout_seconds)
            return

        future = asyncio.run_coroutine_threadsafe(coro, bot_loop)
        await asyncio.wait_for(asyncio.wrap_future(future), timeout=self.timeout_seconds)

    def resolve_account_display(self, steam_id: str) -> Optional[str]:
        """Mention of the Discord member who registered this account."""
        try:
            user = self.store.get_user(steam_id)
        except NotFoundError:
            return None
        if not user.discord_id:
            return None
        return f"<@{user.discord_id}>"
