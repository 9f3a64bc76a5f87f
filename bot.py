"""
Bot class for the CS Match Summary Bot.

This module contains the CSMatchBot class which extends commands.Bot.

Multi-guild support: The bot can work with multiple Discord servers simultaneously.
Each guild has its own member list and summary channel.
"""

from typing import Optional

import discord
from discord.ext import commands

from errors import MatchBotError
from event_logger import log_event
from models.store import EntityStore
from services.pipeline import MatchPipeline
from services.poller import SteamPoller
from services.registration import ensure_guild_exists

EXTENSIONS = ("cogs.accounts", "cogs.tracking")


def pick_default_channel(guild: discord.Guild) -> Optional[discord.TextChannel]:
    """
    First text channel the bot can post in, falling back to the system channel.

    Returns:
        The channel, or None if neither is usable
    """
    me = guild.me
    for channel in guild.text_channels:
        if channel.permissions_for(me).send_messages:
            return channel
    return guild.system_channel


class CSMatchBot(commands.Bot):
    """
    Custom Bot class for the match summary system.

    Inherits from commands.Bot to override setup_hook(), which is the
    best place to load the cogs before connecting.

    The entity store, pipeline and poller are built in main.py and shared
    with the cogs through the bot instance.
    """

    def __init__(self, store: EntityStore, pipeline: MatchPipeline, poller: SteamPoller):
        intents = discord.Intents.default()

        super().__init__(
            command_prefix="!",
            intents=intents,
        )
        self.store = store
        self.pipeline = pipeline
        self.poller = poller

    async def setup_hook(self):
        """
        Called before the bot connects to Discord.

        Here we:
        1. Load the account and tracking cogs
        2. Sync the command tree
        """
        for extension in EXTENSIONS:
            try:
                await self.load_extension(extension)
                print(f"✓ {extension} loaded")
            except Exception as e:
                print(f"✗ Error loading {extension}: {e}")
                log_event("extension_load_failed", extension=extension, error=e)

        # Sync slash commands globally
        await self.tree.sync()
        print("✅ Commands synced globally")

    def _register_guild(self, guild: discord.Guild) -> Optional[discord.TextChannel]:
        """
        Make sure a guild is stored, picking a default summary channel.

        Returns:
            The channel used, or None if the placeholder destination was stored
        """
        channel = pick_default_channel(guild)
        channel_id = str(channel.id) if channel else None
        ensure_guild_exists(self.store, str(guild.id), channel_id)
        return channel

    async def on_ready(self):
        """
        Called when the bot has connected to Discord.

        Guilds joined while the bot was offline are registered here.
        """
        print(f"🤖 Connected as {self.user} (ID: {self.user.id})")
        print(f"📡 Connected to {len(self.guilds)} server(s):")

        for guild in self.guilds:
            print(f"   • {guild.name} (ID: {guild.id})")
            try:
                self._register_guild(guild)
            except MatchBotError as e:
                print(f"⚠️ Could not register guild {guild.name}: {e}")

        print("─" * 40)

        await self.change_presence(
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name="CS matches 🎯",
            )
        )

    async def on_guild_join(self, guild: discord.Guild):
        print(f"➕ Joined guild {guild.name} (ID: {guild.id})")
        log_event("guild_joined", guild_id=guild.id, guild_name=guild.name)

        try:
            channel = self._register_guild(guild)
        except MatchBotError as e:
            print(f"❌ Could not register guild {guild.name}: {e}")
            return

        if channel is None:
            print(f"⚠️ No channel to greet {guild.name}; waiting for /set_channel")
            return

        try:
            await channel.send(
                "👋 Hi! I post CS match summaries for this server.\n"
                "Use `/register` to link your Steam account and `/set_channel` "
                "to choose where summaries go."
            )
        except discord.DiscordException as e:
            print(f"⚠️ Could not send welcome message in {guild.name}: {e}")

    async def on_guild_remove(self, guild: discord.Guild):
        # Guild data is kept so a re-invite picks up where it left off
        print(f"➖ Removed from guild {guild.name} (ID: {guild.id}), data preserved")
        log_event("guild_removed", guild_id=guild.id, guild_name=guild.name)

    async def close(self):
        cog = self.get_cog("TrackingCog")
        if cog is not None:
            cog.poll_matches.stop()
        await super().close()
