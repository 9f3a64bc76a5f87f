"""
Accounts Cog for the CS Match Summary Bot.

This module contains the slash commands used to link Steam accounts,
configure the summary channel and inspect what the bot tracks.
"""

from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from config.settings import MAX_LISTED_GAMES, MAX_LISTED_USERS
from errors import MatchBotError, NotFoundError, ValidationError
from event_logger import log_event
from models.entities import STATUS_READY, STATUS_REQUESTED
from services.embeds import (
    build_game_list_embed,
    build_guild_stats_embed,
    build_user_list_embed,
)
from services.registration import (
    add_match_share,
    ensure_guild_exists,
    get_guild_stats,
    list_guild_users,
    register_user,
    remove_user,
    set_guild_channel,
)


class AccountsCog(commands.Cog):
    """
    Cog containing account and guild commands.

    Commands:
    - /register: Link a Steam account to this server
    - /remove: Unlink a Steam account everywhere
    - /users: List the accounts registered here
    - /set_channel: Choose where match summaries go (Manage Server)
    - /stats: Show user and game counts for this server
    - /addmatch: Record a match by share code (Manage Server)
    - /games: Show the most recent games of this server
    """

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def store(self):
        return self.bot.store

    async def _reply_error(self, interaction: discord.Interaction, error: MatchBotError) -> None:
        if isinstance(error, NotFoundError):
            message = f"ℹ️ {error}"
        elif isinstance(error, ValidationError):
            message = f"⚠️ {error}"
        else:
            message = "❌ Something went wrong, please try again later."
        print(f"❌ Command /{interaction.command.name if interaction.command else '?'} failed: {error}")

        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)

    @app_commands.command(
        name="register",
        description="Register a Steam account with its auth code and last share code",
    )
    @app_commands.describe(
        steam_id="Your Steam ID",
        auth_code="Your Steam authentication code",
        last_share_code="Your last known CS match share code",
    )
    @app_commands.guild_only()
    async def register_command(
        self,
        interaction: discord.Interaction,
        steam_id: str,
        auth_code: str,
        last_share_code: str,
    ):
        """
        Link a Steam account to this server.

        Registering an account that already exists replaces its auth code
        and last share code, and adds it to this server.
        """
        try:
            _, created = register_user(
                self.store,
                guild_id=str(interaction.guild_id),
                steam_id=steam_id,
                auth_code=auth_code,
                last_share_code=last_share_code,
                discord_id=str(interaction.user.id),
            )
        except MatchBotError as e:
            await self._reply_error(interaction, e)
            return

        action = "registered" if created else "updated"
        print(f"✅ Steam account {steam_id} {action} by {interaction.user}")
        await interaction.response.send_message(
            f"✅ Steam account `{steam_id.strip()}` {action}! New matches will be announced here.",
            ephemeral=True,
        )

    @app_commands.command(
        name="remove",
        description="Remove a Steam account from the bot",
    )
    @app_commands.describe(steam_id="Steam ID of the account to remove")
    @app_commands.guild_only()
    async def remove_command(self, interaction: discord.Interaction, steam_id: str):
        try:
            remove_user(self.store, steam_id.strip())
        except MatchBotError as e:
            await self._reply_error(interaction, e)
            return

        await interaction.response.send_message(
            f"🗑️ Steam account `{steam_id.strip()}` removed.",
            ephemeral=True,
        )

    @app_commands.command(
        name="users",
        description="Show the Steam accounts registered in this server",
    )
    @app_commands.guild_only()
    async def users_command(self, interaction: discord.Interaction):
        guild_id = str(interaction.guild_id)
        try:
            ensure_guild_exists(self.store, guild_id)
            users, total = list_guild_users(self.store, guild_id, limit=MAX_LISTED_USERS)
        except MatchBotError as e:
            await self._reply_error(interaction, e)
            return

        await interaction.response.send_message(
            embed=build_user_list_embed(users, total),
            ephemeral=True,
        )

    @app_commands.command(
        name="set_channel",
        description="Set the channel for match summaries",
    )
    @app_commands.describe(channel="Channel to send match summaries to")
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.guild_only()
    async def set_channel_command(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel,
    ):
        """
        Point this server's match summaries at a channel.

        Usage: /set_channel channel:#matches
        """
        permissions = channel.permissions_for(interaction.guild.me)
        if not (permissions.send_messages and permissions.embed_links):
            await interaction.response.send_message(
                f"⚠️ I can't send embeds in {channel.mention}. Check my permissions there.",
                ephemeral=True,
            )
            return

        try:
            set_guild_channel(self.store, str(interaction.guild_id), str(channel.id))
        except MatchBotError as e:
            await self._reply_error(interaction, e)
            return

        print(f"⚙️ Summary channel for {interaction.guild.name} set to #{channel.name}")
        await interaction.response.send_message(
            f"✅ Match summaries will be sent to {channel.mention}.",
            ephemeral=True,
        )

    @app_commands.command(
        name="stats",
        description="Show tracked users and games for this server",
    )
    @app_commands.guild_only()
    async def stats_command(self, interaction: discord.Interaction):
        guild_id = str(interaction.guild_id)
        try:
            guild = ensure_guild_exists(self.store, guild_id)
            stats = get_guild_stats(self.store, guild_id)
        except MatchBotError as e:
            await self._reply_error(interaction, e)
            return

        embed = build_guild_stats_embed(interaction.guild.name, stats)
        if guild.has_placeholder_channel:
            embed.set_footer(text="⚠️ No summary channel configured. Use /set_channel.")
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(
        name="addmatch",
        description="Record a match by share code",
    )
    @app_commands.describe(
        share_code="Match share code (CSGO-...)",
        demo_name="Demo file name, if the demo is already available",
        steam_ids="Participants' Steam IDs, separated by spaces or commas",
    )
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.guild_only()
    async def addmatch_command(
        self,
        interaction: discord.Interaction,
        share_code: str,
        demo_name: Optional[str] = None,
        steam_ids: Optional[str] = None,
    ):
        """
        Record a match by hand and push it through the demo pipeline.

        Without a demo name the demo is requested like a polled match,
        with one it goes straight to parsing.
        """
        await interaction.response.defer(ephemeral=True)

        players = (steam_ids or "").replace(",", " ").split()
        try:
            game = add_match_share(
                self.store,
                guild_id=str(interaction.guild_id),
                share_code=share_code,
                demo_name=(demo_name or "").strip(),
                steam_ids=players,
            )
        except MatchBotError as e:
            await self._reply_error(interaction, e)
            return

        pipeline = self.bot.pipeline
        if game.status == STATUS_REQUESTED:
            issued = await pipeline.request_download(game.share_code)
            next_step = "demo download requested" if issued else "demo download pending"
        elif game.status == STATUS_READY:
            issued = await pipeline.request_parsing(game.share_code)
            next_step = "demo parsing requested" if issued else "demo parsing pending"
        else:
            next_step = "already parsed"

        log_event(
            "match_added_by_command",
            guild_id=interaction.guild_id,
            user_id=interaction.user.id,
            share_code=game.share_code,
            next_step=next_step,
        )
        await interaction.followup.send(
            f"✅ Match `{game.share_code}` recorded ({next_step}).",
            ephemeral=True,
        )

    @app_commands.command(
        name="games",
        description="Show the most recent games of this server",
    )
    @app_commands.guild_only()
    async def games_command(self, interaction: discord.Interaction):
        try:
            games = self.store.get_games_for_guild(str(interaction.guild_id))
        except MatchBotError as e:
            await self._reply_error(interaction, e)
            return

        await interaction.response.send_message(
            embed=build_game_list_embed(games[:MAX_LISTED_GAMES]),
            ephemeral=True,
        )


async def setup(bot: commands.Bot):
    """
    Setup function for loading the cog.

    Called by bot.load_extension().
    """
    await bot.add_cog(AccountsCog(bot))
