"""
Embed builders for the CS Match Summary Bot.

This module contains functions to build Discord embeds for
match summaries and guild overviews.
"""

import json
from datetime import datetime
from typing import Any, Dict, List

import discord

from models.entities import Game, User
from services.notifier import MatchSummary

# Discord rejects embed field values longer than this
FIELD_VALUE_LIMIT = 1024


def _truncate(text: str, limit: int = FIELD_VALUE_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def format_stats(stats: Any) -> str:
    """
    Render the parse result for display without interpreting it.

    Args:
        stats: Opaque JSON value reported by the demo service

    Returns:
        A code block holding the compact JSON
    """
    if isinstance(stats, str):
        rendered = stats
    else:
        rendered = json.dumps(stats, ensure_ascii=False, default=str)
    return _truncate(f"```{rendered}```")


def build_match_summary_embed(summary: MatchSummary) -> discord.Embed:
    """
    Create the embed announcing a parsed match in one guild.

    Args:
        summary: Guild-scoped match summary

    Returns:
        discord.Embed ready to send
    """
    embed = discord.Embed(
        title="🎯 CS Match Summary",
        color=discord.Color.green(),
        timestamp=datetime.now(),
    )

    embed.add_field(name="Share Code", value=f"`{summary.share_code}`", inline=True)
    embed.add_field(
        name="Demo File",
        value=f"`{summary.demo_name}`" if summary.demo_name else "—",
        inline=True,
    )
    embed.add_field(name="Players", value=f"{summary.player_count} players", inline=True)

    if summary.registered_players:
        lines = [
            f"{player.display} (`{player.steam_id}`)" if player.display else f"`{player.steam_id}`"
            for player in summary.registered_players
        ]
        embed.add_field(
            name="👥 Registered Players",
            value=_truncate("\n".join(lines)),
            inline=False,
        )

    if summary.unregistered_players:
        embed.add_field(
            name="❔ Other Players",
            value=_truncate(", ".join(f"`{s}`" for s in summary.unregistered_players)),
            inline=False,
        )

    if summary.has_stats:
        embed.add_field(name="📊 Stats", value=format_stats(summary.stats), inline=False)

    embed.set_footer(text="Match analysis completed")
    return embed


def build_guild_stats_embed(guild_name: str, stats: Dict[str, int]) -> discord.Embed:
    embed = discord.Embed(
        title=f"📈 Stats for {guild_name}",
        color=discord.Color.blue(),
        timestamp=datetime.now(),
    )
    embed.add_field(name="Registered Users", value=str(stats["users"]), inline=True)
    embed.add_field(name="Tracked Games", value=str(stats["games"]), inline=True)
    return embed


def build_user_list_embed(users: List[User], total: int) -> discord.Embed:
    """
    List the accounts registered in a guild.

    Args:
        users: Users to show (already limited)
        total: Number of member references in the guild
    """
    embed = discord.Embed(
        title="👥 Registered Users",
        color=discord.Color.blue(),
    )
    if not users:
        embed.description = "No users registered in this server yet. Use `/register`."
        return embed

    lines = []
    for user in users:
        owner = f" • <@{user.discord_id}>" if user.discord_id else ""
        lines.append(f"`{user.steam_id}`{owner} — {len(user.game_ids)} game(s)")
    embed.description = _truncate("\n".join(lines), 4096)

    if total > len(users):
        embed.set_footer(text=f"Showing {len(users)} of {total}")
    return embed


def build_game_list_embed(games: List[Game]) -> discord.Embed:
    """List the most recent games recorded for a guild."""
    embed = discord.Embed(
        title="🎮 Recent Games",
        color=discord.Color.blue(),
    )
    if not games:
        embed.description = "No games recorded for this server yet."
        return embed

    status_emoji = {"requested": "⏳", "ready": "📦", "parsed": "✅"}
    lines = [
        f"{status_emoji.get(game.status, '❓')} `{game.share_code}` — "
        f"{game.status}, {len(game.steam_ids)} player(s)"
        for game in games
    ]
    embed.description = _truncate("\n".join(lines), 4096)
    return embed
