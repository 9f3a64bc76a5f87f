"""
Services module for the CS Match Summary Bot.

This module contains the match pipeline, polling, fan-out and the
account/guild business rules.
"""

from services.dedup import ReadWriteLock, ShareCodeGuard
from services.match_lifecycle import advance_match
from services.notifier import ChatAdapter, MatchNotifier, MatchSummary, RegisteredPlayer
from services.pipeline import MatchPipeline
from services.poller import SteamPoller, group_by_share_code
from services.registration import (
    add_match_share,
    ensure_guild_exists,
    get_guild_stats,
    list_guild_users,
    register_user,
    remove_user,
    set_guild_channel,
    validate_share_code,
)
from services.steam_api import SteamClient

__all__ = [
    # Dedup
    "ReadWriteLock",
    "ShareCodeGuard",
    # Lifecycle
    "advance_match",
    "MatchPipeline",
    # Fan-out
    "ChatAdapter",
    "MatchNotifier",
    "MatchSummary",
    "RegisteredPlayer",
    # Polling
    "SteamPoller",
    "group_by_share_code",
    "SteamClient",
    # Registration
    "add_match_share",
    "ensure_guild_exists",
    "get_guild_stats",
    "list_guild_users",
    "register_user",
    "remove_user",
    "set_guild_channel",
    "validate_share_code",
]
