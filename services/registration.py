"""
Guild and account management for the CS Match Summary Bot.

Thin business rules behind the slash commands: guilds are created on first
contact, users are created or have their credentials rotated, and manual
matches are recorded through the same lifecycle as polled ones.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from config.settings import SHARE_CODE_PREFIX
from errors import NotFoundError, ValidationError
from event_logger import log_event
from models.entities import STATUS_READY, STATUS_REQUESTED, Game, Guild, User
from models.store import EntityStore
from services.match_lifecycle import advance_match


def validate_share_code(share_code: str) -> str:
    """
    Normalize and validate a CS share code.

    Raises:
        ValidationError: empty code or missing "CSGO-" prefix
    """
    share_code = (share_code or "").strip()
    if not share_code:
        raise ValidationError("Share code is required")
    if not share_code.startswith(SHARE_CODE_PREFIX):
        raise ValidationError(
            f"Invalid share code format. Must start with '{SHARE_CODE_PREFIX}'"
        )
    return share_code


def ensure_guild_exists(
    store: EntityStore,
    guild_id: str,
    channel_id: Optional[str] = None,
) -> Guild:
    """
    Get a guild, creating it on first contact.

    When no channel is known, the guild ID itself is stored as placeholder
    destination until /set_channel is used. Guild.has_placeholder_channel
    reports that state.
    """
    created = store.create_guild(guild_id, channel_id or guild_id)
    guild = store.get_guild(guild_id)
    if created:
        if guild.has_placeholder_channel:
            print(f"⚠️ Guild {guild_id} registered with a placeholder channel")
        else:
            print(f"✅ Guild {guild_id} registered (channel {guild.channel_id})")
        log_event(
            "guild_created",
            guild_id=guild_id,
            channel_id=guild.channel_id,
            placeholder_channel=guild.has_placeholder_channel,
        )
    return guild


def set_guild_channel(store: EntityStore, guild_id: str, channel_id: str) -> Guild:
    """Point a guild's match summaries at a channel."""
    ensure_guild_exists(store, guild_id, channel_id)
    store.update_guild_channel(guild_id, channel_id)
    log_event("guild_channel_updated", guild_id=guild_id, channel_id=channel_id)
    return store.get_guild(guild_id)


def register_user(
    store: EntityStore,
    guild_id: str,
    steam_id: str,
    auth_code: str,
    last_share_code: str,
    discord_id: Optional[str] = None,
) -> Tuple[User, bool]:
    """
    Register a Steam account in a guild.

    Existing accounts get their auth code and last share code replaced, and
    are added to this guild if they are not a member yet.

    Returns:
        Tuple of (user, created flag)

    Raises:
        ValidationError: missing field or malformed share code
    """
    steam_id = (steam_id or "").strip()
    auth_code = (auth_code or "").strip()
    if not steam_id or not auth_code or not (last_share_code or "").strip():
        raise ValidationError("All fields are required")
    last_share_code = validate_share_code(last_share_code)

    ensure_guild_exists(store, guild_id)

    try:
        store.get_user(steam_id)
    except NotFoundError:
        user = store.create_user(steam_id, auth_code, last_share_code, discord_id)
        created = True
    else:
        user = store.update_user_credentials(
            steam_id, auth_code, last_share_code, discord_id
        )
        created = False

    store.add_user_to_guild(guild_id, user.uuid)
    log_event(
        "user_registered",
        guild_id=guild_id,
        steam_id=steam_id,
        created=created,
        discord_id=discord_id,
    )
    return user, created


def remove_user(store: EntityStore, steam_id: str) -> None:
    """
    Delete an account and drop it from every guild.

    Raises:
        NotFoundError: no such account
    """
    store.delete_user(steam_id)
    print(f"🗑️ User {steam_id} removed")
    log_event("user_removed", steam_id=steam_id)


def get_guild_stats(store: EntityStore, guild_id: str) -> Dict[str, int]:
    guild = store.get_guild(guild_id)
    return {
        "users": len(guild.user_ids),
        "games": len(guild.game_ids),
    }


def list_guild_users(store: EntityStore, guild_id: str, limit: int = 25) -> Tuple[List[User], int]:
    """
    Resolve a guild's members, skipping references to deleted users.

    Returns:
        Tuple of (first `limit` users, total member references)
    """
    guild = store.get_guild(guild_id)
    users = []
    for user_uuid in guild.user_ids:
        if len(users) >= limit:
            break
        try:
            users.append(store.get_user_by_uuid(user_uuid))
        except NotFoundError:
            continue
    return users, len(guild.user_ids)


def add_match_share(
    store: EntityStore,
    guild_id: str,
    share_code: str,
    demo_name: str = "",
    steam_ids: Iterable[str] = (),
) -> Game:
    """
    Record a match by hand and attach it to the guild and its players.

    With a demo name the game is considered ready (its demo exists),
    without one it waits for a download like a polled match.
    """
    share_code = validate_share_code(share_code)
    players = [steam_id.strip() for steam_id in steam_ids if steam_id and steam_id.strip()]

    ensure_guild_exists(store, guild_id)
    status = STATUS_READY if demo_name else STATUS_REQUESTED
    game, _ = advance_match(store, share_code, status, demo_name=demo_name, steam_ids=players)

    store.add_game_to_guild(guild_id, game.uuid)
    for steam_id in players:
        try:
            store.add_game_to_user(steam_id, game.uuid)
        except NotFoundError:
            # Unregistered players are kept on the game only
            continue

    log_event(
        "match_added",
        guild_id=guild_id,
        share_code=share_code,
        status=game.status,
        player_count=len(game.steam_ids),
    )
    return game
