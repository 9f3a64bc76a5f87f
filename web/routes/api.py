"""
Read-only query API over the entity store.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from models.store import EntityStore

router = APIRouter(prefix="/api/v1")


def _store(request: Request) -> EntityStore:
    return request.app.state.store


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@router.get("/match/{share_code}")
def get_match(share_code: str, request: Request) -> Dict[str, Any]:
    game = _store(request).get_game(share_code)
    return {
        "uuid": game.uuid,
        "share_code": game.share_code,
        "demo_name": game.demo_name,
        "status": game.status,
        "steam_ids": game.steam_ids,
        "created_at": _iso(game.created_at),
        "updated_at": _iso(game.updated_at),
    }


@router.get("/user/{steam_id}")
def get_user(steam_id: str, request: Request) -> Dict[str, Any]:
    """Public view of an account; the auth code never leaves the store."""
    user = _store(request).get_user(steam_id)
    return {
        "uuid": user.uuid,
        "steam_id": user.steam_id,
        "game_count": len(user.game_ids),
        "created_at": _iso(user.created_at),
        "updated_at": _iso(user.updated_at),
    }


@router.get("/guild/{guild_id}")
def get_guild(guild_id: str, request: Request) -> Dict[str, Any]:
    guild = _store(request).get_guild(guild_id)
    return {
        "uuid": guild.uuid,
        "guild_id": guild.guild_id,
        "channel_id": guild.channel_id,
        "user_count": len(guild.user_ids),
        "game_count": len(guild.game_ids),
        "created_at": _iso(guild.created_at),
        "updated_at": _iso(guild.updated_at),
    }
