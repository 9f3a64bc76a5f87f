"""
Entity records for the CS Match Summary Bot.

Guild, User and Game mirror the rows in the database. Association lists
hold the uuids of the referenced entities.
"""

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


# Demo lifecycle, in the only order a game may move through
STATUS_REQUESTED = "requested"
STATUS_READY = "ready"
STATUS_PARSED = "parsed"

GAME_STATUSES = (STATUS_REQUESTED, STATUS_READY, STATUS_PARSED)


def status_rank(status: str) -> int:
    """Position of a status in the lifecycle (unknown = -1)."""
    try:
        return GAME_STATUSES.index(status)
    except ValueError:
        return -1


def _load_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [str(item) for item in json.loads(raw)]


def _load_timestamp(raw) -> Optional[datetime]:
    if raw is None or isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(str(raw))


@dataclass
class Guild:
    """A Discord server the bot operates in."""
    uuid: str
    guild_id: str
    channel_id: str
    user_ids: List[str] = field(default_factory=list)
    game_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_placeholder_channel(self) -> bool:
        """
        True when no real channel was known at creation time and the guild
        id itself stands in as notification destination.
        """
        return self.channel_id == self.guild_id

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Guild":
        return cls(
            uuid=row["uuid"],
            guild_id=row["guild_id"],
            channel_id=row["channel_id"],
            user_ids=_load_list(row["user_ids"]),
            game_ids=_load_list(row["game_ids"]),
            created_at=_load_timestamp(row["created_at"]),
            updated_at=_load_timestamp(row["updated_at"]),
        )


@dataclass
class User:
    """A Steam account linked into the bot."""
    uuid: str
    steam_id: str
    auth_code: str
    last_share_code: str = ""
    discord_id: Optional[str] = None
    game_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "User":
        return cls(
            uuid=row["uuid"],
            steam_id=row["steam_id"],
            auth_code=row["auth_code"],
            last_share_code=row["last_share_code"] or "",
            discord_id=row["discord_id"],
            game_ids=_load_list(row["game_ids"]),
            created_at=_load_timestamp(row["created_at"]),
            updated_at=_load_timestamp(row["updated_at"]),
        )


@dataclass
class Game:
    """A CS match identified by its share code."""
    uuid: str
    share_code: str
    demo_name: str = ""
    status: str = STATUS_REQUESTED
    steam_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_parsed(self) -> bool:
        return self.status == STATUS_PARSED

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Game":
        return cls(
            uuid=row["uuid"],
            share_code=row["share_code"],
            demo_name=row["demo_name"] or "",
            status=row["status"],
            steam_ids=_load_list(row["steam_ids"]),
            created_at=_load_timestamp(row["created_at"]),
            updated_at=_load_timestamp(row["updated_at"]),
        )
