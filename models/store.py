"""
Entity store for the CS Match Summary Bot.

Create/get/update operations for guilds, users and games, each keyed by the
entity's natural identifier (guild_id, steam_id, share_code). Reference
lists are JSON arrays; adding a reference is an idempotent set union done
in a single UPDATE, so concurrent callers never see a partial change.

Lookups raise NotFoundError. Any sqlite3 failure is raised as StorageError.
"""

import json
import sqlite3
import uuid
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

from errors import NotFoundError, StorageError
from models.database import Database
from models.entities import GAME_STATUSES, Game, Guild, User


def _new_uuid() -> str:
    return str(uuid.uuid4())


def _status_rank_sql(expr: str) -> str:
    """SQL expression giving the lifecycle position of a status column/param."""
    cases = " ".join(
        f"WHEN '{status}' THEN {rank}" for rank, status in enumerate(GAME_STATUSES)
    )
    return f"(CASE {expr} {cases} ELSE -1 END)"


def _contains_sql(column: str, param: str) -> str:
    """SQL predicate: JSON array column holds the given value."""
    return f"EXISTS (SELECT 1 FROM json_each({column}) WHERE json_each.value = {param})"


def _append_sql(column: str, param: str) -> str:
    """SQL expression: JSON array column with one value appended."""
    return f"json_insert({column}, '$[' || json_array_length({column}) || ']', {param})"


def _dedupe(values: Iterable[str]) -> List[str]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


class EntityStore:
    """
    Persistence operations for the three entity kinds.

    Every method opens (or reuses) the calling thread's connection, so the
    store can be shared between the bot loop and the webhook server thread.
    """

    def __init__(self, database: Database):
        self.database = database

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    @contextmanager
    def _write(self) -> Iterator[sqlite3.Cursor]:
        """Run statements in one transaction; rollback and wrap on failure."""
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            yield cursor
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(str(exc)) from exc

    def _fetch_all(self, query: str, params=()) -> List[sqlite3.Row]:
        try:
            cursor = self.database.get_connection().cursor()
            cursor.execute(query, params)
            return cursor.fetchall()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    def _fetch_one(self, query: str, params=()) -> Optional[sqlite3.Row]:
        rows = self._fetch_all(query, params)
        return rows[0] if rows else None

    # =========================================================================
    # GUILDS
    # =========================================================================

    def create_guild(self, guild_id: str, channel_id: str) -> bool:
        """
        Insert a guild unless one with this guild_id already exists.

        Returns:
            True if a new row was created, False if the guild already existed
        """
        with self._write() as cursor:
            cursor.execute("""
                INSERT INTO guilds (uuid, guild_id, channel_id)
                VALUES (?, ?, ?)
                ON CONFLICT(guild_id) DO NOTHING
            """, (_new_uuid(), guild_id, channel_id))
            return cursor.rowcount > 0

    def get_guild(self, guild_id: str) -> Guild:
        row = self._fetch_one("SELECT * FROM guilds WHERE guild_id = ?", (guild_id,))
        if row is None:
            raise NotFoundError("guild", guild_id)
        return Guild.from_row(row)

    def get_all_guilds(self) -> List[Guild]:
        rows = self._fetch_all("SELECT * FROM guilds ORDER BY created_at, guild_id")
        return [Guild.from_row(row) for row in rows]

    def update_guild_channel(self, guild_id: str, channel_id: str) -> None:
        with self._write() as cursor:
            cursor.execute("""
                UPDATE guilds
                SET channel_id = ?, updated_at = CURRENT_TIMESTAMP
                WHERE guild_id = ?
            """, (channel_id, guild_id))
            updated = cursor.rowcount > 0
        if not updated:
            raise NotFoundError("guild", guild_id)

    def add_user_to_guild(self, guild_id: str, user_uuid: str) -> bool:
        """
        Add a user reference to a guild's member set.

        Returns:
            True if added, False if it was already a member
        """
        return self._add_reference("guilds", "guild_id", guild_id, "user_ids", user_uuid)

    def add_game_to_guild(self, guild_id: str, game_uuid: str) -> bool:
        return self._add_reference("guilds", "guild_id", guild_id, "game_ids", game_uuid)

    # =========================================================================
    # USERS
    # =========================================================================

    def create_user(
        self,
        steam_id: str,
        auth_code: str,
        last_share_code: str = "",
        discord_id: Optional[str] = None,
    ) -> User:
        with self._write() as cursor:
            cursor.execute("""
                INSERT INTO users (uuid, steam_id, auth_code, last_share_code, discord_id)
                VALUES (?, ?, ?, ?, ?)
            """, (_new_uuid(), steam_id, auth_code, last_share_code, discord_id))
        return self.get_user(steam_id)

    def get_user(self, steam_id: str) -> User:
        row = self._fetch_one("SELECT * FROM users WHERE steam_id = ?", (steam_id,))
        if row is None:
            raise NotFoundError("user", steam_id)
        return User.from_row(row)

    def get_user_by_uuid(self, user_uuid: str) -> User:
        row = self._fetch_one("SELECT * FROM users WHERE uuid = ?", (user_uuid,))
        if row is None:
            raise NotFoundError("user", user_uuid)
        return User.from_row(row)

    def get_all_users(self) -> List[User]:
        rows = self._fetch_all("SELECT * FROM users ORDER BY created_at, steam_id")
        return [User.from_row(row) for row in rows]

    def update_user_credentials(
        self,
        steam_id: str,
        auth_code: str,
        last_share_code: Optional[str] = None,
        discord_id: Optional[str] = None,
    ) -> User:
        """Rotate the auth code; last share code and discord id only if given."""
        with self._write() as cursor:
            cursor.execute("""
                UPDATE users
                SET auth_code = ?,
                    last_share_code = COALESCE(?, last_share_code),
                    discord_id = COALESCE(?, discord_id),
                    updated_at = CURRENT_TIMESTAMP
                WHERE steam_id = ?
            """, (auth_code, last_share_code, discord_id, steam_id))
            updated = cursor.rowcount > 0
        if not updated:
            raise NotFoundError("user", steam_id)
        return self.get_user(steam_id)

    def update_user_last_share_code(self, steam_id: str, share_code: str) -> None:
        with self._write() as cursor:
            cursor.execute("""
                UPDATE users
                SET last_share_code = ?, updated_at = CURRENT_TIMESTAMP
                WHERE steam_id = ?
            """, (share_code, steam_id))
            updated = cursor.rowcount > 0
        if not updated:
            raise NotFoundError("user", steam_id)

    def add_game_to_user(self, steam_id: str, game_uuid: str) -> bool:
        return self._add_reference("users", "steam_id", steam_id, "game_ids", game_uuid)

    def delete_user(self, steam_id: str) -> None:
        """
        Delete a user and strip its reference from every guild.

        Both statements share one transaction. Should a reference ever
        dangle anyway, guild member resolution skips unknown uuids.
        """
        user = self.get_user(steam_id)
        with self._write() as cursor:
            cursor.execute(f"""
                UPDATE guilds
                SET user_ids = (
                        SELECT json_group_array(member.value)
                        FROM json_each(guilds.user_ids) AS member
                        WHERE member.value != :uuid
                    ),
                    updated_at = CURRENT_TIMESTAMP
                WHERE {_contains_sql("guilds.user_ids", ":uuid")}
            """, {"uuid": user.uuid})
            cursor.execute("DELETE FROM users WHERE uuid = ?", (user.uuid,))

    # =========================================================================
    # GAMES
    # =========================================================================

    def create_game(
        self,
        share_code: str,
        demo_name: str = "",
        status: str = "requested",
        steam_ids: Iterable[str] = (),
    ) -> bool:
        """
        Insert a game unless one with this share code already exists.

        Returns:
            True if a new row was created, False if the game already existed
        """
        with self._write() as cursor:
            cursor.execute("""
                INSERT INTO games (uuid, share_code, demo_name, status, steam_ids)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(share_code) DO NOTHING
            """, (
                _new_uuid(),
                share_code,
                demo_name or "",
                status,
                json.dumps(_dedupe(steam_ids)),
            ))
            return cursor.rowcount > 0

    def get_game(self, share_code: str) -> Game:
        row = self._fetch_one("SELECT * FROM games WHERE share_code = ?", (share_code,))
        if row is None:
            raise NotFoundError("game", share_code)
        return Game.from_row(row)

    def update_game(
        self,
        share_code: str,
        demo_name: Optional[str] = None,
        status: Optional[str] = None,
        steam_ids: Optional[Iterable[str]] = None,
    ) -> Game:
        """
        Update a game in one statement.

        - demo_name is replaced when given and non-empty
        - status only ever moves forward through the lifecycle
        - steam_ids are merged into the player set unless the stored game is
          already parsed, at which point the set is frozen
        """
        new_ids = json.dumps(_dedupe(steam_ids)) if steam_ids is not None else None
        with self._write() as cursor:
            cursor.execute(f"""
                UPDATE games
                SET demo_name = CASE
                        WHEN :demo_name IS NULL OR :demo_name = '' THEN demo_name
                        ELSE :demo_name
                    END,
                    status = CASE
                        WHEN :status IS NOT NULL
                             AND {_status_rank_sql(":status")} > {_status_rank_sql("status")}
                        THEN :status
                        ELSE status
                    END,
                    steam_ids = CASE
                        WHEN :steam_ids IS NULL OR status = 'parsed' THEN steam_ids
                        ELSE (
                            SELECT json_group_array(value) FROM (
                                SELECT existing.value AS value
                                FROM json_each(games.steam_ids) AS existing
                                UNION ALL
                                SELECT incoming.value AS value
                                FROM json_each(:steam_ids) AS incoming
                                WHERE NOT {_contains_sql("games.steam_ids", "incoming.value")}
                            )
                        )
                    END,
                    updated_at = CURRENT_TIMESTAMP
                WHERE share_code = :share_code
            """, {
                "demo_name": demo_name,
                "status": status,
                "steam_ids": new_ids,
                "share_code": share_code,
            })
            updated = cursor.rowcount > 0
        if not updated:
            raise NotFoundError("game", share_code)
        return self.get_game(share_code)

    def get_games_by_status(self, status: str) -> List[Game]:
        rows = self._fetch_all(
            "SELECT * FROM games WHERE status = ? ORDER BY created_at",
            (status,),
        )
        return [Game.from_row(row) for row in rows]

    def get_games_for_user(self, steam_id: str) -> List[Game]:
        rows = self._fetch_all(f"""
            SELECT * FROM games
            WHERE {_contains_sql("games.steam_ids", "?")}
            ORDER BY created_at DESC
        """, (steam_id,))
        return [Game.from_row(row) for row in rows]

    def get_games_for_guild(self, guild_id: str) -> List[Game]:
        rows = self._fetch_all(f"""
            SELECT g.* FROM games AS g
            JOIN guilds AS gu ON {_contains_sql("gu.game_ids", "g.uuid")}
            WHERE gu.guild_id = ?
            ORDER BY g.created_at DESC
        """, (guild_id,))
        return [Game.from_row(row) for row in rows]

    # =========================================================================
    # REFERENCE SETS
    # =========================================================================

    def _add_reference(
        self,
        table: str,
        key_column: str,
        key: str,
        list_column: str,
        reference: str,
    ) -> bool:
        """
        Append a reference to a JSON array column if it is not present yet.

        Returns:
            True if appended, False if already present
        """
        with self._write() as cursor:
            cursor.execute(f"""
                UPDATE {table}
                SET {list_column} = {_append_sql(list_column, ":ref")},
                    updated_at = CURRENT_TIMESTAMP
                WHERE {key_column} = :key
                  AND NOT {_contains_sql(f"{table}.{list_column}", ":ref")}
            """, {"ref": reference, "key": key})
            added = cursor.rowcount > 0

        if not added:
            # Distinguish "already present" from "no such row"
            row = self._fetch_one(
                f"SELECT 1 FROM {table} WHERE {key_column} = ?", (key,)
            )
            if row is None:
                raise NotFoundError(table.rstrip("s"), key)
        return added
