"""
Database module for the CS Match Summary Bot.

This module handles SQLite database connections and schema initialization.
SQLite is an embedded database - no separate server needed.

Association sets (guild members, guild games, user games, game players)
are stored as JSON arrays and manipulated with SQLite's JSON1 functions,
so every "add to set" is a single atomic UPDATE.
"""

import sqlite3
import threading
from pathlib import Path
from typing import Union


class Database:
    """
    Owns the SQLite file and hands out one connection per thread.

    The bot loop, the webhook server thread and the test runner each get
    their own connection to avoid concurrent cursor misuse.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._thread_local = threading.local()
        self._connections = []
        self._connections_lock = threading.Lock()

        # Schema initialization guard (shared across threads)
        self._schema_lock = threading.Lock()
        self._schema_initialized = False

    def get_connection(self) -> sqlite3.Connection:
        """
        Get the connection for the calling thread, creating it if needed.

        Returns:
            sqlite3.Connection with row_factory set to sqlite3.Row
        """
        conn = getattr(self._thread_local, "connection", None)

        if conn is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path, check_same_thread=False, timeout=30)
            conn.row_factory = sqlite3.Row  # Access columns by name
            conn.execute("PRAGMA journal_mode = WAL")
            self._thread_local.connection = conn
            with self._connections_lock:
                self._connections.append(conn)

        if not self._schema_initialized:
            with self._schema_lock:
                if not self._schema_initialized:
                    _init_schema(conn)
                    self._schema_initialized = True

        return conn

    def close(self) -> None:
        """Close every connection opened by this database."""
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        self._thread_local = threading.local()


def _init_schema(conn: sqlite3.Connection) -> None:
    """
    Initialize the database schema if tables don't exist.

    Schema:
    - guilds: Discord servers, their notification channel and member/game sets
    - users: Linked Steam accounts with their auth code and last share code
    - games: CS matches keyed by share code, with demo state and players
    """
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS guilds (
            uuid TEXT PRIMARY KEY,
            guild_id TEXT NOT NULL UNIQUE,
            channel_id TEXT NOT NULL,
            user_ids TEXT NOT NULL DEFAULT '[]',
            game_ids TEXT NOT NULL DEFAULT '[]',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS users (
            uuid TEXT PRIMARY KEY,
            steam_id TEXT NOT NULL UNIQUE,
            auth_code TEXT NOT NULL,
            last_share_code TEXT NOT NULL DEFAULT '',
            discord_id TEXT,
            game_ids TEXT NOT NULL DEFAULT '[]',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS games (
            uuid TEXT PRIMARY KEY,
            share_code TEXT NOT NULL UNIQUE,
            demo_name TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL DEFAULT 'requested',
            steam_ids TEXT NOT NULL DEFAULT '[]',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # =========================================================================
    # MIGRATION: Add discord_id column to users if it doesn't exist
    # =========================================================================
    try:
        cursor.execute("SELECT discord_id FROM users LIMIT 1")
    except sqlite3.OperationalError:
        cursor.execute("ALTER TABLE users ADD COLUMN discord_id TEXT")
        print("✅ Migrated users table to add discord_id column")

    # =========================================================================
    # CREATE INDEXES
    # =========================================================================
    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_users_created
        ON users(created_at)
    """)

    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_guilds_created
        ON guilds(created_at)
    """)

    conn.commit()
