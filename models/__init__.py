"""
Models module for the CS Match Summary Bot.

This module contains the entity records and their SQLite storage.
"""

from models.database import Database
from models.entities import (
    GAME_STATUSES,
    STATUS_PARSED,
    STATUS_READY,
    STATUS_REQUESTED,
    Game,
    Guild,
    User,
    status_rank,
)
from models.store import EntityStore

__all__ = [
    # Database
    "Database",
    "EntityStore",
    # Entities
    "Guild",
    "User",
    "Game",
    "GAME_STATUSES",
    "STATUS_REQUESTED",
    "STATUS_READY",
    "STATUS_PARSED",
    "status_rank",
]
