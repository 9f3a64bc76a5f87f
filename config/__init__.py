"""
Configuration module for the CS Match Summary Bot.

This module contains all configuration constants and environment variables.

Note: Notification channels are stored per-guild in the database.
"""

from config.settings import (
    # Environment variables
    DISCORD_TOKEN,
    STEAM_API_KEY,
    STEAM_API_BASE_URL,
    DEMO_SERVICE_BASE_URL,
    WEBHOOK_BASE_URL,
    WEBHOOK_HOST,
    WEBHOOK_PORT,
    DATABASE_PATH,
    EVENT_LOG_PATH,
    HTTP_TIMEOUT_SECONDS,
    POLL_INTERVAL_SECONDS,
    POLL_CONCURRENCY,
    PROCESSED_CODES_LIMIT,
    # Constants
    NO_NEW_MATCH,
    SHARE_CODE_PREFIX,
)

__all__ = [
    "DISCORD_TOKEN",
    "STEAM_API_KEY",
    "STEAM_API_BASE_URL",
    "DEMO_SERVICE_BASE_URL",
    "WEBHOOK_BASE_URL",
    "WEBHOOK_HOST",
    "WEBHOOK_PORT",
    "DATABASE_PATH",
    "EVENT_LOG_PATH",
    "HTTP_TIMEOUT_SECONDS",
    "POLL_INTERVAL_SECONDS",
    "POLL_CONCURRENCY",
    "PROCESSED_CODES_LIMIT",
    "NO_NEW_MATCH",
    "SHARE_CODE_PREFIX",
]
