"""
Configuration settings for the CS Match Summary Bot.

This module contains all configuration constants and environment variables.
Keep all bot configuration centralized here.

Note: Notification channels are stored per-guild in the database.
Use models.store.EntityStore to get/set guild-specific channels.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# =============================================================================
# ENVIRONMENT VARIABLES
# =============================================================================

# Load environment variables from .env file
load_dotenv()

# Discord bot token - NEVER hardcode this!
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

# Steam Web API key used for GetNextMatchSharingCode
STEAM_API_KEY = os.getenv("STEAM_API_KEY")

# =============================================================================
# EXTERNAL SERVICES
# =============================================================================

STEAM_API_BASE_URL = os.getenv("STEAM_API_BASE_URL", "https://api.steampowered.com")

# Demo download/parse service
DEMO_SERVICE_BASE_URL = os.getenv(
    "DEMO_SERVICE_BASE_URL",
    os.getenv("DEMO_PARSE_BASE_URL", "https://cs-demo-parsing.simonfalke.com"),
)

# Public base URL the demo service calls back into
WEBHOOK_BASE_URL = os.getenv("WEBHOOK_BASE_URL", "https://cs-bot.simonfalke.com")

# Every outbound request gets a finite timeout (seconds)
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

# =============================================================================
# WEBHOOK SERVER
# =============================================================================

WEBHOOK_HOST = os.getenv("WEBHOOK_HOST", "127.0.0.1")
WEBHOOK_PORT = int(os.getenv("WEBHOOK_PORT", "8080"))

# =============================================================================
# STORAGE & LOGS
# =============================================================================

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

DATABASE_PATH = Path(os.getenv("DATABASE_PATH", str(_PROJECT_ROOT / "bot_data.db")))
EVENT_LOG_PATH = Path(os.getenv("EVENT_LOG_PATH", str(_PROJECT_ROOT / "logs" / "events.jsonl")))

# =============================================================================
# MATCH POLLING
# =============================================================================

# Seconds between two poll cycles
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "10"))

# Maximum number of Steam requests in flight during one cycle
POLL_CONCURRENCY = int(os.getenv("POLL_CONCURRENCY", "5"))

# Once the processed share code cache grows past this, it is cleared
PROCESSED_CODES_LIMIT = int(os.getenv("PROCESSED_CODES_LIMIT", "1000"))

# Steam answers with this value when there is no newer match
NO_NEW_MATCH = "n/a"

# Every valid CS share code starts with this prefix
SHARE_CODE_PREFIX = "CSGO-"

# =============================================================================
# DISCORD LIMITS
# =============================================================================

# Discord embeds accept at most 25 fields / reasonable list sizes
MAX_LISTED_USERS = 25
MAX_LISTED_GAMES = 10
