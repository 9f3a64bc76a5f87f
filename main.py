"""
=============================================================================
CS Match Summary Bot - Match summaries for Discord communities
=============================================================================

Members link their Steam accounts; the bot polls Steam for new matches,
has a demo service download and parse them, and posts one summary per
Discord server that has a player in the match.

Discord.py Version: 2.0+
=============================================================================
"""

import sys

from bot import CSMatchBot
from config.settings import (
    DATABASE_PATH,
    DEMO_SERVICE_BASE_URL,
    DISCORD_TOKEN,
    HTTP_TIMEOUT_SECONDS,
    NO_NEW_MATCH,
    POLL_CONCURRENCY,
    PROCESSED_CODES_LIMIT,
    STEAM_API_BASE_URL,
    STEAM_API_KEY,
    WEBHOOK_BASE_URL,
    WEBHOOK_HOST,
    WEBHOOK_PORT,
)
from event_logger import get_event_log_path, log_event
from models.database import Database
from models.store import EntityStore
from services.discord_chat import DiscordChatAdapter
from services.notifier import MatchNotifier
from services.pipeline import MatchPipeline
from services.poller import SteamPoller
from services.steam_api import SteamClient
from web.app import create_app
from web.server import start_webhook_server


def build_bot() -> CSMatchBot:
    """
    Wire the store, the Steam client, the pipeline and the bot together.
    """
    store = EntityStore(Database(DATABASE_PATH))
    steam = SteamClient(
        api_key=STEAM_API_KEY,
        steam_base_url=STEAM_API_BASE_URL,
        demo_base_url=DEMO_SERVICE_BASE_URL,
        webhook_base_url=WEBHOOK_BASE_URL,
        timeout_seconds=HTTP_TIMEOUT_SECONDS,
    )
    chat = DiscordChatAdapter(store, timeout_seconds=HTTP_TIMEOUT_SECONDS)
    pipeline = MatchPipeline(
        store,
        steam,
        MatchNotifier(store, chat),
        processed_codes_limit=PROCESSED_CODES_LIMIT,
    )
    poller = SteamPoller(
        store,
        steam,
        pipeline,
        no_new_match=NO_NEW_MATCH,
        concurrency=POLL_CONCURRENCY,
    )

    bot = CSMatchBot(store, pipeline, poller)
    chat.attach(bot)

    start_webhook_server(create_app(store, pipeline), WEBHOOK_HOST, WEBHOOK_PORT)
    return bot


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    if not DISCORD_TOKEN:
        print("❌ ERROR: DISCORD_TOKEN not found!")
        print("Make sure you have a .env file with DISCORD_TOKEN=your_token_here")
        sys.exit(1)

    if not STEAM_API_KEY:
        print("❌ ERROR: STEAM_API_KEY not found!")
        print("Make sure you have a .env file with STEAM_API_KEY=your_key_here")
        sys.exit(1)

    print("🚀 Starting CS Match Summary Bot...")
    print(f"🗄️ Database: {DATABASE_PATH}")
    print(f"📝 Event log: {get_event_log_path()}")
    log_event("bot_starting", database_path=DATABASE_PATH, webhook_port=WEBHOOK_PORT)

    bot = build_bot()
    bot.run(DISCORD_TOKEN)
