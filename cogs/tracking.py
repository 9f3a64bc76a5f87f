"""
Tracking Cog for the CS Match Summary Bot.

Runs the Steam poll loop as a discord.ext background task.
"""

from discord.ext import commands, tasks

from config.settings import POLL_INTERVAL_SECONDS
from event_logger import log_event


class TrackingCog(commands.Cog):
    """
    Cog owning the periodic match poll.

    Background Tasks:
    - poll_matches: one poll cycle every POLL_INTERVAL_SECONDS
    """

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.poll_matches.start()

    def cog_unload(self):
        """Stop polling when the cog is unloaded; a running cycle finishes first."""
        self.poll_matches.stop()

    @tasks.loop(seconds=POLL_INTERVAL_SECONDS)
    async def poll_matches(self):
        # An unhandled exception would end the task loop for good
        try:
            summary = await self.bot.poller.poll_once()
        except Exception as e:
            print(f"❌ Poll loop error: {e}")
            log_event("poll_loop_error", error=e)
            return

        if summary and summary["new_codes"]:
            print(
                f"🔄 Poll cycle: {summary['new_codes']} new match(es), "
                f"{summary['downloads']} download(s) requested"
            )

    @poll_matches.before_loop
    async def before_poll_matches(self):
        """Wait until the bot is ready before the first cycle."""
        await self.bot.wait_until_ready()
        print(f"⏱️ Match polling started (every {POLL_INTERVAL_SECONDS:g}s)")
        log_event("poll_loop_started", interval_seconds=POLL_INTERVAL_SECONDS)


async def setup(bot: commands.Bot):
    """
    Setup function for loading the cog.

    Called by bot.load_extension().
    """
    await bot.add_cog(TrackingCog(bot))
