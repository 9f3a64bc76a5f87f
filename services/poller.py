"""
Steam match polling for the CS Match Summary Bot.

Once per interval, every registered user with a known share code is asked
"is there a match after this one?". Users that played together report the
same new code, so codes are grouped before anything is requested.
"""

import asyncio
import threading
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from errors import ExternalServiceError, MatchBotError
from event_logger import log_event
from models.entities import User
from models.store import EntityStore
from services.pipeline import MatchPipeline
from services.steam_api import SteamClient


class SteamPoller:
    """
    Runs poll cycles; only one cycle at a time per instance.

    The periodic scheduling itself lives in cogs.tracking, which calls
    poll_once() from a discord.ext.tasks loop.
    """

    def __init__(
        self,
        store: EntityStore,
        steam: SteamClient,
        pipeline: MatchPipeline,
        no_new_match: str = "n/a",
        concurrency: int = 5,
    ):
        self.store = store
        self.steam = steam
        self.pipeline = pipeline
        self.no_new_match = no_new_match
        self.concurrency = max(1, concurrency)
        self._cycle_lock = threading.Lock()

    @property
    def is_polling(self) -> bool:
        return self._cycle_lock.locked()

    async def _poll_user(self, user: User, semaphore: asyncio.Semaphore) -> Optional[str]:
        """
        Ask Steam for one user's next share code.

        Returns:
            The new share code, or None when there is nothing new or the
            request failed (failures are logged, never raised)
        """
        async with semaphore:
            try:
                next_code = await self.steam.next_share_code(
                    user.steam_id, user.auth_code, user.last_share_code
                )
            except ExternalServiceError as exc:
                print(f"⚠️ Error polling for user {user.steam_id}: {exc}")
                log_event("poll_user_failed", steam_id=user.steam_id, error=exc)
                return None

        if not next_code or next_code == self.no_new_match or next_code == user.last_share_code:
            return None

        print(f"🆕 New match found for user {user.steam_id}: {next_code}")
        log_event("new_match_found", steam_id=user.steam_id, share_code=next_code)
        return next_code

    async def _collect_new_codes(self, users: List[User]) -> Dict[str, List[User]]:
        """Poll users concurrently, then group them by reported share code."""
        semaphore = asyncio.Semaphore(self.concurrency)
        results: List[Optional[str]] = await asyncio.gather(
            *(self._poll_user(user, semaphore) for user in users)
        )
        # Grouping happens once, after every request of the cycle is done
        return group_by_share_code(
            [(user, code) for user, code in zip(users, results) if code]
        )

    async def _process_code(self, share_code: str, users: List[User]) -> bool:
        """Move every reporting user past this code, then hand it on."""
        print(f"🔄 Processing new match {share_code} for {len(users)} user(s)")
        for user in users:
            try:
                self.store.update_user_last_share_code(user.steam_id, share_code)
            except MatchBotError as exc:
                print(f"⚠️ Error updating last share code for user {user.steam_id}: {exc}")

        return await self.pipeline.match_discovered(
            share_code, [user.steam_id for user in users]
        )

    async def poll_once(self) -> Optional[Dict[str, int]]:
        """
        Run one full poll cycle.

        Returns:
            Summary counters, or None if another cycle was still running
        """
        if not self._cycle_lock.acquire(blocking=False):
            print("⏳ Previous poll cycle still running, skipping this tick")
            log_event("poll_cycle_skipped")
            return None

        try:
            return await self._run_cycle()
        finally:
            self._cycle_lock.release()

    async def _run_cycle(self) -> Dict[str, int]:
        summary = {"users": 0, "new_codes": 0, "downloads": 0, "retries": 0, "parse_retries": 0}

        # Requests that failed in an earlier cycle go first
        try:
            summary["retries"] = await self.pipeline.retry_pending_downloads()
        except MatchBotError as exc:
            print(f"❌ Error retrying pending downloads: {exc}")
            log_event("poll_retry_failed", error=exc)

        try:
            summary["parse_retries"] = await self.pipeline.retry_pending_parses()
        except MatchBotError as exc:
            print(f"❌ Error retrying pending parses: {exc}")
            log_event("poll_parse_retry_failed", error=exc)

        try:
            users = [user for user in self.store.get_all_users() if user.last_share_code]
        except MatchBotError as exc:
            print(f"❌ Error getting users for polling: {exc}")
            log_event("poll_cycle_failed", error=exc)
            return summary

        if not users:
            return summary

        summary["users"] = len(users)
        log_event("poll_cycle_started", user_count=len(users))
        grouped = await self._collect_new_codes(users)
        summary["new_codes"] = len(grouped)

        for share_code, reporting_users in grouped.items():
            try:
                if await self._process_code(share_code, reporting_users):
                    summary["downloads"] += 1
            except MatchBotError as exc:
                print(f"❌ Error processing match {share_code}: {exc}")
                log_event("poll_match_failed", share_code=share_code, error=exc)

        log_event("poll_cycle_finished", **summary)
        return summary


def group_by_share_code(reports: List[Tuple[User, str]]) -> Dict[str, List[User]]:
    """Group (user, share code) reports so each code appears once."""
    grouped: Dict[str, List[User]] = defaultdict(list)
    for user, share_code in reports:
        grouped[share_code].append(user)
    return dict(grouped)
