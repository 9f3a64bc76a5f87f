"""
Match processing pipeline shared by the poller and the webhooks.

    poll discovers code -> match_discovered -> getDemo (once)
    demo service        -> demo_ready       -> parseDemo (once)
    demo service        -> demo_parsed      -> fan-out (once)

Every entry point moves the game through advance_match() and issues its
external request through a ShareCodeGuard, so a code discovered by several
users, or delivered twice by the demo service, triggers one request.
"""

from typing import Any, Iterable, List, Optional, Tuple

from errors import ExternalServiceError, MatchBotError, NotFoundError, StorageError
from event_logger import log_event
from models.entities import STATUS_PARSED, STATUS_READY, STATUS_REQUESTED, Game
from models.store import EntityStore
from services.dedup import ShareCodeGuard
from services.match_lifecycle import advance_match
from services.notifier import MatchNotifier
from services.steam_api import SteamClient


class MatchPipeline:
    """
    Owns the in-memory dedup state for one bot process.

    Built once in main.py and handed to the poller and the web app.
    """

    def __init__(
        self,
        store: EntityStore,
        steam: SteamClient,
        notifier: MatchNotifier,
        processed_codes_limit: int = 1000,
    ):
        self.store = store
        self.steam = steam
        self.notifier = notifier
        self.download_guard = ShareCodeGuard("download", processed_codes_limit)
        self.parse_guard = ShareCodeGuard("parse", processed_codes_limit)
        self.notify_guard = ShareCodeGuard("notify", processed_codes_limit)

    # =========================================================================
    # DOWNLOAD (poller)
    # =========================================================================

    async def match_discovered(self, share_code: str, steam_ids: Iterable[str]) -> bool:
        """
        Record a match found by polling and request its demo once.

        Args:
            share_code: The new share code
            steam_ids: Every registered user that reported it this cycle

        Returns:
            True if a download request was issued by this call
        """
        players = list(steam_ids)
        game, _ = advance_match(self.store, share_code, STATUS_REQUESTED, steam_ids=players)

        for steam_id in players:
            try:
                self.store.add_game_to_user(steam_id, game.uuid)
            except (NotFoundError, StorageError) as exc:
                print(f"⚠️ Could not add match {share_code} to user {steam_id}: {exc}")

        if game.status == STATUS_READY:
            # A demoReady callback got here first; make sure parsing was asked for
            await self.request_parsing(share_code)
            return False
        if game.status != STATUS_REQUESTED:
            return False

        return await self.request_download(share_code)

    async def request_download(self, share_code: str) -> bool:
        try:
            issued = await self.download_guard.run_once(
                share_code, self.steam.request_demo_download
            )
        except ExternalServiceError as exc:
            print(f"❌ Error requesting demo download for {share_code}: {exc}")
            log_event("demo_download_failed", share_code=share_code, error=exc)
            return False

        if issued:
            print(f"✅ Requested demo download for {share_code}")
            log_event("demo_download_requested", share_code=share_code)
        return issued

    async def retry_pending_downloads(self) -> int:
        """
        Re-request every game still waiting for its demo whose previous
        request failed (or was lost with a restart).

        Returns:
            Number of download requests issued
        """
        issued = 0
        for game in self.store.get_games_by_status(STATUS_REQUESTED):
            if game.share_code in self.download_guard:
                continue
            if await self.request_download(game.share_code):
                issued += 1
        return issued

    # =========================================================================
    # PARSE (demoReady webhook, /addmatch)
    # =========================================================================

    async def demo_ready(
        self,
        share_code: str,
        demo_path: str,
        steam_ids: Optional[Iterable[str]] = None,
    ) -> Tuple[Game, bool]:
        """
        Handle a demoReady callback.

        Persists the demo path first; a failed parse request is logged but
        never undoes that.

        Returns:
            Tuple of (game, parse request issued)
        """
        game, _ = advance_match(
            self.store, share_code, STATUS_READY, demo_name=demo_path, steam_ids=steam_ids
        )
        # The demo exists, polling must not ask for it again
        self.download_guard.mark(share_code)

        if game.is_parsed:
            return game, False
        return game, await self.request_parsing(share_code)

    async def request_parsing(self, share_code: str) -> bool:
        try:
            issued = await self.parse_guard.run_once(
                share_code, self.steam.request_demo_parsing
            )
        except ExternalServiceError as exc:
            print(f"❌ Error requesting demo parsing for {share_code}: {exc}")
            log_event("demo_parse_failed", share_code=share_code, error=exc)
            return False

        if issued:
            print(f"✅ Requested demo parsing for {share_code}")
            log_event("demo_parse_requested", share_code=share_code)
        return issued

    async def retry_pending_parses(self) -> int:
        """
        Re-request parsing for every downloaded game whose previous parse
        request failed (or was lost with a restart).

        Returns:
            Number of parse requests issued
        """
        issued = 0
        for game in self.store.get_games_by_status(STATUS_READY):
            if game.share_code in self.parse_guard:
                continue
            if await self.request_parsing(game.share_code):
                issued += 1
        return issued

    # =========================================================================
    # NOTIFY (demoParsed webhook)
    # =========================================================================

    async def demo_parsed(
        self,
        share_code: str,
        demo_path: Optional[str] = None,
        stats: Any = None,
        steam_ids: Optional[Iterable[str]] = None,
    ) -> Tuple[Game, List[str]]:
        """
        Handle a demoParsed callback and fan the summary out.

        A repeated callback for an already announced game sends nothing.
        If the fan-out fails as a whole, the code is released so the
        demo service's redelivery announces it.

        Returns:
            Tuple of (game, guild IDs notified)

        Raises:
            MatchBotError: the fan-out could not run; the caller should
                answer with an error so the callback is redelivered
        """
        game, _ = advance_match(
            self.store, share_code, STATUS_PARSED, demo_name=demo_path, steam_ids=steam_ids
        )

        if not self.notify_guard.mark(share_code):
            print(f"ℹ️ Match {share_code} already announced, skipping")
            log_event("notification_duplicate_skipped", share_code=share_code)
            return game, []

        try:
            notified = await self.notifier.notify(game, stats)
        except MatchBotError as exc:
            self.notify_guard.unmark(share_code)
            print(f"❌ Error announcing match {share_code}: {exc}")
            log_event("notification_fanout_failed", share_code=share_code, error=exc)
            raise
        return game, notified
