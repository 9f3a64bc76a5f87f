import asyncio
import unittest

from models.entities import STATUS_READY, STATUS_REQUESTED
from services.match_lifecycle import advance_match
from services.notifier import MatchNotifier
from services.pipeline import MatchPipeline
from services.poller import SteamPoller, group_by_share_code
from support import AsyncStoreTestCase, FakeChat, FakeSteamClient


class PollerTestCase(AsyncStoreTestCase):
    def setUp(self):
        super().setUp()
        self.steam = FakeSteamClient()
        self.chat = FakeChat()
        self.pipeline = MatchPipeline(self.store, self.steam, MatchNotifier(self.store, self.chat))
        self.poller = SteamPoller(self.store, self.steam, self.pipeline)


class PollCycleTests(PollerTestCase):
    async def test_new_match_reported_by_two_accounts_is_requested_once(self):
        self.add_member("X", "S1", last_share_code="CSGO-C1")
        self.add_member("X", "S2", last_share_code="CSGO-C1")
        self.steam.next_codes = {"S1": "CSGO-C2", "S2": "CSGO-C2"}

        summary = await self.poller.poll_once()

        self.assertEqual(self.steam.downloads, ["CSGO-C2"])
        self.assertNotIn("CSGO-C1", self.steam.downloads)
        self.assertEqual(self.store.get_user("S1").last_share_code, "CSGO-C2")
        self.assertEqual(self.store.get_user("S2").last_share_code, "CSGO-C2")
        self.assertEqual(summary["new_codes"], 1)
        self.assertEqual(summary["downloads"], 1)

        game = self.store.get_game("CSGO-C2")
        self.assertEqual(game.status, STATUS_REQUESTED)
        self.assertEqual(sorted(game.steam_ids), ["S1", "S2"])
        self.assertIn(game.uuid, self.store.get_user("S1").game_ids)

    async def test_no_new_match_sentinel_is_ignored(self):
        self.add_member("X", "S1", last_share_code="CSGO-C1")
        self.steam.next_codes = {"S1": "n/a"}

        summary = await self.poller.poll_once()

        self.assertEqual(self.steam.downloads, [])
        self.assertEqual(summary["new_codes"], 0)
        self.assertEqual(self.store.get_user("S1").last_share_code, "CSGO-C1")

    async def test_unchanged_code_is_ignored(self):
        self.add_member("X", "S1", last_share_code="CSGO-C1")
        self.steam.next_codes = {"S1": "CSGO-C1"}

        await self.poller.poll_once()

        self.assertEqual(self.steam.downloads, [])

    async def test_failing_account_does_not_abort_cycle(self):
        self.add_member("X", "S1", last_share_code="CSGO-C1")
        self.add_member("X", "S2", last_share_code="CSGO-C1")
        self.steam.poll_failures = {"S1"}
        self.steam.next_codes = {"S2": "CSGO-C3"}

        await self.poller.poll_once()

        self.assertEqual(self.steam.downloads, ["CSGO-C3"])
        self.assertEqual(self.store.get_user("S1").last_share_code, "CSGO-C1")
        self.assertEqual(self.store.get_user("S2").last_share_code, "CSGO-C3")

    async def test_accounts_without_share_code_are_not_polled(self):
        self.store.create_user("S1", "auth", "")

        summary = await self.poller.poll_once()

        self.assertEqual(self.steam.polled, [])
        self.assertEqual(summary["users"], 0)

    async def test_failed_download_is_retried_next_cycle(self):
        self.add_member("X", "S1", last_share_code="CSGO-C1")
        self.steam.next_codes = {"S1": "CSGO-C2"}
        self.steam.download_failures = {"CSGO-C2"}

        first = await self.poller.poll_once()
        self.assertEqual(first["downloads"], 0)
        self.assertNotIn("CSGO-C2", self.pipeline.download_guard)

        self.steam.download_failures.clear()
        second = await self.poller.poll_once()

        self.assertEqual(second["retries"], 1)
        self.assertEqual(self.steam.downloads, ["CSGO-C2", "CSGO-C2"])

    async def test_successful_download_is_not_repeated(self):
        self.add_member("X", "S1", last_share_code="CSGO-C1")
        self.steam.next_codes = {"S1": "CSGO-C2"}

        await self.poller.poll_once()
        await self.poller.poll_once()

        self.assertEqual(self.steam.downloads, ["CSGO-C2"])

    async def test_code_already_ready_from_webhook_is_not_downloaded(self):
        self.add_member("X", "S1", last_share_code="CSGO-C1")
        await self.pipeline.demo_ready("CSGO-C2", "/demos/c2.dem")
        self.steam.next_codes = {"S1": "CSGO-C2"}

        await self.poller.poll_once()

        self.assertEqual(self.steam.downloads, [])
        game = self.store.get_game("CSGO-C2")
        self.assertEqual(game.status, STATUS_READY)
        self.assertIn("S1", game.steam_ids)

    async def test_failed_parse_request_is_retried_next_cycle(self):
        self.add_member("X", "S1", last_share_code="CSGO-C1")
        self.steam.parse_failures = {"CSGO-C2"}
        await self.pipeline.demo_ready("CSGO-C2", "/demos/c2.dem")
        self.assertNotIn("CSGO-C2", self.pipeline.parse_guard)

        self.steam.parse_failures.clear()
        self.steam.next_codes = {"S1": "CSGO-C2"}
        first = await self.poller.poll_once()
        second = await self.poller.poll_once()

        self.assertEqual(first["parse_retries"], 1)
        self.assertEqual(second["parse_retries"], 0)
        self.assertEqual(self.steam.parses, ["CSGO-C2", "CSGO-C2"])
        self.assertEqual(self.steam.downloads, [])

    async def test_discovering_ready_code_requests_parsing(self):
        self.add_member("X", "S1", last_share_code="CSGO-C1")
        advance_match(self.store, "CSGO-C2", STATUS_READY, demo_name="/demos/c2.dem")

        issued = await self.pipeline.match_discovered("CSGO-C2", ["S1"])

        self.assertFalse(issued)
        self.assertEqual(self.steam.parses, ["CSGO-C2"])
        self.assertEqual(self.steam.downloads, [])


class SingleFlightTests(PollerTestCase):
    async def test_overlapping_cycle_is_skipped(self):
        self.add_member("X", "S1", last_share_code="CSGO-C1")
        release = asyncio.Event()
        entered = asyncio.Event()
        real_next_share_code = self.steam.next_share_code

        async def slow_next_share_code(steam_id, auth_code, known_code):
            entered.set()
            await release.wait()
            return await real_next_share_code(steam_id, auth_code, known_code)

        self.steam.next_share_code = slow_next_share_code

        first = asyncio.ensure_future(self.poller.poll_once())
        await entered.wait()
        self.assertTrue(self.poller.is_polling)

        self.assertIsNone(await self.poller.poll_once())

        release.set()
        self.assertIsNotNone(await first)
        self.assertFalse(self.poller.is_polling)


class GroupByShareCodeTests(unittest.TestCase):
    def test_groups_reports(self):
        grouped = group_by_share_code([("a", "C2"), ("b", "C2"), ("c", "C3")])
        self.assertEqual(grouped, {"C2": ["a", "b"], "C3": ["c"]})


if __name__ == "__main__":
    unittest.main()
