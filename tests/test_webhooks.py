import unittest
from unittest import mock

from fastapi.testclient import TestClient

from errors import NotFoundError, StorageError
from models.entities import STATUS_PARSED, STATUS_READY
from services.notifier import MatchNotifier
from services.pipeline import MatchPipeline
from support import FakeChat, FakeSteamClient, StoreTestCase
from web.app import create_app


def ready_payload(share_code="CSGO-C2", demo_path="/demos/c2.dem", **extra):
    data = {"share_code": share_code, "demo_path": demo_path, **extra}
    return {"success": True, "message": "ok", "data": data}


def parsed_payload(share_code="CSGO-C2", demo_path="/demos/c2.dem", stats=None, **extra):
    data = {"share_code": share_code, "demo_path": demo_path, "stats": stats, **extra}
    return {"success": True, "message": "ok", "data": data}


class WebTestCase(StoreTestCase):
    def setUp(self):
        super().setUp()
        self.steam = FakeSteamClient()
        self.chat = FakeChat()
        self.pipeline = MatchPipeline(self.store, self.steam, MatchNotifier(self.store, self.chat))
        self.client = TestClient(create_app(self.store, self.pipeline))


class DemoReadyWebhookTests(WebTestCase):
    def test_ready_before_poll_creates_game_and_parses_once(self):
        response = self.client.post("/webhooks/demoReady", json=ready_payload())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "success")
        game = self.store.get_game("CSGO-C2")
        self.assertEqual(game.status, STATUS_READY)
        self.assertEqual(game.demo_name, "/demos/c2.dem")
        self.assertEqual(self.steam.parses, ["CSGO-C2"])

        self.client.post("/webhooks/demoReady", json=ready_payload())
        self.assertEqual(self.steam.parses, ["CSGO-C2"])

    def test_failed_parse_request_still_persists(self):
        self.steam.parse_failures = {"CSGO-C2"}

        response = self.client.post("/webhooks/demoReady", json=ready_payload())

        self.assertEqual(response.status_code, 200)
        self.assertIn("pending", response.json()["message"])
        self.assertEqual(self.store.get_game("CSGO-C2").status, STATUS_READY)
        self.assertNotIn("CSGO-C2", self.pipeline.parse_guard)

    def test_reported_failure_is_rejected(self):
        payload = ready_payload()
        payload["success"] = False

        response = self.client.post("/webhooks/demoReady", json=payload)

        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())
        with self.assertRaises(NotFoundError):
            self.store.get_game("CSGO-C2")

    def test_missing_fields_are_rejected(self):
        for payload in (
            {"success": True, "message": "ok"},
            ready_payload(share_code=""),
            ready_payload(demo_path="  "),
        ):
            response = self.client.post("/webhooks/demoReady", json=payload)
            self.assertEqual(response.status_code, 400, payload)
            self.assertIn("error", response.json())

        self.assertEqual(self.steam.parses, [])

    def test_malformed_json_is_rejected(self):
        response = self.client.post(
            "/webhooks/demoReady",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid JSON payload"})


class DemoParsedWebhookTests(WebTestCase):
    def test_parsed_for_unknown_code_is_accepted(self):
        response = self.client.post("/webhooks/demoParsed", json=parsed_payload())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.store.get_game("CSGO-C2").status, STATUS_PARSED)

    def test_parsed_notifies_members_once(self):
        self.add_member("X", "S1")
        self.client.post("/webhooks/demoReady", json=ready_payload(steam_ids=["S1", "S9"]))

        stats = {"score": [13, 7]}
        first = self.client.post("/webhooks/demoParsed", json=parsed_payload(stats=stats))
        second = self.client.post("/webhooks/demoParsed", json=parsed_payload(stats=stats))

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        (summary,) = self.chat.sent_to("chan-X")
        self.assertEqual(summary.stats, stats)
        self.assertEqual(summary.unregistered_players, ["S9"])
        self.assertIn(self.store.get_game("CSGO-C2").uuid, self.store.get_guild("X").game_ids)

    def test_fanout_storage_failure_is_announced_on_redelivery(self):
        self.add_member("X", "S1")
        self.client.post("/webhooks/demoReady", json=ready_payload(steam_ids=["S1"]))

        with mock.patch.object(
            self.store, "get_all_guilds", side_effect=StorageError("database is locked")
        ):
            first = self.client.post("/webhooks/demoParsed", json=parsed_payload())

        self.assertEqual(first.status_code, 500)
        self.assertEqual(self.chat.sent, [])
        self.assertNotIn("CSGO-C2", self.pipeline.notify_guard)

        second = self.client.post("/webhooks/demoParsed", json=parsed_payload())
        third = self.client.post("/webhooks/demoParsed", json=parsed_payload())

        self.assertEqual(second.status_code, 200)
        self.assertEqual(third.status_code, 200)
        self.assertEqual(len(self.chat.sent_to("chan-X")), 1)

    def test_chat_unavailable_returns_503_and_redelivery_announces(self):
        self.add_member("X", "S1")
        self.client.post("/webhooks/demoReady", json=ready_payload(steam_ids=["S1"]))
        self.chat.unavailable = True

        first = self.client.post("/webhooks/demoParsed", json=parsed_payload())

        self.assertEqual(first.status_code, 503)
        self.assertIn("error", first.json())
        self.assertEqual(self.store.get_game("CSGO-C2").status, STATUS_PARSED)

        self.chat.unavailable = False
        second = self.client.post("/webhooks/demoParsed", json=parsed_payload())

        self.assertEqual(second.status_code, 200)
        self.assertEqual(len(self.chat.sent_to("chan-X")), 1)

    def test_ready_after_parsed_is_ignored(self):
        self.client.post("/webhooks/demoParsed", json=parsed_payload(demo_path="/demos/final.dem"))
        response = self.client.post("/webhooks/demoReady", json=ready_payload(demo_path="/demos/late.dem"))

        self.assertEqual(response.status_code, 200)
        game = self.store.get_game("CSGO-C2")
        self.assertEqual(game.status, STATUS_PARSED)
        self.assertEqual(game.demo_name, "/demos/final.dem")
        self.assertEqual(self.steam.parses, [])

    def test_reported_failure_is_rejected(self):
        payload = parsed_payload()
        payload["success"] = False

        response = self.client.post("/webhooks/demoParsed", json=payload)

        self.assertEqual(response.status_code, 400)
        with self.assertRaises(NotFoundError):
            self.store.get_game("CSGO-C2")


class QueryApiTests(WebTestCase):
    def test_match_lookup(self):
        self.store.create_game("CSGO-1", demo_name="a.dem", steam_ids=["S1"])

        body = self.client.get("/api/v1/match/CSGO-1").json()

        self.assertEqual(body["share_code"], "CSGO-1")
        self.assertEqual(body["status"], "requested")
        self.assertEqual(body["steam_ids"], ["S1"])

    def test_user_lookup_hides_auth_code(self):
        self.store.create_user("S1", "secret-auth", "CSGO-1")

        response = self.client.get("/api/v1/user/S1")

        self.assertEqual(response.status_code, 200)
        self.assertNotIn("auth_code", response.json())
        self.assertNotIn("secret-auth", response.text)

    def test_guild_lookup(self):
        self.add_member("X", "S1")

        body = self.client.get("/api/v1/guild/X").json()

        self.assertEqual(body["channel_id"], "chan-X")
        self.assertEqual(body["user_count"], 1)
        self.assertEqual(body["game_count"], 0)

    def test_unknown_entities_return_404(self):
        for path in ("/api/v1/match/CSGO-404", "/api/v1/user/404", "/api/v1/guild/404"):
            response = self.client.get(path)
            self.assertEqual(response.status_code, 404, path)
            self.assertIn("error", response.json())

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
