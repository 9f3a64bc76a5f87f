import unittest

from models.entities import STATUS_PARSED, STATUS_READY, STATUS_REQUESTED
from services.match_lifecycle import advance_match
from support import StoreTestCase


class AdvanceMatchTests(StoreTestCase):
    def test_unknown_code_is_created_in_target_state(self):
        game, previous = advance_match(self.store, "CSGO-1", STATUS_READY, demo_name="a.dem")
        self.assertIsNone(previous)
        self.assertEqual(game.status, STATUS_READY)
        self.assertEqual(game.demo_name, "a.dem")

    def test_progression_requested_ready_parsed(self):
        advance_match(self.store, "CSGO-1", STATUS_REQUESTED, steam_ids=["S1"])
        game, previous = advance_match(self.store, "CSGO-1", STATUS_READY, demo_name="a.dem")
        self.assertEqual(previous, STATUS_REQUESTED)
        self.assertEqual(game.status, STATUS_READY)

        game, previous = advance_match(self.store, "CSGO-1", STATUS_PARSED)
        self.assertEqual(previous, STATUS_READY)
        self.assertEqual(game.status, STATUS_PARSED)
        self.assertEqual(game.demo_name, "a.dem")
        self.assertEqual(game.steam_ids, ["S1"])

    def test_parsed_before_ready_is_accepted(self):
        game, previous = advance_match(self.store, "CSGO-1", STATUS_PARSED)
        self.assertIsNone(previous)
        self.assertEqual(game.status, STATUS_PARSED)

    def test_events_after_parsed_change_nothing(self):
        advance_match(self.store, "CSGO-1", STATUS_PARSED, demo_name="a.dem", steam_ids=["S1"])

        game, previous = advance_match(
            self.store, "CSGO-1", STATUS_READY, demo_name="b.dem", steam_ids=["S2"]
        )

        self.assertEqual(previous, STATUS_PARSED)
        self.assertEqual(game.status, STATUS_PARSED)
        self.assertEqual(game.demo_name, "a.dem")
        self.assertEqual(game.steam_ids, ["S1"])

    def test_requested_after_ready_keeps_ready(self):
        advance_match(self.store, "CSGO-1", STATUS_READY, demo_name="a.dem")
        game, _ = advance_match(self.store, "CSGO-1", STATUS_REQUESTED, steam_ids=["S1"])
        self.assertEqual(game.status, STATUS_READY)
        self.assertEqual(game.steam_ids, ["S1"])

    def test_invalid_status_raises(self):
        with self.assertRaises(ValueError):
            advance_match(self.store, "CSGO-1", "downloaded")


if __name__ == "__main__":
    unittest.main()
