import unittest

from services.notifier import MatchNotifier
from support import AsyncStoreTestCase, FakeChat


class FanOutTests(AsyncStoreTestCase):
    def setUp(self):
        super().setUp()
        self.chat = FakeChat()
        self.notifier = MatchNotifier(self.store, self.chat)

    def _game(self, share_code, steam_ids):
        self.store.create_game(share_code, demo_name="match.dem", status="parsed", steam_ids=steam_ids)
        return self.store.get_game(share_code)

    async def test_each_guild_sees_only_its_members(self):
        self.add_member("X", "A")
        self.add_member("X", "B")
        self.add_member("Y", "C")
        game = self._game("CSGO-1", ["A", "B", "C"])

        notified = await self.notifier.notify(game)

        self.assertEqual(sorted(notified), ["X", "Y"])
        x_messages = self.chat.sent_to("chan-X")
        y_messages = self.chat.sent_to("chan-Y")
        self.assertEqual(len(x_messages), 1)
        self.assertEqual(len(y_messages), 1)
        self.assertEqual(
            sorted(p.steam_id for p in x_messages[0].registered_players), ["A", "B"]
        )
        self.assertEqual([p.steam_id for p in y_messages[0].registered_players], ["C"])
        self.assertEqual(x_messages[0].player_count, 3)
        self.assertEqual(x_messages[0].demo_name, "match.dem")

    async def test_unregistered_participant_is_listed_without_error(self):
        self.add_member("X", "S1")
        game = self._game("CSGO-1", ["S1", "S9"])

        await self.notifier.notify(game)

        (summary,) = self.chat.sent_to("chan-X")
        self.assertEqual([p.steam_id for p in summary.registered_players], ["S1"])
        self.assertEqual(summary.unregistered_players, ["S9"])

    async def test_only_unregistered_players_notifies_nobody(self):
        self.store.create_guild("X", "chan-X")
        game = self._game("CSGO-1", ["S9"])

        self.assertEqual(await self.notifier.notify(game), [])
        self.assertEqual(self.chat.sent, [])

    async def test_delivery_failure_does_not_stop_other_guilds(self):
        self.add_member("X", "A")
        self.add_member("Y", "C")
        self.chat.failing_channels = {"chan-X"}
        game = self._game("CSGO-1", ["A", "C"])

        notified = await self.notifier.notify(game)

        self.assertEqual(notified, ["Y"])
        self.assertEqual(len(self.chat.sent_to("chan-Y")), 1)
        self.assertNotIn(game.uuid, self.store.get_guild("X").game_ids)
        self.assertIn(game.uuid, self.store.get_guild("Y").game_ids)

    async def test_display_names_and_stats_are_passed_through(self):
        self.add_member("X", "A")
        self.chat.displays = {"A": "<@42>"}
        game = self._game("CSGO-1", ["A"])
        stats = {"rounds": [1, 2, 3]}

        await self.notifier.notify(game, stats)

        (summary,) = self.chat.sent_to("chan-X")
        self.assertEqual(summary.registered_players[0].display, "<@42>")
        self.assertIs(summary.stats, stats)
        self.assertTrue(summary.has_stats)


if __name__ == "__main__":
    unittest.main()
