import tempfile
import unittest
from pathlib import Path

from errors import ChatUnavailableError, ExternalServiceError, NotFoundError
from models.database import Database
from models.store import EntityStore


class FakeSteamClient:
    """Records outbound calls; failures are scripted per share code."""

    def __init__(self, next_codes=None):
        self.next_codes = dict(next_codes or {})
        self.poll_failures = set()
        self.download_failures = set()
        self.parse_failures = set()
        self.polled = []
        self.downloads = []
        self.parses = []

    async def next_share_code(self, steam_id, auth_code, known_code):
        self.polled.append((steam_id, known_code))
        if steam_id in self.poll_failures:
            raise ExternalServiceError(f"steam unavailable for {steam_id}")
        return self.next_codes.get(steam_id, "n/a")

    async def request_demo_download(self, share_code):
        self.downloads.append(share_code)
        if share_code in self.download_failures:
            raise ExternalServiceError("demo service down")
        return {"success": True}

    async def request_demo_parsing(self, share_code):
        self.parses.append(share_code)
        if share_code in self.parse_failures:
            raise ExternalServiceError("demo service down")
        return {"success": True}


class FakeChat:
    def __init__(self, failing_channels=()):
        self.failing_channels = set(failing_channels)
        self.unavailable = False
        self.sent = []
        self.displays = {}

    async def send_notification(self, channel_id, summary):
        if self.unavailable:
            raise ChatUnavailableError("chat is not connected")
        if channel_id in self.failing_channels:
            raise RuntimeError(f"cannot send to {channel_id}")
        self.sent.append((channel_id, summary))

    def resolve_account_display(self, steam_id):
        return self.displays.get(steam_id)

    def sent_to(self, channel_id):
        return [summary for channel, summary in self.sent if channel == channel_id]


class StoreTestCase(unittest.TestCase):
    """Fresh SQLite file per test."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.database = Database(Path(self._tmp.name) / "bot_data.db")
        self.store = EntityStore(self.database)

    def tearDown(self):
        self.database.close()
        self._tmp.cleanup()

    def add_member(self, guild_id, steam_id, last_share_code="CSGO-AAAAA-AAAAA-AAAAA-AAAAA-AAAAA"):
        """Register a user in a guild, creating both as needed."""
        self.store.create_guild(guild_id, f"chan-{guild_id}")
        try:
            user = self.store.get_user(steam_id)
        except NotFoundError:
            user = self.store.create_user(steam_id, f"auth-{steam_id}", last_share_code)
        self.store.add_user_to_guild(guild_id, user.uuid)
        return user


class AsyncStoreTestCase(unittest.IsolatedAsyncioTestCase):
    """Same as StoreTestCase for coroutine tests."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.database = Database(Path(self._tmp.name) / "bot_data.db")
        self.store = EntityStore(self.database)

    def tearDown(self):
        self.database.close()
        self._tmp.cleanup()

    add_member = StoreTestCase.add_member
