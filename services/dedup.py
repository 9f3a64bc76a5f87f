"""
Share code deduplication for the CS Match Summary Bot.

Many linked users can discover the same match in one poll cycle, and the
demo service may call back more than once. ShareCodeGuard makes sure one
external request is issued per share code until that request fails.
"""

import threading
from contextlib import contextmanager
from typing import Awaitable, Callable, Iterator, Set

from event_logger import log_event


class ReadWriteLock:
    """
    Many readers or one writer.

    Thread based, since the poller (bot loop) and the webhook server (its own
    thread) both touch the same guard. Never held across an await.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class ShareCodeGuard:
    """
    Set of share codes whose request is in flight or already succeeded.

    A code is marked before the request goes out and unmarked if the request
    fails, so a later poll cycle or webhook can retry it. Past `limit`
    entries the whole set is dropped; downstream operations are idempotent,
    so reprocessing an old code is harmless.
    """

    def __init__(self, name: str, limit: int = 1000):
        self.name = name
        self.limit = limit
        self._codes: Set[str] = set()
        self._lock = ReadWriteLock()

    def __contains__(self, share_code: str) -> bool:
        with self._lock.read():
            return share_code in self._codes

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._codes)

    def mark(self, share_code: str) -> bool:
        """
        Mark a code as handled.

        Returns:
            True if this call marked it, False if it was already marked
        """
        if share_code in self:
            return False

        with self._lock.write():
            # Another caller may have won between the read and write lock
            if share_code in self._codes:
                return False
            if len(self._codes) >= self.limit:
                cleared = len(self._codes)
                self._codes.clear()
                print(f"🧹 Cleared {cleared} cached share codes ({self.name})")
                log_event("share_code_cache_cleared", guard=self.name, cleared=cleared)
            self._codes.add(share_code)
            return True

    def unmark(self, share_code: str) -> None:
        with self._lock.write():
            self._codes.discard(share_code)

    def clear(self) -> None:
        with self._lock.write():
            self._codes.clear()

    async def run_once(
        self,
        share_code: str,
        request: Callable[[str], Awaitable[object]],
    ) -> bool:
        """
        Issue `request(share_code)` unless the code is already marked.

        Returns:
            True if the request was issued and succeeded, False if skipped

        Raises:
            ExternalServiceError: the request failed; the code is unmarked
        """
        if not self.mark(share_code):
            print(f"ℹ️ Share code {share_code} already handled ({self.name}), skipping")
            return False

        try:
            await request(share_code)
        except BaseException:
            # Only in-flight or succeeded requests keep their code marked
            self.unmark(share_code)
            raise
        return True
