"""Test doubles and polling helpers shared across the test suite."""

import asyncio
import time
from typing import Callable, List, Optional, Tuple


class FakeChannel:
    """Stands in for a WebSocket: records what the relay writes to it."""

    def __init__(self, fail_on_send: bool = False):
        self.sent: List[str] = []
        self.closed_with: Optional[Tuple[int, Optional[str]]] = None
        self.fail_on_send = fail_on_send

    async def send_text(self, data: str) -> None:
        if self.fail_on_send:
            raise RuntimeError("channel is closed")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        self.closed_with = (code, reason)

    @property
    def closed(self) -> bool:
        return self.closed_with is not None


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> None:
    """Poll until ``predicate`` holds; used where the server gives no acknowledgement."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return
        time.sleep(interval)
    raise AssertionError("condition not met before timeout")


class StalledChannel(FakeChannel):
    """A peer whose writes never complete, like a reader that stopped draining its socket."""

    def __init__(self):
        super().__init__()
        self.send_started = asyncio.Event()

    async def send_text(self, data: str) -> None:
        self.send_started.set()
        await asyncio.Event().wait()


class RecordingChannel(FakeChannel):
    """Yields mid-write and logs when each write starts and finishes."""

    def __init__(self):
        super().__init__()
        self.events: List[Tuple[str, str]] = []

    async def send_text(self, data: str) -> None:
        self.events.append(("start", data))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        self.events.append(("end", data))
        self.sent.append(data)
