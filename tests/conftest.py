"""Pytest configuration and shared fixtures."""

from typing import Optional

import pytest

from helpers import FakeChannel
from registry import ConnectionRegistry
from relay import MessageRouter
from schemas.messages import Role


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def router(registry: ConnectionRegistry) -> MessageRouter:
    return MessageRouter(registry)


@pytest.fixture
def connect(registry: ConnectionRegistry):
    """Factory: admit a fake connection into ``room`` and optionally register ``role``."""

    async def _connect(room: str, role: Optional[Role] = None, channel: Optional[FakeChannel] = None):
        channel = channel or FakeChannel()
        session_id = await registry.admit(room, "127.0.0.1", channel)
        if role is not None:
            assert await registry.set_role(session_id, role)
        return session_id, channel

    return _connect
