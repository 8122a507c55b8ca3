import asyncio
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from constants import DUPLICATE_ROLE_REASON, EVICTION_CLOSE_TIMEOUT, POLICY_VIOLATION_CODE
from logging_config import get_logger
from schemas.messages import Role

logger = get_logger(__name__)


class Connection:
    """One accepted WebSocket, tagged with its room and role.

    The channel is only ever written through ``send`` and ``close``, both of
    which hold ``send_lock`` so a peer never sees interleaved writes and nothing
    is written after the close.
    """

    def __init__(self, session_id: str, room_id: str, remote_address: str, channel: Any):
        self.session_id = session_id
        self.room_id = room_id
        self.remote_address = remote_address
        self.channel = channel
        self.role = Role.UNKNOWN
        self.connected_at = datetime.now().isoformat()
        self.is_open = True
        self.send_lock = asyncio.Lock()
        self._close_sent = False

    async def send(self, payload: str) -> bool:
        async with self.send_lock:
            if not self.is_open:
                return False
            await self.channel.send_text(payload)
            return True

    async def close(self, code: int, reason: str) -> None:
        async with self.send_lock:
            self.is_open = False
            if self._close_sent:
                return
            self._close_sent = True
            await self.channel.close(code=code, reason=reason)

    def mark_closed(self) -> None:
        self.is_open = False

    def describe(self) -> dict:
        return {
            "session_id": self.session_id,
            "room_id": self.room_id,
            "role": self.role.value,
            "is_open": self.is_open,
            "remote_address": self.remote_address,
            "connected_at": self.connected_at,
        }

    def __repr__(self) -> str:
        return f"Connection({self.session_id}, room={self.room_id}, role={self.role.value})"


class ConnectionRegistry:
    """Table of live connections keyed by session id.

    Every mutation and every lookup used for routing runs under one lock.
    """

    def __init__(self, eviction_close_timeout: float = EVICTION_CLOSE_TIMEOUT):
        self._connections: Dict[str, Connection] = {}
        self._lock = asyncio.Lock()
        self.eviction_close_timeout = eviction_close_timeout

    def __len__(self) -> int:
        return len(self._connections)

    async def admit(self, room_id: str, remote_address: str, channel: Any) -> str:
        session_id = str(uuid.uuid4())
        connection = Connection(session_id, room_id, remote_address, channel)
        async with self._lock:
            self._connections[session_id] = connection
            total = len(self._connections)
        logger.info(f"Admitted connection {session_id} to room {room_id} from {remote_address} (total: {total})")
        return session_id

    async def set_role(self, session_id: str, role: Role) -> bool:
        """Record ``role`` for a session, evicting whoever held it in the same room.

        The previous holder is dropped from the table and stops receiving
        forwards before the new role is recorded. Its channel is closed after
        the lock is released, so a peer stuck mid-send cannot stall the table.

        Returns True when the session ends up holding ``role``.
        """
        if role == Role.UNKNOWN:
            raise ValueError("Cannot register role 'unknown'")

        evicted: List[Connection] = []
        async with self._lock:
            connection = self._connections.get(session_id)
            if connection is None:
                logger.warning(f"Ignoring role '{role.value}' for {session_id}: connection no longer registered")
                return False

            if connection.role != Role.UNKNOWN:
                if connection.role == role:
                    logger.debug(f"Connection {session_id} already holds role '{role.value}'")
                    return True
                logger.warning(
                    f"Ignoring role '{role.value}' for {session_id}: already registered as '{connection.role.value}'"
                )
                return False

            for other_id, other in list(self._connections.items()):
                if other_id == session_id:
                    continue
                if other.room_id == connection.room_id and other.role == role and other.is_open:
                    logger.warning(
                        f"Replacing existing role '{role.value}' in room '{connection.room_id}'. Old session: {other_id}"
                    )
                    self._connections.pop(other_id, None)
                    other.mark_closed()
                    evicted.append(other)

            connection.role = role
        logger.info(f"Role registered: {role.value} (room={connection.room_id}, session={session_id})")

        for other in evicted:
            await self._close_evicted(other)
        return True

    async def _close_evicted(self, connection: Connection) -> None:
        try:
            await asyncio.wait_for(
                connection.close(POLICY_VIOLATION_CODE, DUPLICATE_ROLE_REASON),
                timeout=self.eviction_close_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Timed out closing evicted connection {connection.session_id} after {self.eviction_close_timeout}s"
            )
        except Exception as e:
            logger.debug(f"Error closing evicted connection {connection.session_id}: {e}")

    async def lookup(self, session_id: str) -> Optional[Connection]:
        async with self._lock:
            return self._connections.get(session_id)

    async def remove(self, session_id: str) -> Optional[Connection]:
        async with self._lock:
            connection = self._connections.pop(session_id, None)
            remaining = len(self._connections)
        if connection is None:
            return None
        connection.mark_closed()
        logger.info(f"Removed connection {session_id} from room {connection.room_id} (remaining: {remaining})")
        return connection

    async def matching_peers(self, room_id: str, role: Role, exclude_session_id: str) -> List[Connection]:
        async with self._lock:
            return [
                connection
                for connection in self._connections.values()
                if connection.session_id != exclude_session_id
                and connection.room_id == room_id
                and connection.role == role
                and connection.is_open
            ]

    def snapshot(self, room_id: Optional[str] = None) -> List[dict]:
        """Point-in-time view of the table for diagnostics. Not for routing decisions."""
        connections = list(self._connections.values())
        return [c.describe() for c in connections if room_id is None or c.room_id == room_id]


connection_registry = ConnectionRegistry()
