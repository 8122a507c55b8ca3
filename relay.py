from typing import Dict, Optional, Tuple

from constants import LOG_PREVIEW_CHARS
from logging_config import get_logger
from registry import ConnectionRegistry, connection_registry
from schemas.messages import (
    HelloMessage,
    MessageKind,
    ParsedMessage,
    RemoteControlMessage,
    Role,
    WebRtcSignal,
    parse_message,
)

logger = get_logger(__name__)

# (message kind, sender role) -> target role.
# WebRTC signaling only flows web <-> broadcast, remote control only web <-> app.
ROUTES: Dict[Tuple[MessageKind, Role], Role] = {
    (MessageKind.WEBRTC, Role.WEB): Role.BROADCAST,
    (MessageKind.WEBRTC, Role.BROADCAST): Role.WEB,
    (MessageKind.REMOTE_CONTROL, Role.WEB): Role.APP,
    (MessageKind.REMOTE_CONTROL, Role.APP): Role.WEB,
}


def resolve_target_role(kind: MessageKind, sender_role: Role) -> Optional[Role]:
    return ROUTES.get((kind, sender_role))


class MessageRouter:
    """Classifies inbound frames and either registers a role or forwards them to peers in the same room."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def handle(self, session_id: str, room_id: str, raw: str) -> int:
        """Process one frame from ``session_id``. Returns how many peers received it."""
        logger.debug(
            f"Message received from {session_id} (room={room_id}, {len(raw)} chars): {raw[:LOG_PREVIEW_CHARS]}"
        )

        message = parse_message(raw)
        if message is None:
            logger.warning(f"Dropping malformed message from {session_id} (room={room_id}): not a JSON object with a string 'type'")
            return 0

        if isinstance(message, HelloMessage):
            await self._register(session_id, room_id, message)
            # hello is never forwarded
            return 0

        self._log_payload_details(session_id, message)

        sender = await self.registry.lookup(session_id)
        sender_role = sender.role if sender else Role.UNKNOWN

        target_role = resolve_target_role(message.kind, sender_role)
        if target_role is None:
            logger.info(f"Not forwarding message type '{message.type}' from role '{sender_role.value}' (session={session_id})")
            return 0

        return await self._forward(session_id, room_id, sender_role, target_role, message.type, raw)

    async def _register(self, session_id: str, room_id: str, message: HelloMessage) -> None:
        role = message.requested_role
        if role is None:
            logger.warning(f"Invalid role in hello from {session_id}: {message.role!r}. Expected web|app|broadcast")
            return
        await self.registry.set_role(session_id, role)

    async def _forward(
        self,
        session_id: str,
        room_id: str,
        sender_role: Role,
        target_role: Role,
        message_type: str,
        raw: str,
    ) -> int:
        peers = await self.registry.matching_peers(room_id, target_role, exclude_session_id=session_id)

        forwarded_count = 0
        for peer in peers:
            try:
                delivered = await peer.send(raw)
            except Exception as e:
                logger.warning(f"Failed to forward {message_type} from {session_id} to {peer.session_id}: {e}")
                continue
            if delivered:
                forwarded_count += 1
                logger.debug(
                    f"Forwarded {message_type} from {session_id}({sender_role.value}) to "
                    f"{peer.session_id}({target_role.value}) (room={room_id})"
                )

        if forwarded_count == 0:
            logger.warning(
                f"No '{target_role.value}' peer in room {room_id} to forward {message_type} to "
                f"(connections: {len(self.registry)})"
            )
            for entry in self.registry.snapshot(room_id):
                logger.debug(f"   - {entry['session_id']}: role={entry['role']} open={entry['is_open']} remote={entry['remote_address']}")

        return forwarded_count

    @staticmethod
    def _log_payload_details(session_id: str, message: ParsedMessage) -> None:
        if isinstance(message, WebRtcSignal):
            if message.sdp is not None:
                logger.debug(f"{message.type} from {session_id}: SDP length {len(message.sdp)}, video={message.has_video}")
            if message.has_candidate:
                logger.debug(f"{message.type} from {session_id}: ICE candidate present")
        elif isinstance(message, RemoteControlMessage):
            if message.has_input:
                logger.debug(f"Remote input payload present from {session_id}")
            if message.has_command:
                logger.debug(f"Remote command payload present from {session_id}")
            if message.has_diagnostics:
                logger.debug(f"Diagnostics payload present from {session_id}")


message_router = MessageRouter(connection_registry)
