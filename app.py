from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from typing import Optional
from routers.health import health_router
from registry import connection_registry
from relay import message_router
from constants import DEFAULT_ROOM_ID, LOG_FILE, LOG_LEVEL, NORMAL_CLOSURE_CODE, ROOM_QUERY_PARAM
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI(title="SignalRelay")

# Configure CORS to allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)

logger.info("FastAPI application initialized")


def resolve_room_id(room_id: Optional[str]) -> str:
    room_id = (room_id or "").strip()
    return room_id or DEFAULT_ROOM_ID


async def receive_frame(websocket: WebSocket) -> Optional[str]:
    """Wait for the next frame and return it as text.

    Binary frames are decoded as UTF-8; undecodable ones yield None.
    Raises WebSocketDisconnect when the client goes away.
    """
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(code=message.get("code", NORMAL_CLOSURE_CODE), reason=message.get("reason"))

    text = message.get("text")
    if text is not None:
        return text

    data = message.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning(f"Dropping binary frame that is not valid UTF-8 ({len(data)} bytes)")
        return None


@app.get("/ws")
async def websocket_http_fallback():
    return PlainTextResponse("WebSocket endpoint", status_code=400)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, room_id: Optional[str] = Query(None, alias=ROOM_QUERY_PARAM)):
    """Signaling relay endpoint.

    Query parameters:
    - roomId: isolation domain for routing; absent or blank means the default room

    Clients announce their role with {"type": "hello", "role": "web|app|broadcast"}.
    """
    room_id = resolve_room_id(room_id)
    remote_address = websocket.client.host if websocket.client else "Unknown"

    await websocket.accept()
    session_id = await connection_registry.admit(room_id, remote_address, websocket)
    logger.info(f"Client connected: {session_id} (room={room_id}, remote={remote_address}, total={len(connection_registry)})")

    message_count = 0
    try:
        while True:
            try:
                raw = await receive_frame(websocket)
            except WebSocketDisconnect as e:
                logger.info(f"WebSocket disconnected for connection {session_id} in room {room_id} (code={e.code})")
                break
            except Exception as e:
                logger.error(f"Error receiving message from connection {session_id} in room {room_id}: {e}", exc_info=True)
                break

            if raw is None:
                continue
            message_count += 1

            try:
                await message_router.handle(session_id, room_id, raw)
            except Exception as e:
                logger.error(f"Error processing message #{message_count} from {session_id}: {e}", exc_info=True)
    finally:
        connection = await connection_registry.remove(session_id)
        # Evicted connections were already closed and dropped by the registry
        if connection is not None:
            try:
                await connection.close(NORMAL_CLOSURE_CODE, "bye")
            except Exception as e:
                logger.debug(f"Error closing WebSocket for {session_id}: {e}")
        logger.info(
            f"Client disconnected: {session_id} (room={room_id}, messages={message_count}, remaining={len(connection_registry)})"
        )
