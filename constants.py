import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 5050))
RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Clients that don't pass ?roomId= all share this room
DEFAULT_ROOM_ID = os.getenv("DEFAULT_ROOM_ID", "default")
ROOM_QUERY_PARAM = "roomId"

NORMAL_CLOSURE_CODE = 1000
POLICY_VIOLATION_CODE = 1008
DUPLICATE_ROLE_REASON = "duplicate role in room"
# Upper bound on waiting for an evicted peer's in-flight send before giving up on its close frame
EVICTION_CLOSE_TIMEOUT = float(os.getenv("EVICTION_CLOSE_TIMEOUT", 5.0))

LOG_PREVIEW_CHARS = 200
