from datetime import datetime, timezone

from fastapi import APIRouter, Request

from logging_config import get_logger
from schemas.health import HealthResponse

logger = get_logger(__name__)

health_router = APIRouter(tags=["health"])


@health_router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Liveness check for confirming that a device can reach the relay (firewall / Wi-Fi).

    Does not touch the connection registry.
    """
    remote_ip = request.client.host if request.client else "Unknown"
    logger.debug(f"Health check from {remote_ip}")
    return HealthResponse(
        ok=True,
        serverTime=datetime.now(timezone.utc).isoformat(),
        remoteIp=remote_ip,
        note="If you can load this from the device's browser, the network path is good.",
    )
