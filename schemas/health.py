from pydantic import BaseModel


class HealthResponse(BaseModel):
    ok: bool
    serverTime: str
    remoteIp: str
    note: str
