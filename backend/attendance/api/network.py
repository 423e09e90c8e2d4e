from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from attendance.config import Settings
from attendance.deps import get_settings
from attendance.services.network import get_lan_address


router = APIRouter(tags=["config"])


class ServerConfig(BaseModel):
    ip: str
    port: int


@router.get("/config")
def server_config(settings: Settings = Depends(get_settings)) -> ServerConfig:
    # Lets the admin view build a QR code that phones on the LAN can open
    return ServerConfig(ip=get_lan_address(), port=settings.port)
