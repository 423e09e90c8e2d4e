from __future__ import annotations

import ipaddress
import logging
import socket
from contextlib import closing
from typing import Optional

logger = logging.getLogger("attendance.network")

FALLBACK_HOST = "localhost"


def _usable(address: Optional[str]) -> bool:
    if not address:
        return False
    try:
        ip = ipaddress.IPv4Address(address)
    except ipaddress.AddressValueError:
        return False
    return not (ip.is_loopback or ip.is_unspecified or ip.is_link_local)


def _outbound_address() -> Optional[str]:
    # connect() on UDP sends nothing; it only selects the route and source address
    try:
        with closing(socket.socket(socket.AF_INET, socket.SOCK_DGRAM)) as s:
            s.connect(("10.255.255.255", 1))
            return s.getsockname()[0]
    except OSError:
        return None


def _hostname_addresses() -> list[str]:
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError:
        return []
    return [info[4][0] for info in infos]


def get_lan_address() -> str:
    """Best-effort non-loopback IPv4 address of this host, else ``localhost``.

    Used to build join links that attendees' phones on the same network can reach.
    """
    candidate = _outbound_address()
    if _usable(candidate):
        return candidate  # type: ignore[return-value]
    for address in _hostname_addresses():
        if _usable(address):
            return address
    logger.info("No LAN IPv4 address found; falling back to %s", FALLBACK_HOST)
    return FALLBACK_HOST
