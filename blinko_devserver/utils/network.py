"""Network address discovery for the connection instructions."""
from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Iterable, List

LOGGER = logging.getLogger(__name__)

LAN_PREFIXES = ("192.168.", "10.")


def candidate_addresses() -> List[str]:
    """Return the IPv4 addresses this host is known by, in discovery order."""

    addresses: List[str] = []

    # Route lookup only; connecting a UDP socket sends no packets.
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        probe.connect(("10.255.255.255", 1))
        addresses.append(probe.getsockname()[0])
    except OSError:
        LOGGER.debug("Default route lookup failed", exc_info=True)
    finally:
        probe.close()

    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError:
        LOGGER.debug("Hostname resolution failed", exc_info=True)
        infos = []
    for info in infos:
        address = info[4][0]
        if address not in addresses:
            addresses.append(address)
    return addresses


def pick_lan_address(addresses: Iterable[str]) -> str:
    """Return the first private LAN IPv4 address, or ``"localhost"``."""

    for address in addresses:
        try:
            parsed = ipaddress.ip_address(address)
        except ValueError:
            continue
        if parsed.version != 4 or parsed.is_loopback:
            continue
        if address.startswith(LAN_PREFIXES):
            return address
    return "localhost"


def local_ip() -> str:
    return pick_lan_address(candidate_addresses())


__all__ = ["candidate_addresses", "local_ip", "pick_lan_address"]
