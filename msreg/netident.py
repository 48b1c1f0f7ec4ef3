from __future__ import annotations

import socket

import psutil

from .errors import InterfaceEnumerationError, NoAddressFound

# Exact textual match only: 127.0.0.2 or fe80::/10 addresses are not filtered out.
LOOPBACK_LITERALS = frozenset({"127.0.0.1", "::1"})

_IP_FAMILIES = (socket.AF_INET, socket.AF_INET6)


def get_service_ip() -> str:
    """Return the first non-loopback IP bound to a local interface.

    Interfaces are scanned in the order the OS reports them, and each interface's
    addresses in order. Link-layer entries (MAC addresses) are skipped and an IPv6
    zone suffix (``%eth0``) is dropped.
    """
    try:
        interfaces = psutil.net_if_addrs()
    except (OSError, psutil.Error) as e:
        raise InterfaceEnumerationError(f"Cannot list network interfaces: {e}") from e

    for addrs in interfaces.values():
        for addr in addrs:
            if addr.family not in _IP_FAMILIES:
                continue
            ip = addr.address.split("%", 1)[0]
            if ip not in LOOPBACK_LITERALS:
                return ip
    raise NoAddressFound("IP not found")


def target_address(ip: str, port: int) -> str:
    """Format ip:port as Kong expects it; IPv6 literals are bracketed."""
    if ":" in ip:
        return f"[{ip}]:{port}"
    return f"{ip}:{port}"
