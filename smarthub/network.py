from __future__ import annotations

import logging
import socket

logger = logging.getLogger(__name__)

LOOPBACK_MARKERS = ("127.0.0.1", "localhost", "::1")


def _is_loopback(address: str | None) -> bool:
    return not address or any(marker in address for marker in LOOPBACK_MARKERS)


def local_ipv4() -> str | None:
    """First non-loopback IPv4 address of this machine, if one can be found."""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            # No packet is sent; connecting a UDP socket only picks a route.
            s.connect(("8.8.8.8", 80))
            ip = s.getsockname()[0]
        finally:
            s.close()
    except OSError:
        ip = None

    if ip and not ip.startswith("127."):
        return ip

    try:
        for info in socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET):
            candidate = info[4][0]
            if not candidate.startswith("127."):
                return candidate
    except OSError as exc:
        logger.debug("hostname lookup failed: %s", exc)
    return None


def best_device_ip(forwarded_for: str | None, peer: str | None) -> str:
    ip = forwarded_for.split(",")[0].strip() if forwarded_for else peer
    if _is_loopback(ip):
        ip = local_ipv4() or ip
    if not ip:
        return "localhost"
    return ip.replace("::ffff:", "")
