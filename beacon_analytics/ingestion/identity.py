"""
Client Identity Anonymization

Raw client addresses are reduced to a salted SHA-256 digest before anything
is persisted. The digest is stable across restarts for a given salt, so
operators can count distinct sources without ever holding the address.
"""

import hashlib
from typing import Collection, Mapping, Optional

UNKNOWN_SOURCE = "unknown"


def hash_ip(raw_ip: Optional[str], salt: str) -> str:
    """
    One-way hash of a client address.

    Args:
        raw_ip: Client address as received (may be empty)
        salt: Process-wide salt from configuration

    Returns:
        64-character hex digest
    """
    source = raw_ip or UNKNOWN_SOURCE
    return hashlib.sha256((source + salt).encode("utf-8")).hexdigest()


def client_address(
    headers: Mapping[str, str],
    peer: Optional[str] = None,
    trusted_proxies: Optional[Collection[str]] = None,
) -> str:
    """
    Resolve the originating client address of a request.

    Prefers the first hop of ``X-Forwarded-For``, then ``X-Real-IP``, then the
    socket peer. When ``trusted_proxies`` is given, the forwarding headers are
    only honoured if the peer is one of them (or the collection holds ``"*"``);
    any other peer is taken as the client itself.
    """
    if trusted_proxies is not None and "*" not in trusted_proxies and peer not in trusted_proxies:
        return peer or UNKNOWN_SOURCE

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    return peer or UNKNOWN_SOURCE
