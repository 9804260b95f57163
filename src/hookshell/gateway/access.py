"""Caller address filtering."""

from __future__ import annotations

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)


class AccessGuard:
    """Allows or denies callers by literal network address.

    With filtering disabled every caller is allowed. With filtering
    enabled and an empty allowlist every caller is denied.
    """

    def __init__(self, allowed: Iterable[str] = (), enabled: bool = True) -> None:
        self._allowed = frozenset(allowed)
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def allowed(self) -> frozenset[str]:
        return self._allowed

    def check(self, remote_address: str) -> bool:
        """Return True if ``remote_address`` may use the gateway.

        Raises:
            ValueError: If the address cannot be parsed.
        """
        if not self._enabled:
            return True
        host = split_host(remote_address)
        if host in self._allowed:
            return True
        logger.info("Denied access from %s", host)
        return False


def split_host(address: str) -> str:
    """Strip an optional port from a peer address.

    Accepts ``host``, ``host:port``, ``[v6]:port``, ``[v6]`` and bare IPv6.
    """
    address = address.strip()
    if not address:
        raise ValueError("empty peer address")
    if address.startswith("["):
        end = address.find("]")
        if end == -1:
            raise ValueError(f"malformed peer address {address!r}")
        return address[1:end]
    if address.count(":") == 1:
        return address.split(":", 1)[0]
    return address
