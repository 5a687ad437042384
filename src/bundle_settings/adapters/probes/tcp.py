"""TCP reachability probe for mirrors with a fallback timeout.

Implements :class:`bundle_settings.application.ports.MirrorProbe`: a mirror is
usable when any of its resolved addresses accepts a TCP connection within the
mirror's ``fallback_timeout``.
"""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from ...observability import log_debug

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ...domain.mirror import Mirror

_DEFAULT_PORTS = {"http": 80, "https": 443}


class TCPSocketProbe:
    """Open a TCP connection to the mirror host to decide whether it replies."""

    def __init__(self, *, connect=socket.create_connection) -> None:
        self._connect = connect

    def replies(self, mirror: "Mirror") -> bool:
        if mirror.uri is None:
            return False
        parts = urlsplit(mirror.uri)
        host = parts.hostname
        if host is None:
            return False
        port = parts.port or _DEFAULT_PORTS.get(parts.scheme.lower(), 80)
        try:
            connection = self._connect((host, port), timeout=mirror.fallback_timeout)
        except OSError as exc:
            log_debug("mirror_unreachable", layer="mirror", path=None, uri=mirror.uri, error=str(exc))
            return False
        connection.close()
        return True
