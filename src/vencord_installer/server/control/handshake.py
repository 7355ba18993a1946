"""Opening-handshake gate for the bridge endpoint.

Only the configured path is served, and only to a browser page whose
``Origin`` header equals the configured origin exactly.  The check runs
before the WebSocket upgrade, so rejected peers never get a connection.
"""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Optional
from urllib.parse import urlsplit

from vencord_installer.server.config import ServerConfig


@dataclass(frozen=True)
class HandshakeRejection:
    status: HTTPStatus
    reason: str


def check_handshake(path: str, origin: Optional[str], cfg: ServerConfig) -> Optional[HandshakeRejection]:
    """Return None to accept the upgrade, otherwise the HTTP rejection."""

    request_path = urlsplit(path or "").path
    if request_path != cfg.path:
        return HandshakeRejection(HTTPStatus.NOT_FOUND, "Not Found")
    if origin is None or origin != cfg.allowed_origin:
        return HandshakeRejection(HTTPStatus.FORBIDDEN, "Origin not allowed")
    return None


__all__ = ["HandshakeRejection", "check_handshake"]
