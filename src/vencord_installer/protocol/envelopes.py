"""Reply builders for the installer bridge protocol."""

from __future__ import annotations

from typing import Any

from .messages import Envelope, Outcome


def build_reply(nonce: str, data: Any = None) -> Envelope:
    """Return an ``OK`` reply carrying ``data`` for request ``nonce``."""

    return Envelope(nonce=str(nonce), op=Outcome.OK.value, data=data)


def build_error(nonce: str, message: str) -> Envelope:
    """Return an ``ERROR`` reply with a human readable ``message``."""

    return Envelope(nonce=str(nonce), op=Outcome.ERROR.value, data=None, message=str(message))


__all__ = ["build_error", "build_reply"]
