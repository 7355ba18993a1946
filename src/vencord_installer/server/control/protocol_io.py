"""Protocol I/O helpers for bridge sessions.

Thin wrappers around envelope serialisation and websocket sends. Keeping them
here avoids repeating boilerplate and makes it easy to mock in tests.
"""

from __future__ import annotations

import logging
from typing import Any

from vencord_installer.protocol import EncodeError, Envelope, encode_envelope
from vencord_installer.server.util.websocket import safe_send

logger = logging.getLogger(__name__)


async def send_text(ws: Any, text: str) -> bool:
    """Send raw text to the websocket, returning True on success."""

    return await safe_send(ws, text)


async def send_envelope(ws: Any, envelope: Envelope) -> bool:
    """Serialise ``envelope`` and send it; unserialisable replies are dropped."""

    try:
        text = encode_envelope(envelope)
    except EncodeError:
        logger.error(
            "Failed to encode reply nonce=%r op=%s; reply skipped",
            envelope.nonce,
            envelope.op,
            exc_info=True,
        )
        return False
    return await send_text(ws, text)


__all__ = ["send_envelope", "send_text"]
