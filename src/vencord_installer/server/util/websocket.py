"""Reply writes for bridge sessions."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


async def safe_send(ws: Any, data: Any) -> bool:
    """Write one reply frame to the installer page.

    A failed write means the page went away mid-reply.  The connection is
    closed so the session's next ``recv`` observes it and the loop ends;
    the caller only learns the outcome through the boolean result.
    """

    try:
        await ws.send(data)
    except Exception as exc:
        logger.info("reply write failed remote=%s: %s", getattr(ws, "remote_address", None), exc)
        try:
            await ws.close()
        except Exception:
            logger.debug("close after failed reply write also failed", exc_info=True)
        return False
    return True


__all__ = ["safe_send"]
