"""Per-connection read/dispatch/reply loop."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from websockets.exceptions import ConnectionClosed

from vencord_installer.protocol import DecodeError, Envelope, build_error, decode_envelope
from vencord_installer.server.control.dispatcher import OperationDispatcher, wait_detached
from vencord_installer.server.control.protocol_io import send_envelope
from vencord_installer.server.metrics import Metrics

logger = logging.getLogger(__name__)

INVALID_DATA = "Invalid data"
MISSING_NONCE = "Missing Nonce"


class SessionState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class BridgeSession:
    """Own one accepted connection until the peer goes away.

    Requests are handled strictly one at a time: the next frame is read only
    after the reply to the current one has been written.  After a timeout the
    next operation also waits for the timed-out worker to return, so two
    collaborator calls from one connection never overlap.
    """

    def __init__(
        self,
        ws: Any,
        dispatcher: OperationDispatcher,
        *,
        metrics: Optional[Metrics] = None,
        log_traces: bool = False,
    ) -> None:
        self.ws = ws
        self.dispatcher = dispatcher
        self.metrics = metrics
        self.state = SessionState.OPEN
        self.remote = getattr(ws, "remote_address", None)
        self._log = logger.info if log_traces else logger.debug
        self._detached: set[asyncio.Future[Any]] = set()

    async def run(self) -> None:
        self._log("session start remote=%s id=%s", self.remote, id(self.ws))
        try:
            while self.state is SessionState.OPEN:
                try:
                    raw = await self.ws.recv()
                except ConnectionClosed as exc:
                    logger.info("session closed remote=%s id=%s: %s", self.remote, id(self.ws), exc)
                    break
                except Exception:
                    logger.exception("session read failed remote=%s id=%s", self.remote, id(self.ws))
                    break
                reply = await self.handle_frame(raw)
                await send_envelope(self.ws, reply)
        finally:
            self.state = SessionState.CLOSED
            try:
                await self.ws.close()
            except Exception as exc:
                logger.debug("session close error: %s", exc)

    async def handle_frame(self, raw: str | bytes) -> Envelope:
        """Decode one inbound frame and return the reply to send."""

        if self.metrics is not None:
            self.metrics.inc("vencord_installer_requests")
        try:
            envelope = decode_envelope(raw)
        except DecodeError as exc:
            self._log("invalid frame remote=%s: %s", self.remote, exc)
            return self._protocol_error(INVALID_DATA)
        if not envelope.nonce:
            return self._protocol_error(MISSING_NONCE)

        self._log("request nonce=%r op=%s", envelope.nonce, envelope.op)
        await wait_detached(self._detached)
        reply = await self.dispatcher.dispatch(envelope, detached=self._detached)
        if reply.is_error and self.metrics is not None:
            self.metrics.inc("vencord_installer_errors")
        return reply

    def _protocol_error(self, message: str) -> Envelope:
        if self.metrics is not None:
            self.metrics.inc("vencord_installer_errors")
        return build_error("", message)


async def run_session(
    ws: Any,
    dispatcher: OperationDispatcher,
    *,
    metrics: Optional[Metrics] = None,
    log_traces: bool = False,
) -> None:
    """Run a :class:`BridgeSession` for ``ws`` to completion."""

    session = BridgeSession(ws, dispatcher, metrics=metrics, log_traces=log_traces)
    await session.run()


__all__ = [
    "BridgeSession",
    "INVALID_DATA",
    "MISSING_NONCE",
    "SessionState",
    "run_session",
]
