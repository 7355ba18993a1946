"""Resolve a decoded request to its handler and build the reply."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

from vencord_installer.installs import InstallBackend, InstallerError
from vencord_installer.protocol import Envelope, Operation, build_error, build_reply
from vencord_installer.server.control.operation_registry import (
    OPERATION_REGISTRY,
    OperationHandler,
    OperationRegistry,
)
from vencord_installer.server.control.operations import OperationRejected
from vencord_installer.server.metrics import Metrics

logger = logging.getLogger(__name__)


class OperationTimedOut(RuntimeError):
    def __init__(self, message: str, worker: asyncio.Future[Any]) -> None:
        super().__init__(message)
        self.worker = worker


def unknown_operation_message(op: str) -> str:
    return f"Unknown OP '{op}'"


class OperationDispatcher:
    """Run one request against the collaborator backend.

    ``dispatch`` never raises for request-level problems: every outcome,
    including collaborator failures and timeouts, becomes a reply envelope
    carrying the request's nonce.

    A timed-out worker thread cannot be interrupted.  Its task is handed to
    the caller through ``detached`` so the owning session can hold back its
    next operation until the worker has really finished.
    """

    def __init__(
        self,
        backend: InstallBackend,
        *,
        registry: OperationRegistry = OPERATION_REGISTRY,
        timeout_s: float = 0.0,
        metrics: Optional[Metrics] = None,
        log_operations: bool = False,
    ) -> None:
        self.backend = backend
        self.registry = registry
        self.timeout_s = max(0.0, float(timeout_s))
        self.metrics = metrics
        self._log = logger.info if log_operations else logger.debug

    async def dispatch(
        self,
        envelope: Envelope,
        *,
        detached: Optional[set[asyncio.Future[Any]]] = None,
    ) -> Envelope:
        nonce = envelope.nonce
        operation = Operation.lookup(envelope.op)
        handler = self.registry.get_handler(operation) if operation is not None else None
        if operation is None or handler is None:
            return build_error(nonce, unknown_operation_message(envelope.op))

        self._log("operation start op=%s nonce=%r", operation.value, nonce)
        started = time.perf_counter()
        ok = False
        try:
            result = await self._run(operation, handler, envelope.data)
        except OperationRejected as exc:
            reply = build_error(nonce, exc.message)
        except InstallerError as exc:
            logger.warning("%s failed: %s", operation.value, exc)
            reply = build_error(nonce, str(exc))
        except OperationTimedOut as exc:
            logger.warning("%s", exc)
            _watch_late_worker(operation, exc.worker)
            if detached is not None:
                detached.add(exc.worker)
            reply = build_error(nonce, str(exc))
        except Exception as exc:
            logger.exception("operation handler failed op=%s", operation.value)
            reply = build_error(nonce, str(exc) or type(exc).__name__)
        else:
            ok = True
            reply = build_reply(nonce, result)

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        self._log("operation end op=%s nonce=%r ok=%s %.1fms", operation.value, nonce, ok, elapsed_ms)
        if self.metrics is not None:
            self.metrics.observe_ms("vencord_installer_op_ms", elapsed_ms)
            if not ok:
                self.metrics.inc("vencord_installer_op_errors")
        return reply

    async def _run(self, operation: Operation, handler: OperationHandler, data: Any) -> Any:
        future = asyncio.ensure_future(asyncio.to_thread(handler, self.backend, data))
        if self.timeout_s <= 0.0:
            return await future
        done, _ = await asyncio.wait({future}, timeout=self.timeout_s)
        if not done:
            # Left uncancelled: the task only completes once the thread returns.
            raise OperationTimedOut(
                f"Operation '{operation.value}' timed out after {self.timeout_s:g}s",
                future,
            )
        return future.result()


def _watch_late_worker(operation: Operation, worker: asyncio.Future[Any]) -> None:
    def _finished(fut: asyncio.Future[Any]) -> None:
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            logger.warning("timed-out %s finished with error: %s", operation.value, exc)
        else:
            logger.info("timed-out %s finished late", operation.value)

    worker.add_done_callback(_finished)


async def wait_detached(detached: set[asyncio.Future[Any]]) -> None:
    """Block until every detached worker in ``detached`` has finished."""

    if not detached:
        return
    logger.debug("waiting for %d timed-out worker(s)", len(detached))
    await asyncio.wait(set(detached))
    detached.clear()


__all__ = [
    "OperationDispatcher",
    "OperationTimedOut",
    "unknown_operation_message",
    "wait_detached",
]
