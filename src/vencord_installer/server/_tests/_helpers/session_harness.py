"""Test doubles for exercising bridge sessions without a real listener.

`FakeWebSocket` mirrors the slice of the websockets connection API consumed by
:class:`~vencord_installer.server.control.session.BridgeSession`; the stub
backend records every collaborator call (in order) and how many ran at once,
so tests can assert which mutations ran and that they never overlapped.
"""

from __future__ import annotations

import asyncio
import json
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from websockets.exceptions import ConnectionClosedOK
from websockets.protocol import State

from vencord_installer.installs import BuildError, InstallError

_SENTINEL = object()


class FakeWebSocket:
    """Minimal websocket implementation consumed by the session loop."""

    def __init__(self, *, remote_address: tuple[str, int] = ("127.0.0.1", 4242)) -> None:
        self._incoming: asyncio.Queue[Any] = asyncio.Queue()
        self.sent: list[str] = []
        self.state: State = State.OPEN
        self.remote_address = remote_address
        self.close_calls = 0
        self.fail_sends = False

    def __hash__(self) -> int:  # pragma: no cover - matches websockets protocol
        return id(self)

    def push_message(self, payload: Any) -> None:
        """Queue an inbound payload (str/bytes/dict) for the session to `recv()`."""

        if isinstance(payload, dict):
            payload = json.dumps(payload)
        self._incoming.put_nowait(payload)

    def push_close(self) -> None:
        self._incoming.put_nowait(_SENTINEL)

    async def recv(self) -> Any:
        if self.state is State.CLOSED:
            raise ConnectionClosedOK(None, None)
        payload = await self._incoming.get()
        if payload is _SENTINEL:
            self.state = State.CLOSED
            raise ConnectionClosedOK(None, None)
        return payload

    async def send(self, payload: str) -> None:
        if self.fail_sends:
            raise ConnectionClosedOK(None, None)
        self.sent.append(payload)

    async def close(self, *_: Any, **__: Any) -> None:
        self.close_calls += 1
        self.state = State.CLOSED

    def replies(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent]


class CallTracker:
    """Count collaborator calls running at the same time."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    @contextmanager
    def track(self) -> Iterator[None]:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            yield
        finally:
            with self._lock:
                self.active -= 1


@dataclass
class StubHandle:
    path: str
    branch: str = "stable"
    patched: bool = False
    loader_present: bool = False
    calls: list[tuple[str, str]] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    delay_s: float = 0.0
    tracker: CallTracker = field(default_factory=CallTracker)

    def _record(self, name: str) -> None:
        with self.tracker.track():
            if self.delay_s:
                time.sleep(self.delay_s)
            self.calls.append((name, self.path))
        message = self.errors.get(name)
        if message is not None:
            raise InstallError(message)

    def patch(self) -> None:
        self._record("patch")
        self.patched = True

    def unpatch(self) -> None:
        self._record("unpatch")
        self.patched = False

    def install_loader(self) -> None:
        self._record("install_loader")
        self.loader_present = True

    def uninstall_loader(self) -> None:
        self._record("uninstall_loader")
        self.loader_present = False


class StubBackend:
    """In-memory backend; every handle shares the backend's call log."""

    def __init__(self, handles: Optional[list[StubHandle]] = None, *, rebuild_error: Optional[str] = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self.handles: list[StubHandle] = []
        self.rebuild_error = rebuild_error
        self.discover_count = 0
        self.tracker = CallTracker()
        self._lock = threading.Lock()
        for handle in handles or []:
            self.add(handle)

    def add(self, handle: StubHandle) -> StubHandle:
        handle.calls = self.calls
        handle.tracker = self.tracker
        self.handles.append(handle)
        return handle

    def discover(self) -> list[StubHandle]:
        with self._lock:
            self.discover_count += 1
        return list(self.handles)

    def rebuild(self) -> None:
        self.calls.append(("rebuild", ""))
        if self.rebuild_error is not None:
            raise BuildError(self.rebuild_error)


__all__ = ["CallTracker", "FakeWebSocket", "StubBackend", "StubHandle"]
