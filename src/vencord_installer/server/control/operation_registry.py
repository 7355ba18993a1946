"""Registry mapping protocol operations to their handlers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from vencord_installer.protocol import Operation

if TYPE_CHECKING:  # pragma: no cover
    from vencord_installer.installs import InstallBackend

# Handlers are synchronous; the dispatcher runs them on a worker thread.
OperationHandler = Callable[["InstallBackend", Any], Any]


@dataclass(frozen=True)
class OperationRegistration:
    operation: Operation
    handler: OperationHandler


class OperationRegistry:
    def __init__(self) -> None:
        self._operations: dict[Operation, OperationRegistration] = {}

    def register(self, registration: OperationRegistration) -> None:
        operation = registration.operation
        if operation in self._operations:
            raise ValueError(f"operation '{operation.value}' already registered")
        self._operations[operation] = registration

    def get_handler(self, operation: Operation) -> OperationHandler | None:
        entry = self._operations.get(operation)
        if entry is None:
            return None
        return entry.handler

    def missing(self) -> tuple[Operation, ...]:
        return tuple(op for op in Operation if op not in self._operations)

    def ensure_complete(self) -> None:
        """Raise unless every :class:`Operation` member has a handler."""

        missing = self.missing()
        if missing:
            names = ", ".join(op.value for op in missing)
            raise RuntimeError(f"operations without handlers: {names}")

    def clear(self) -> None:
        self._operations.clear()


OPERATION_REGISTRY = OperationRegistry()


def register_operation(operation: Operation, handler: OperationHandler) -> None:
    OPERATION_REGISTRY.register(OperationRegistration(operation=operation, handler=handler))


__all__ = [
    "OPERATION_REGISTRY",
    "OperationHandler",
    "OperationRegistration",
    "OperationRegistry",
    "register_operation",
]
