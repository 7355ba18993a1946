"""Operation handlers for the bridge protocol.

Each handler receives the collaborator backend and the raw request payload
and returns the reply data.  Handlers are synchronous: the dispatcher moves
them off the event loop.  Protocol violations and lookups that fail raise
:class:`OperationRejected`; collaborator failures propagate as
:class:`~vencord_installer.installs.InstallerError`.
"""

from __future__ import annotations

import logging
from typing import Any

from vencord_installer.installs import InstallBackend, InstallHandle
from vencord_installer.protocol import InstallRecord, Operation
from vencord_installer.server.control.operation_registry import (
    OPERATION_REGISTRY,
    register_operation,
)

logger = logging.getLogger(__name__)

EXPECTED_STRING = "Expected data to be string"


class OperationRejected(RuntimeError):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = str(message)


def _require_path(data: Any) -> str:
    if not isinstance(data, str):
        raise OperationRejected(EXPECTED_STRING)
    return data


def resolve_install(backend: InstallBackend, path: str) -> InstallHandle:
    """Re-run discovery and return the first install whose path equals ``path``."""

    for handle in backend.discover():
        if handle.path == path:
            return handle
    raise OperationRejected(f"No such Discord install: {path}")


def _op_list_installs(backend: InstallBackend, data: Any) -> list[dict[str, Any]]:
    return [
        InstallRecord(
            path=handle.path,
            branch=handle.branch,
            is_patched=handle.patched,
            is_openasar=handle.loader_present,
        ).to_dict()
        for handle in backend.discover()
    ]


def _op_patch(backend: InstallBackend, data: Any) -> None:
    resolve_install(backend, _require_path(data)).patch()


def _op_unpatch(backend: InstallBackend, data: Any) -> None:
    resolve_install(backend, _require_path(data)).unpatch()


def _op_repair(backend: InstallBackend, data: Any) -> None:
    handle = resolve_install(backend, _require_path(data))
    backend.rebuild()
    handle.patch()


def _op_install_openasar(backend: InstallBackend, data: Any) -> None:
    resolve_install(backend, _require_path(data)).install_loader()


def _op_uninstall_openasar(backend: InstallBackend, data: Any) -> None:
    resolve_install(backend, _require_path(data)).uninstall_loader()


register_operation(Operation.LIST_INSTALLS, _op_list_installs)
register_operation(Operation.PATCH, _op_patch)
register_operation(Operation.UNPATCH, _op_unpatch)
register_operation(Operation.REPAIR, _op_repair)
register_operation(Operation.INSTALL_OPENASAR, _op_install_openasar)
register_operation(Operation.UNINSTALL_OPENASAR, _op_uninstall_openasar)

OPERATION_REGISTRY.ensure_complete()


__all__ = [
    "EXPECTED_STRING",
    "OperationRejected",
    "resolve_install",
]
