"""Wire dataclasses for the installer bridge protocol.

Every frame on the socket is a single JSON object::

    {"nonce": "<correlation id>", "op": "<operation or outcome>", "data": <any>}

Error replies additionally carry ``"message"``.  Requests name one of the
:class:`Operation` members; replies name one of the :class:`Outcome` members.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

NONCE_KEY = "nonce"
OP_KEY = "op"
DATA_KEY = "data"
MESSAGE_KEY = "message"


class Outcome(str, Enum):
    OK = "OK"
    ERROR = "ERROR"


class Operation(str, Enum):
    LIST_INSTALLS = "LIST_INSTALLS"
    PATCH = "PATCH"
    UNPATCH = "UNPATCH"
    REPAIR = "REPAIR"
    INSTALL_OPENASAR = "INSTALL_OPENASAR"
    UNINSTALL_OPENASAR = "UNINSTALL_OPENASAR"

    @classmethod
    def lookup(cls, name: str) -> Operation | None:
        """Return the member tagged ``name`` or None for anything else."""

        try:
            return cls(name)
        except ValueError:
            return None


# Operations whose payload is the path of a discovered install.
PATH_OPERATIONS = frozenset(
    {
        Operation.PATCH,
        Operation.UNPATCH,
        Operation.REPAIR,
        Operation.INSTALL_OPENASAR,
        Operation.UNINSTALL_OPENASAR,
    }
)


@dataclass(frozen=True, slots=True)
class Envelope:
    """One request or reply unit."""

    nonce: str
    op: str
    data: Any = None
    message: str | None = None

    @property
    def is_error(self) -> bool:
        return self.op == Outcome.ERROR.value

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            NONCE_KEY: self.nonce,
            OP_KEY: self.op,
            DATA_KEY: self.data,
        }
        if self.message is not None:
            payload[MESSAGE_KEY] = self.message
        return payload


@dataclass(frozen=True, slots=True)
class InstallRecord:
    """One ``LIST_INSTALLS`` entry.

    The installer page reads these under capitalised keys (``Branch``,
    ``Path``, ``IsPatched``, ``IsOpenAsar``), unlike the lowercase envelope keys.
    """

    path: str
    branch: str
    is_patched: bool
    is_openasar: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "Branch": self.branch,
            "Path": self.path,
            "IsPatched": bool(self.is_patched),
            "IsOpenAsar": bool(self.is_openasar),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InstallRecord:
        return cls(
            path=str(data["Path"]),
            branch=str(data["Branch"]),
            is_patched=bool(data["IsPatched"]),
            is_openasar=bool(data["IsOpenAsar"]),
        )


__all__ = [
    "DATA_KEY",
    "Envelope",
    "InstallRecord",
    "MESSAGE_KEY",
    "NONCE_KEY",
    "OP_KEY",
    "Operation",
    "Outcome",
    "PATH_OPERATIONS",
]
