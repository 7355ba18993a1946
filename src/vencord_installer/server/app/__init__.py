"""Server application entry points."""

from __future__ import annotations

__all__ = [
    "bridge_server",
]
