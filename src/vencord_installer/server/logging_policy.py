from __future__ import annotations

"""Central debug/logging policy for the installer bridge.

All env var parsing for log toggles happens here so the session and
dispatcher code can depend on a structured policy rather than scattered
`os.getenv` calls.

``VENCORD_INSTALLER_DEBUG`` accepts:

- a boolean (``1``/``true``/``on``): enable debug mode with no extra traces;
- a comma separated flag list (``session,ops``);
- a JSON object ``{"enabled": true, "flags": ["handshake"]}`` or list.
"""

import json
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoggingToggles:
    log_session_traces: bool = False
    log_handshakes: bool = False
    log_operations: bool = False


@dataclass(frozen=True)
class DebugPolicy:
    enabled: bool
    logging: LoggingToggles


_LOG_FLAG_MAP: dict[str, Iterable[str]] = {
    "session": ("log_session_traces",),
    "handshake": ("log_handshakes",),
    "ops": ("log_operations",),
    "all": ("log_session_traces", "log_handshakes", "log_operations"),
}

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _coerce_bool(value: object, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        val = value.strip().lower()
        if val in _TRUTHY:
            return True
        if val in _FALSY:
            return False
    return default


def _split_flags(raw: object) -> set[str]:
    result: set[str] = set()
    items: Iterable[object]
    if raw is None:
        return result
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, Iterable):
        items = raw
    else:
        return result
    for item in items:
        token = str(item).strip().lower()
        if token:
            result.add(token)
    return result


def _load_debug_config(env: Mapping[str, str]) -> tuple[bool, dict[str, object]]:
    raw = env.get("VENCORD_INSTALLER_DEBUG")
    if raw is None:
        return False, {}
    raw_str = raw.strip()
    if raw_str.lower() in _FALSY:
        return False, {}
    if raw_str.lower() in _TRUTHY:
        return True, {}
    try:
        parsed = json.loads(raw_str)
        if isinstance(parsed, dict):
            enabled = _coerce_bool(parsed.get("enabled", True), True)
            return enabled, parsed
        if isinstance(parsed, (list, tuple)):
            return True, {"flags": parsed}
    except ValueError:
        logger.debug("Failed to parse VENCORD_INSTALLER_DEBUG JSON; treating as flag list", exc_info=True)
    return True, {"flags": raw_str}


def load_debug_policy(env: Optional[Mapping[str, str]] = None) -> DebugPolicy:
    env = os.environ if env is None else env
    enabled, cfg = _load_debug_config(env)

    flags = _split_flags(cfg.get("flags")) if enabled else set()

    log_kwargs = {name: False for name in LoggingToggles.__annotations__.keys()}
    for flag, attrs in _LOG_FLAG_MAP.items():
        if flag in flags:
            for attr in attrs:
                log_kwargs[attr] = True

    return DebugPolicy(enabled=enabled, logging=LoggingToggles(**log_kwargs))


__all__ = [
    "DebugPolicy",
    "LoggingToggles",
    "load_debug_policy",
]
