"""Centralized server configuration.

Typed configuration objects plus a loader that reads the environment once.
The resolved :class:`ServerCtx` is built at startup and passed down; nothing
below the entry point calls ``os.getenv`` for server settings.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional

from vencord_installer.installs import (
    DEFAULT_OPENASAR_URL,
    DEFAULT_RELEASE_URL,
    default_files_dir,
)
from vencord_installer.server.logging_policy import DebugPolicy, load_debug_policy

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 18281
DEFAULT_PATH = "/launch"
DEFAULT_ORIGIN = "https://vencord.dev"


# ---- Helpers -----------------------------------------------------------------

def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    v = env.get(name)
    if v is None:
        return int(default)
    try:
        return int(v)
    except ValueError:
        return int(default)


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    v = env.get(name)
    if v is None:
        return float(default)
    try:
        return float(v)
    except ValueError:
        return float(default)


def _env_str(env: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    v = env.get(name)
    if v is None:
        return default
    v = v.strip()
    return v if v != "" else default


# ---- Config objects ----------------------------------------------------------

@dataclass(frozen=True)
class ServerConfig:
    """Listener and handshake settings."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    path: str = DEFAULT_PATH
    allowed_origin: str = DEFAULT_ORIGIN
    op_timeout_s: float = 0.0  # 0 disables the per-operation timeout


@dataclass(frozen=True)
class InstallerConfig:
    """Where builds live, where installs are searched, and where downloads come from."""

    files_dir: Path = field(default_factory=default_files_dir)
    search_paths: Optional[tuple[Path, ...]] = None
    release_url: str = DEFAULT_RELEASE_URL
    openasar_url: str = DEFAULT_OPENASAR_URL
    http_timeout_s: float = 30.0


@dataclass(frozen=True)
class ServerCtx:
    """Resolved runtime context shared across subsystems."""

    cfg: ServerConfig = field(default_factory=ServerConfig)
    installer: InstallerConfig = field(default_factory=InstallerConfig)
    debug_policy: DebugPolicy = field(default_factory=lambda: load_debug_policy({}))

    def with_overrides(
        self,
        *,
        host: Optional[str] = None,
        port: Optional[int] = None,
        allowed_origin: Optional[str] = None,
        op_timeout_s: Optional[float] = None,
    ) -> ServerCtx:
        """Return a copy with CLI-provided values applied on top."""

        changes: dict[str, object] = {}
        if host is not None:
            changes["host"] = str(host)
        if port is not None:
            changes["port"] = int(port)
        if allowed_origin is not None:
            changes["allowed_origin"] = str(allowed_origin)
        if op_timeout_s is not None:
            changes["op_timeout_s"] = max(0.0, float(op_timeout_s))
        if not changes:
            return self
        return replace(self, cfg=replace(self.cfg, **changes))


def load_server_config(env: Mapping[str, str]) -> ServerConfig:
    port = _env_int(env, "VENCORD_INSTALLER_PORT", DEFAULT_PORT)
    if not 0 <= port <= 65535:
        logger.warning("VENCORD_INSTALLER_PORT=%s out of range; using %d", port, DEFAULT_PORT)
        port = DEFAULT_PORT
    return ServerConfig(
        host=_env_str(env, "VENCORD_INSTALLER_HOST", DEFAULT_HOST) or DEFAULT_HOST,
        port=port,
        path=DEFAULT_PATH,
        allowed_origin=_env_str(env, "VENCORD_INSTALLER_ORIGIN", DEFAULT_ORIGIN) or DEFAULT_ORIGIN,
        op_timeout_s=max(0.0, _env_float(env, "VENCORD_INSTALLER_OP_TIMEOUT", 0.0)),
    )


def load_installer_config(env: Mapping[str, str]) -> InstallerConfig:
    raw_paths = _env_str(env, "VENCORD_INSTALLER_SEARCH_PATHS")
    search_paths: Optional[tuple[Path, ...]] = None
    if raw_paths:
        search_paths = tuple(
            Path(item.strip()).expanduser() for item in raw_paths.split(os.pathsep) if item.strip()
        )
    return InstallerConfig(
        files_dir=default_files_dir(env),
        search_paths=search_paths,
        release_url=_env_str(env, "VENCORD_INSTALLER_RELEASE_URL", DEFAULT_RELEASE_URL) or DEFAULT_RELEASE_URL,
        openasar_url=_env_str(env, "VENCORD_INSTALLER_OPENASAR_URL", DEFAULT_OPENASAR_URL) or DEFAULT_OPENASAR_URL,
        http_timeout_s=max(1.0, _env_float(env, "VENCORD_INSTALLER_HTTP_TIMEOUT", 30.0)),
    )


def load_server_ctx(env: Optional[Mapping[str, str]] = None) -> ServerCtx:
    """Build a `ServerCtx` by reading environment once.

    Note: This does not mutate the process environment and is side-effect free.
    """
    env = os.environ if env is None else env
    return ServerCtx(
        cfg=load_server_config(env),
        installer=load_installer_config(env),
        debug_policy=load_debug_policy(env),
    )


__all__ = [
    "DEFAULT_ORIGIN",
    "DEFAULT_PATH",
    "DEFAULT_PORT",
    "InstallerConfig",
    "ServerConfig",
    "ServerCtx",
    "load_installer_config",
    "load_server_config",
    "load_server_ctx",
]
