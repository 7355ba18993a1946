"""Download the Vencord build artifacts that a patched install loads."""

from __future__ import annotations

import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Mapping, Optional, Protocol

import requests

from .errors import BuildError

logger = logging.getLogger(__name__)

DEFAULT_RELEASE_URL = "https://github.com/Vendicated/Vencord/releases/download/devbuild"
VENCORD_FILES = ("patcher.js", "preload.js", "renderer.js", "renderer.css")
PATCHER_FILE = "patcher.js"


class Fetcher(Protocol):
    def fetch(self, url: str) -> bytes: ...


def default_files_dir(
    env: Optional[Mapping[str, str]] = None,
    *,
    platform: Optional[str] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return the directory the Vencord builds are installed into."""

    env = os.environ if env is None else env
    platform = platform or sys.platform
    home = home or Path.home()

    override = env.get("VENCORD_USER_DATA_DIR")
    if override:
        return Path(override).expanduser() / "dist"

    if platform.startswith("win"):
        base = Path(env.get("APPDATA") or home / "AppData" / "Roaming")
    elif platform == "darwin":
        base = home / "Library" / "Application Support"
    else:
        base = Path(env.get("XDG_CONFIG_HOME") or home / ".config")
    return base / "Vencord" / "dist"


def write_atomic(target: Path, data: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def install_latest_builds(
    files_dir: Path,
    *,
    fetcher: Fetcher,
    release_url: str = DEFAULT_RELEASE_URL,
) -> None:
    """Fetch every file of the latest build into ``files_dir``.

    Each file is written atomically, so an interrupted download leaves the
    previous copy in place.  The first failure aborts the whole run with a
    :class:`BuildError`.
    """

    try:
        files_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"Failed to create {files_dir}: {exc}") from exc

    base = release_url.rstrip("/")
    for name in VENCORD_FILES:
        url = f"{base}/{name}"
        try:
            data = fetcher.fetch(url)
        except requests.RequestException as exc:
            raise BuildError(f"Failed to download {name}: {exc}") from exc
        try:
            write_atomic(files_dir / name, data)
        except OSError as exc:
            raise BuildError(f"Failed to write {name}: {exc}") from exc
        logger.info("installed %s (%d bytes) into %s", name, len(data), files_dir)


def builds_present(files_dir: Path) -> bool:
    return (files_dir / PATCHER_FILE).is_file()


__all__ = [
    "DEFAULT_RELEASE_URL",
    "PATCHER_FILE",
    "VENCORD_FILES",
    "builds_present",
    "default_files_dir",
    "install_latest_builds",
    "write_atomic",
]
