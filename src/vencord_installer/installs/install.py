"""Operations on one discovered Discord installation.

Patching renames ``resources/app.asar`` to ``resources/_app.asar`` and drops a
tiny ``resources/app`` package next to it whose entry point requires the
downloaded Vencord ``patcher.js``.  Electron falls back to ``resources/app``
when ``app.asar`` is absent; the patcher then loads ``_app.asar`` itself.
The new ``app`` package is staged beside the live one and swapped in last; if
any step fails, the completed ones are undone before the error is raised.

OpenAsar replaces the original asar (``_app.asar`` when patched, ``app.asar``
otherwise) and keeps a ``.original`` copy so it can be removed again.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import requests

from .builds import PATCHER_FILE, Fetcher, write_atomic
from .errors import InstallError

logger = logging.getLogger(__name__)

DEFAULT_OPENASAR_URL = "https://github.com/GooseMod/OpenAsar/releases/download/nightly/app.asar"

APP_ASAR = "app.asar"
BACKUP_ASAR = "_app.asar"
APP_DIR = "app"
ORIGINAL_SUFFIX = ".original"
_OPENASAR_MARKER = b"openasar"
_SCAN_CHUNK = 1 << 20
_STAGING_SUFFIX = ".vencord-new"
_RETIRED_SUFFIX = ".vencord-old"


def is_patched(resources: Path) -> bool:
    return (resources / BACKUP_ASAR).exists()


def original_asar(resources: Path) -> Path:
    """Return the asar that Discord itself loads (before any Vencord patch)."""

    if is_patched(resources):
        return resources / BACKUP_ASAR
    return resources / APP_ASAR


def contains_openasar(asar: Path) -> bool:
    """Return True when ``asar`` carries the OpenAsar marker."""

    if not asar.is_file():
        return False
    overlap = len(_OPENASAR_MARKER) - 1
    tail = b""
    try:
        with asar.open("rb") as handle:
            while True:
                chunk = handle.read(_SCAN_CHUNK)
                if not chunk:
                    return False
                window = (tail + chunk).lower()
                if _OPENASAR_MARKER in window:
                    return True
                tail = window[-overlap:]
    except OSError:
        logger.debug("failed to scan %s for OpenAsar", asar, exc_info=True)
        return False


def _discard(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif os.path.lexists(path):
        path.unlink()


def _write_loader(target: Path, patcher: Path) -> None:
    """Write the ``resources/app`` package that loads ``patcher`` into ``target``."""

    target.mkdir()
    (target / "index.js").write_text(
        f"require({json.dumps(str(patcher))});\n",
        encoding="utf-8",
    )
    (target / "package.json").write_text(
        json.dumps({"name": "discord", "main": "index.js"}) + "\n",
        encoding="utf-8",
    )


@dataclass
class DiscordInstall:
    """Handle for one Discord install, snapshotted at discovery time."""

    path: str
    branch: str
    resources: Path
    files_dir: Path
    fetcher: Fetcher
    openasar_url: str = DEFAULT_OPENASAR_URL
    patched: bool = field(init=False)
    loader_present: bool = field(init=False)

    def __post_init__(self) -> None:
        self.refresh()

    def refresh(self) -> None:
        self.patched = is_patched(self.resources)
        self.loader_present = contains_openasar(original_asar(self.resources))

    # --- Vencord patch --------------------------------------------------------
    def patch(self) -> None:
        """Install the Vencord loader; on failure the install is left as it was."""

        patcher = self.files_dir / PATCHER_FILE
        if not patcher.is_file():
            raise InstallError("Vencord files are missing. Run REPAIR first.")

        app_asar = self.resources / APP_ASAR
        backup = self.resources / BACKUP_ASAR
        app_dir = self.resources / APP_DIR
        staging = self.resources / (APP_DIR + _STAGING_SUFFIX)
        retired = self.resources / (APP_DIR + _RETIRED_SUFFIX)
        was_patched = is_patched(self.resources)
        if not was_patched and not app_asar.is_file():
            raise InstallError(f"{app_asar} does not exist")

        logger.info("patching %s", self.path)
        undo: list[Callable[[], object]] = [lambda: _discard(staging)]
        try:
            _discard(staging)
            _discard(retired)
            _write_loader(staging, patcher)
            if not was_patched:
                os.replace(app_asar, backup)
                undo.append(lambda: os.replace(backup, app_asar))
            if os.path.lexists(app_dir):
                os.replace(app_dir, retired)
                undo.append(lambda: os.replace(retired, app_dir))
            os.replace(staging, app_dir)
        except OSError as exc:
            self._roll_back(undo)
            raise InstallError(f"Failed to patch {self.path}: {exc}") from exc
        finally:
            self.refresh()
        self._discard_quietly(retired)

    def unpatch(self) -> None:
        if not is_patched(self.resources):
            raise InstallError(f"{self.path} is not patched")

        app_dir = self.resources / APP_DIR
        retired = self.resources / (APP_DIR + _RETIRED_SUFFIX)
        logger.info("unpatching %s", self.path)
        undo: list[Callable[[], object]] = []
        try:
            _discard(retired)
            if os.path.lexists(app_dir):
                os.replace(app_dir, retired)
                undo.append(lambda: os.replace(retired, app_dir))
            os.replace(self.resources / BACKUP_ASAR, self.resources / APP_ASAR)
        except OSError as exc:
            self._roll_back(undo)
            raise InstallError(f"Failed to unpatch {self.path}: {exc}") from exc
        finally:
            self.refresh()
        self._discard_quietly(retired)

    def _roll_back(self, undo: list[Callable[[], object]]) -> None:
        for step in reversed(undo):
            try:
                step()
            except OSError:
                logger.error("rollback step failed for %s", self.path, exc_info=True)

    def _discard_quietly(self, path: Path) -> None:
        try:
            _discard(path)
        except OSError:
            logger.warning("could not remove %s", path, exc_info=True)

    # --- OpenAsar loader ------------------------------------------------------
    def install_loader(self) -> None:
        asar = original_asar(self.resources)
        if contains_openasar(asar):
            raise InstallError("OpenAsar is already installed")

        logger.info("installing OpenAsar into %s", self.path)
        try:
            data = self.fetcher.fetch(self.openasar_url)
        except requests.RequestException as exc:
            raise InstallError(f"Failed to download OpenAsar: {exc}") from exc

        backup = asar.with_name(asar.name + ORIGINAL_SUFFIX)
        try:
            shutil.copy2(asar, backup)
            write_atomic(asar, data)
        except OSError as exc:
            self._discard_quietly(backup)
            raise InstallError(f"Failed to install OpenAsar: {exc}") from exc
        finally:
            self.refresh()

    def uninstall_loader(self) -> None:
        asar = original_asar(self.resources)
        if not contains_openasar(asar):
            raise InstallError("OpenAsar is not installed")

        backup = asar.with_name(asar.name + ORIGINAL_SUFFIX)
        if not backup.is_file():
            raise InstallError(f"Original asar not found at {backup}")

        logger.info("uninstalling OpenAsar from %s", self.path)
        try:
            os.replace(backup, asar)
        except OSError as exc:
            raise InstallError(f"Failed to uninstall OpenAsar: {exc}") from exc
        finally:
            self.refresh()


__all__ = [
    "APP_ASAR",
    "BACKUP_ASAR",
    "DEFAULT_OPENASAR_URL",
    "DiscordInstall",
    "contains_openasar",
    "is_patched",
    "original_asar",
]
