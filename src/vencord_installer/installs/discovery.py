"""Locate Discord installations on this machine."""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Iterable, Mapping, Optional

from .builds import Fetcher
from .install import APP_ASAR, BACKUP_ASAR, DEFAULT_OPENASAR_URL, DiscordInstall

logger = logging.getLogger(__name__)

_BRANCHES = {
    "discord": "stable",
    "discordptb": "ptb",
    "discordcanary": "canary",
    "discorddevelopment": "development",
}
_SEPARATORS = re.compile(r"[-_ .]")
_APP_VERSION = re.compile(r"^app-(\d+(?:\.\d+)*)$")


def branch_for_name(name: str) -> Optional[str]:
    """Map an install directory name (``DiscordCanary``, ``discord-ptb``) to its branch."""

    lowered = name.lower()
    if lowered.endswith(".app"):
        lowered = lowered[: -len(".app")]
    return _BRANCHES.get(_SEPARATORS.sub("", lowered))


def _version_key(path: Path) -> tuple[int, ...]:
    match = _APP_VERSION.match(path.name)
    if match is None:
        return ()
    return tuple(int(part) for part in match.group(1).split("."))


def resolve_resources(install_dir: Path) -> Optional[Path]:
    """Return the ``resources`` directory of an install, or None.

    Handles macOS bundles (``Contents/Resources``), Windows squirrel layouts
    (newest ``app-<version>/resources``) and plain Linux layouts.
    """

    candidates: list[Path] = [install_dir / "Contents" / "Resources"]
    try:
        versions = sorted(
            (child for child in install_dir.iterdir() if child.is_dir() and _version_key(child)),
            key=_version_key,
            reverse=True,
        )
    except OSError:
        versions = []
    candidates.extend(version / "resources" for version in versions)
    candidates.append(install_dir / "resources")

    for resources in candidates:
        if (resources / APP_ASAR).exists() or (resources / BACKUP_ASAR).exists():
            return resources
    return None


def default_search_roots(
    env: Optional[Mapping[str, str]] = None,
    *,
    platform: Optional[str] = None,
    home: Optional[Path] = None,
) -> tuple[Path, ...]:
    """Return the directories scanned for Discord installs on ``platform``."""

    env = os.environ if env is None else env
    platform = platform or sys.platform
    home = home or Path.home()

    override = env.get("VENCORD_INSTALLER_SEARCH_PATHS")
    if override:
        return tuple(Path(item).expanduser() for item in override.split(os.pathsep) if item.strip())

    if platform.startswith("win"):
        local = env.get("LOCALAPPDATA")
        return (Path(local) if local else home / "AppData" / "Local",)
    if platform == "darwin":
        return (Path("/Applications"), home / "Applications")

    roots: list[Path] = [
        Path("/usr/share"),
        Path("/usr/lib64"),
        Path("/opt"),
        home / ".local" / "share",
        home / ".dvm",
    ]
    for flatpak in (Path("/var/lib/flatpak/app"), home / ".local" / "share" / "flatpak" / "app"):
        try:
            roots.extend(sorted(flatpak.glob("com.discordapp.*/current/active/files")))
        except OSError:
            logger.debug("flatpak scan failed for %s", flatpak, exc_info=True)
    return tuple(roots)


def _iter_candidates(roots: Iterable[Path]) -> Iterable[tuple[Path, str]]:
    for root in roots:
        try:
            children = sorted(root.iterdir())
        except OSError:
            continue
        for child in children:
            branch = branch_for_name(child.name)
            if branch is not None and child.is_dir():
                yield child, branch


def find_discords(
    search_roots: Iterable[Path],
    *,
    files_dir: Path,
    fetcher: Fetcher,
    openasar_url: str = DEFAULT_OPENASAR_URL,
) -> list[DiscordInstall]:
    """Scan ``search_roots`` and return one handle per install, sorted by path."""

    found: dict[str, DiscordInstall] = {}
    for install_dir, branch in _iter_candidates(search_roots):
        resources = resolve_resources(install_dir)
        if resources is None:
            continue
        path = str(install_dir)
        if path in found:
            continue
        found[path] = DiscordInstall(
            path=path,
            branch=branch,
            resources=resources,
            files_dir=files_dir,
            fetcher=fetcher,
            openasar_url=openasar_url,
        )
    installs = [found[key] for key in sorted(found)]
    logger.debug("discovered %d Discord install(s)", len(installs))
    return installs


__all__ = [
    "branch_for_name",
    "default_search_roots",
    "find_discords",
    "resolve_resources",
]
