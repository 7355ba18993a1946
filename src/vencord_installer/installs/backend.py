"""Narrow collaborator interface consumed by the protocol layer."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence

from .builds import DEFAULT_RELEASE_URL, Fetcher, install_latest_builds
from .discovery import default_search_roots, find_discords
from .download import Downloader
from .install import DEFAULT_OPENASAR_URL


class InstallHandle(Protocol):
    """One discovered install: identity, state flags and the four mutations."""

    path: str
    branch: str
    patched: bool
    loader_present: bool

    def patch(self) -> None: ...

    def unpatch(self) -> None: ...

    def install_loader(self) -> None: ...

    def uninstall_loader(self) -> None: ...


class InstallBackend(Protocol):
    def discover(self) -> Sequence[InstallHandle]: ...

    def rebuild(self) -> None: ...


class LocalInstallBackend:
    """Backend operating on the installs of the current machine."""

    def __init__(
        self,
        *,
        files_dir: Path,
        search_paths: Optional[Iterable[Path]] = None,
        release_url: str = DEFAULT_RELEASE_URL,
        openasar_url: str = DEFAULT_OPENASAR_URL,
        fetcher: Optional[Fetcher] = None,
    ) -> None:
        self.files_dir = Path(files_dir)
        self.search_paths = tuple(search_paths) if search_paths is not None else None
        self.release_url = release_url
        self.openasar_url = openasar_url
        self.fetcher = fetcher or Downloader()

    def discover(self) -> list[InstallHandle]:
        roots = self.search_paths if self.search_paths is not None else default_search_roots()
        return list(
            find_discords(
                roots,
                files_dir=self.files_dir,
                fetcher=self.fetcher,
                openasar_url=self.openasar_url,
            )
        )

    def rebuild(self) -> None:
        install_latest_builds(self.files_dir, fetcher=self.fetcher, release_url=self.release_url)


__all__ = ["InstallBackend", "InstallHandle", "LocalInstallBackend"]
