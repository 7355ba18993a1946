"""Discord installation collaborators: discovery, patching, builds, OpenAsar."""

from .backend import InstallBackend, InstallHandle, LocalInstallBackend
from .builds import DEFAULT_RELEASE_URL, default_files_dir, install_latest_builds
from .discovery import default_search_roots, find_discords
from .download import Downloader
from .errors import BuildError, InstallError, InstallerError
from .install import DEFAULT_OPENASAR_URL, DiscordInstall

__all__ = [
    "BuildError",
    "DEFAULT_OPENASAR_URL",
    "DEFAULT_RELEASE_URL",
    "DiscordInstall",
    "Downloader",
    "InstallBackend",
    "InstallError",
    "InstallHandle",
    "InstallerError",
    "LocalInstallBackend",
    "default_files_dir",
    "default_search_roots",
    "find_discords",
    "install_latest_builds",
]
