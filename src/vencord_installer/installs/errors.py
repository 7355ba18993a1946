"""Failures raised by the installation collaborators.

The message of each exception is shown verbatim to the browser client, so
keep it short and human readable.
"""

from __future__ import annotations


class InstallerError(RuntimeError):
    """Base class for collaborator failures."""


class InstallError(InstallerError):
    """A patch/unpatch/loader operation on one install failed."""


class BuildError(InstallerError):
    """Downloading the Vencord build artifacts failed."""


__all__ = ["BuildError", "InstallError", "InstallerError"]
