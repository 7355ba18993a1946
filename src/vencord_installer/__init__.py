"""
vencord-installer: local WebSocket bridge for the Vencord web installer.

The browser page at the allowed origin connects to a loopback endpoint and
asks this process to list, patch, unpatch and repair Discord installations,
or to toggle the OpenAsar loader on them.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
