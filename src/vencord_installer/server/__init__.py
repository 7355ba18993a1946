"""Installer bridge server components.

Active server entry points live in :mod:`vencord_installer.server.app`. The
layout separates application bootstrap (`server/app`), the per-connection
protocol loop and operation dispatch (`server/control`), and shared
configuration, logging policy and metrics (top-level modules).
"""

__all__ = []
