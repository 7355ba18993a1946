"""Small HTTP download helper shared by the build and loader collaborators."""

from __future__ import annotations

import logging

import requests

from vencord_installer import __version__

logger = logging.getLogger(__name__)

USER_AGENT = f"VencordInstaller/{__version__} (+https://github.com/Vendicated/VencordInstaller)"


class Downloader:
    """Fetch whole response bodies with a fixed timeout.

    A fresh connection is used per call; operations from different browser
    sessions run on different worker threads and must not share a
    ``requests.Session``.
    """

    def __init__(self, *, timeout_s: float = 30.0, user_agent: str = USER_AGENT) -> None:
        self.timeout_s = float(timeout_s)
        self.user_agent = user_agent

    def fetch(self, url: str) -> bytes:
        logger.debug("GET %s", url)
        response = requests.get(
            url,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout_s,
        )
        response.raise_for_status()
        return response.content


__all__ = ["Downloader", "USER_AGENT"]
