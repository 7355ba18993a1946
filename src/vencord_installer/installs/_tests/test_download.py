from __future__ import annotations

import pytest
import requests

from vencord_installer.installs import download
from vencord_installer.installs.download import USER_AGENT, Downloader


class _Response:
    def __init__(self, status: int, content: bytes) -> None:
        self.status_code = status
        self.content = content

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


def test_fetch_returns_body_and_sends_headers(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}

    def fake_get(url, headers=None, timeout=None):
        seen.update(url=url, headers=headers, timeout=timeout)
        return _Response(200, b"payload")

    monkeypatch.setattr(download.requests, "get", fake_get)

    body = Downloader(timeout_s=7).fetch("https://example.invalid/patcher.js")

    assert body == b"payload"
    assert seen == {
        "url": "https://example.invalid/patcher.js",
        "headers": {"User-Agent": USER_AGENT},
        "timeout": 7.0,
    }


def test_fetch_raises_on_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(download.requests, "get", lambda url, headers=None, timeout=None: _Response(404, b""))

    with pytest.raises(requests.HTTPError, match="404"):
        Downloader().fetch("https://example.invalid/missing.js")
