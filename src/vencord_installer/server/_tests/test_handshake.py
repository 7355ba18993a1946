from __future__ import annotations

from http import HTTPStatus

import pytest

from vencord_installer.server.config import ServerConfig
from vencord_installer.server.control.handshake import check_handshake

CFG = ServerConfig(allowed_origin="https://vencord.dev")


def test_matching_path_and_origin_is_accepted() -> None:
    assert check_handshake("/launch", "https://vencord.dev", CFG) is None


def test_query_string_is_ignored_for_path_match() -> None:
    assert check_handshake("/launch?v=2", "https://vencord.dev", CFG) is None


@pytest.mark.parametrize("path", ["/", "/launch/", "/Launch", "/launch/extra", ""])
def test_other_paths_are_not_found(path: str) -> None:
    rejection = check_handshake(path, "https://vencord.dev", CFG)
    assert rejection is not None
    assert rejection.status is HTTPStatus.NOT_FOUND


@pytest.mark.parametrize(
    "origin",
    [
        None,
        "",
        "http://vencord.dev",
        "https://vencord.dev/",
        "https://evil.vencord.dev",
        "https://VENCORD.dev",
        "null",
    ],
)
def test_origin_must_match_exactly(origin) -> None:
    rejection = check_handshake("/launch", origin, CFG)
    assert rejection is not None
    assert rejection.status is HTTPStatus.FORBIDDEN


def test_path_checked_before_origin() -> None:
    rejection = check_handshake("/elsewhere", "https://evil.example", CFG)
    assert rejection is not None
    assert rejection.status is HTTPStatus.NOT_FOUND


def test_custom_origin_from_config() -> None:
    cfg = ServerConfig(allowed_origin="http://localhost:3000")
    assert check_handshake("/launch", "http://localhost:3000", cfg) is None
    assert check_handshake("/launch", "https://vencord.dev", cfg) is not None
