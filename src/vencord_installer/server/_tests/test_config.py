from __future__ import annotations

import os
from pathlib import Path

from vencord_installer.installs import DEFAULT_OPENASAR_URL, DEFAULT_RELEASE_URL
from vencord_installer.server.config import (
    DEFAULT_ORIGIN,
    DEFAULT_PORT,
    load_installer_config,
    load_server_config,
    load_server_ctx,
)


def test_defaults_without_environment() -> None:
    cfg = load_server_config({})

    assert cfg.host == "127.0.0.1"
    assert cfg.port == DEFAULT_PORT == 18281
    assert cfg.path == "/launch"
    assert cfg.allowed_origin == DEFAULT_ORIGIN == "https://vencord.dev"
    assert cfg.op_timeout_s == 0.0


def test_environment_overrides() -> None:
    cfg = load_server_config(
        {
            "VENCORD_INSTALLER_HOST": "0.0.0.0",
            "VENCORD_INSTALLER_PORT": "9000",
            "VENCORD_INSTALLER_ORIGIN": "http://localhost:8080",
            "VENCORD_INSTALLER_OP_TIMEOUT": "12.5",
        }
    )

    assert cfg.host == "0.0.0.0"
    assert cfg.port == 9000
    assert cfg.allowed_origin == "http://localhost:8080"
    assert cfg.op_timeout_s == 12.5


def test_invalid_values_fall_back_to_defaults() -> None:
    cfg = load_server_config(
        {
            "VENCORD_INSTALLER_PORT": "not-a-port",
            "VENCORD_INSTALLER_ORIGIN": "   ",
            "VENCORD_INSTALLER_OP_TIMEOUT": "-4",
        }
    )

    assert cfg.port == DEFAULT_PORT
    assert cfg.allowed_origin == DEFAULT_ORIGIN
    assert cfg.op_timeout_s == 0.0
    assert load_server_config({"VENCORD_INSTALLER_PORT": "70000"}).port == DEFAULT_PORT


def test_installer_config(tmp_path: Path) -> None:
    search = os.pathsep.join([str(tmp_path / "a"), str(tmp_path / "b")])
    installer = load_installer_config(
        {
            "VENCORD_USER_DATA_DIR": str(tmp_path / "data"),
            "VENCORD_INSTALLER_SEARCH_PATHS": search,
            "VENCORD_INSTALLER_HTTP_TIMEOUT": "5",
        }
    )

    assert installer.files_dir == tmp_path / "data" / "dist"
    assert installer.search_paths == (tmp_path / "a", tmp_path / "b")
    assert installer.release_url == DEFAULT_RELEASE_URL
    assert installer.openasar_url == DEFAULT_OPENASAR_URL
    assert installer.http_timeout_s == 5.0


def test_installer_config_without_search_override(tmp_path: Path) -> None:
    installer = load_installer_config({"VENCORD_USER_DATA_DIR": str(tmp_path)})
    assert installer.search_paths is None


def test_ctx_overrides_only_replace_given_values() -> None:
    ctx = load_server_ctx({"VENCORD_INSTALLER_DEBUG": "ops"})

    updated = ctx.with_overrides(port=0, allowed_origin="http://localhost")

    assert updated.cfg.port == 0
    assert updated.cfg.allowed_origin == "http://localhost"
    assert updated.cfg.host == ctx.cfg.host
    assert updated.debug_policy.logging.log_operations is True
    assert ctx.cfg.port == DEFAULT_PORT
    assert ctx.with_overrides() is ctx


def test_ctx_override_clamps_negative_timeout() -> None:
    ctx = load_server_ctx({}).with_overrides(op_timeout_s=-1)
    assert ctx.cfg.op_timeout_s == 0.0
