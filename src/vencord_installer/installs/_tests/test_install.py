from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
import requests

from vencord_installer.installs import BuildError, DiscordInstall, InstallError, install_latest_builds
from vencord_installer.installs.builds import VENCORD_FILES, default_files_dir

_ORIGINAL = b"discord original asar"
_OPENASAR = b"...OpenAsar nightly build..."


class FakeFetcher:
    def __init__(self, responses: dict[str, bytes] | None = None, *, fail_on: str | None = None) -> None:
        self.responses = responses or {}
        self.fail_on = fail_on
        self.urls: list[str] = []

    def fetch(self, url: str) -> bytes:
        self.urls.append(url)
        if self.fail_on is not None and url.endswith(self.fail_on):
            raise requests.ConnectionError("connection refused")
        return self.responses.get(url, b"content of " + url.encode())


@pytest.fixture
def layout(tmp_path: Path) -> tuple[Path, Path]:
    resources = tmp_path / "discord" / "resources"
    resources.mkdir(parents=True)
    (resources / "app.asar").write_bytes(_ORIGINAL)
    files_dir = tmp_path / "dist"
    files_dir.mkdir()
    (files_dir / "patcher.js").write_text("// patcher")
    return resources, files_dir


def _handle(resources: Path, files_dir: Path, fetcher: FakeFetcher | None = None) -> DiscordInstall:
    return DiscordInstall(
        path=str(resources.parent),
        branch="stable",
        resources=resources,
        files_dir=files_dir,
        fetcher=fetcher or FakeFetcher(),
        openasar_url="https://example.invalid/app.asar",
    )


def test_patch_then_unpatch(layout: tuple[Path, Path]) -> None:
    resources, files_dir = layout
    install = _handle(resources, files_dir)
    assert install.patched is False

    install.patch()

    assert install.patched is True
    assert not (resources / "app.asar").exists()
    assert (resources / "_app.asar").read_bytes() == _ORIGINAL
    index = (resources / "app" / "index.js").read_text()
    assert json.dumps(str(files_dir / "patcher.js")) in index
    package = json.loads((resources / "app" / "package.json").read_text())
    assert package == {"name": "discord", "main": "index.js"}

    install.unpatch()

    assert install.patched is False
    assert (resources / "app.asar").read_bytes() == _ORIGINAL
    assert not (resources / "app").exists()


def test_patch_twice_repatches(layout: tuple[Path, Path]) -> None:
    resources, files_dir = layout
    install = _handle(resources, files_dir)
    install.patch()
    install.patch()

    assert install.patched is True
    assert (resources / "_app.asar").read_bytes() == _ORIGINAL


def test_patch_requires_builds(layout: tuple[Path, Path]) -> None:
    resources, files_dir = layout
    (files_dir / "patcher.js").unlink()

    with pytest.raises(InstallError, match="Run REPAIR first"):
        _handle(resources, files_dir).patch()
    assert (resources / "app.asar").exists()


def test_unpatch_unpatched_install_fails(layout: tuple[Path, Path]) -> None:
    resources, files_dir = layout
    with pytest.raises(InstallError, match="is not patched"):
        _handle(resources, files_dir).unpatch()


def _fail_replace_into(monkeypatch: pytest.MonkeyPatch, name: str) -> None:
    """Make the first ``os.replace`` onto ``name`` fail."""

    real_replace = os.replace
    armed = [True]

    def replace(src, dst):
        if armed[0] and Path(dst).name == name:
            armed[0] = False
            raise PermissionError(13, "Permission denied", str(dst))
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", replace)


def _resources_listing(resources: Path) -> list[str]:
    return sorted(p.name for p in resources.iterdir())


def test_failed_patch_restores_original_layout(layout: tuple[Path, Path], monkeypatch: pytest.MonkeyPatch) -> None:
    resources, files_dir = layout
    install = _handle(resources, files_dir)
    _fail_replace_into(monkeypatch, "app")

    with pytest.raises(InstallError, match="Failed to patch"):
        install.patch()

    assert install.patched is False
    assert (resources / "app.asar").read_bytes() == _ORIGINAL
    assert _resources_listing(resources) == ["app.asar"]


def test_failed_repatch_keeps_previous_loader(layout: tuple[Path, Path], monkeypatch: pytest.MonkeyPatch) -> None:
    resources, files_dir = layout
    install = _handle(resources, files_dir)
    install.patch()
    index_before = (resources / "app" / "index.js").read_text()
    _fail_replace_into(monkeypatch, "app")

    with pytest.raises(InstallError, match="Failed to patch"):
        install.patch()

    assert install.patched is True
    assert (resources / "app" / "index.js").read_text() == index_before
    assert _resources_listing(resources) == ["_app.asar", "app"]


def test_failed_unpatch_keeps_patch_in_place(layout: tuple[Path, Path], monkeypatch: pytest.MonkeyPatch) -> None:
    resources, files_dir = layout
    install = _handle(resources, files_dir)
    install.patch()
    _fail_replace_into(monkeypatch, "app.asar")

    with pytest.raises(InstallError, match="Failed to unpatch"):
        install.unpatch()

    assert install.patched is True
    assert (resources / "_app.asar").read_bytes() == _ORIGINAL
    assert (resources / "app" / "package.json").is_file()
    assert _resources_listing(resources) == ["_app.asar", "app"]


def test_patch_replaces_stray_app_file(layout: tuple[Path, Path]) -> None:
    resources, files_dir = layout
    (resources / "app").write_text("not a directory")
    install = _handle(resources, files_dir)

    install.patch()

    assert install.patched is True
    assert (resources / "app" / "index.js").is_file()
    assert _resources_listing(resources) == ["_app.asar", "app"]


def test_openasar_install_and_uninstall(layout: tuple[Path, Path]) -> None:
    resources, files_dir = layout
    fetcher = FakeFetcher({"https://example.invalid/app.asar": _OPENASAR})
    install = _handle(resources, files_dir, fetcher)

    install.install_loader()

    assert install.loader_present is True
    assert (resources / "app.asar").read_bytes() == _OPENASAR
    assert (resources / "app.asar.original").read_bytes() == _ORIGINAL
    with pytest.raises(InstallError, match="already installed"):
        install.install_loader()

    install.uninstall_loader()

    assert install.loader_present is False
    assert (resources / "app.asar").read_bytes() == _ORIGINAL
    with pytest.raises(InstallError, match="not installed"):
        install.uninstall_loader()


def test_openasar_targets_backup_asar_when_patched(layout: tuple[Path, Path]) -> None:
    resources, files_dir = layout
    fetcher = FakeFetcher({"https://example.invalid/app.asar": _OPENASAR})
    install = _handle(resources, files_dir, fetcher)
    install.patch()

    install.install_loader()

    assert (resources / "_app.asar").read_bytes() == _OPENASAR
    assert (resources / "_app.asar.original").read_bytes() == _ORIGINAL
    assert install.patched is True


def test_openasar_download_failure(layout: tuple[Path, Path]) -> None:
    resources, files_dir = layout
    install = _handle(resources, files_dir, FakeFetcher(fail_on="app.asar"))

    with pytest.raises(InstallError, match="Failed to download OpenAsar"):
        install.install_loader()
    assert (resources / "app.asar").read_bytes() == _ORIGINAL


def test_uninstall_without_backup_fails(layout: tuple[Path, Path]) -> None:
    resources, files_dir = layout
    (resources / "app.asar").write_bytes(_OPENASAR)

    with pytest.raises(InstallError, match="Original asar not found"):
        _handle(resources, files_dir).uninstall_loader()


def test_install_latest_builds_writes_every_file(tmp_path: Path) -> None:
    fetcher = FakeFetcher()
    target = tmp_path / "Vencord" / "dist"

    install_latest_builds(target, fetcher=fetcher, release_url="https://example.invalid/devbuild/")

    assert fetcher.urls == [f"https://example.invalid/devbuild/{name}" for name in VENCORD_FILES]
    for name in VENCORD_FILES:
        assert (target / name).read_bytes() == f"content of https://example.invalid/devbuild/{name}".encode()
    assert sorted(p.name for p in target.iterdir()) == sorted(VENCORD_FILES)


def test_install_latest_builds_reports_failed_file(tmp_path: Path) -> None:
    fetcher = FakeFetcher(fail_on="renderer.js")

    with pytest.raises(BuildError, match="Failed to download renderer.js: connection refused"):
        install_latest_builds(tmp_path, fetcher=fetcher, release_url="https://example.invalid")
    assert (tmp_path / "patcher.js").exists()
    assert not (tmp_path / "renderer.js").exists()


def test_default_files_dir(tmp_path: Path) -> None:
    assert default_files_dir({"VENCORD_USER_DATA_DIR": str(tmp_path)}) == tmp_path / "dist"
    assert default_files_dir({}, platform="linux", home=tmp_path) == tmp_path / ".config" / "Vencord" / "dist"
    assert default_files_dir({"XDG_CONFIG_HOME": str(tmp_path / "cfg")}, platform="linux") == (
        tmp_path / "cfg" / "Vencord" / "dist"
    )
    assert default_files_dir({}, platform="darwin", home=tmp_path) == (
        tmp_path / "Library" / "Application Support" / "Vencord" / "dist"
    )
    assert default_files_dir({"APPDATA": str(tmp_path)}, platform="win32") == tmp_path / "Vencord" / "dist"
