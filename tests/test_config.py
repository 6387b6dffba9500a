from pathlib import Path

import pytest

from ezterm.core.config import GITHUB_REPO, MAX_ARTIFACT_BYTES, UpdaterConfig

ENV_VARS = (
    "EZ_UPDATE_API_URL",
    "EZ_UPDATE_RELEASE_HOST",
    "EZ_UPDATE_TARGET",
    "EZ_UPDATE_WORKDIR",
    "EZ_UPDATE_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_point_at_github_releases():
    config = UpdaterConfig.from_env()

    assert config.api_url == f"https://api.github.com/repos/{GITHUB_REPO}/releases/latest"
    assert config.release_host == f"https://github.com/{GITHUB_REPO}/releases"
    assert config.releases_page_url == f"https://github.com/{GITHUB_REPO}/releases"
    assert config.max_artifact_bytes == MAX_ARTIFACT_BYTES == 50 * 1024 * 1024
    assert config.target_path is None


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("EZ_UPDATE_API_URL", "https://mirror.example.test/latest")
    monkeypatch.setenv("EZ_UPDATE_RELEASE_HOST", "https://mirror.example.test/releases/")
    monkeypatch.setenv("EZ_UPDATE_TARGET", str(tmp_path / "ez"))
    monkeypatch.setenv("EZ_UPDATE_WORKDIR", str(tmp_path / "work"))
    monkeypatch.setenv("EZ_UPDATE_TIMEOUT", "5")

    config = UpdaterConfig.from_env()

    assert config.api_url == "https://mirror.example.test/latest"
    assert config.release_host == "https://mirror.example.test/releases"
    assert config.target_path == Path(tmp_path / "ez")
    assert config.workspace_root == Path(tmp_path / "work")
    assert config.metadata_timeout == config.download_timeout == 5.0


@pytest.mark.parametrize("value", ["soon", "-3", "0"])
def test_invalid_timeout_is_ignored(monkeypatch, caplog, value):
    monkeypatch.setenv("EZ_UPDATE_TIMEOUT", value)

    config = UpdaterConfig.from_env()

    assert config.metadata_timeout == 15.0
    assert config.download_timeout == 60.0
    assert "Ignoring invalid EZ_UPDATE_TIMEOUT" in caplog.text


def test_explicit_overrides_combine_with_environment(monkeypatch):
    monkeypatch.setenv("EZ_UPDATE_API_URL", "https://mirror.example.test/latest")

    config = UpdaterConfig.from_env(current_version="0.1.0")

    assert config.current_version == "0.1.0"
    assert config.api_url == "https://mirror.example.test/latest"
