from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

GITHUB_REPO = "ezcorp-org/ez-term"
MAX_ARTIFACT_BYTES = 50 * 1024 * 1024


@dataclass(frozen=True)
class UpdaterConfig:
    repository: str = GITHUB_REPO
    api_url: str = f"https://api.github.com/repos/{GITHUB_REPO}/releases/latest"
    release_host: str = f"https://github.com/{GITHUB_REPO}/releases"
    tag_prefix: str = "v"
    artifact_prefix: str = "ez"
    manifest_name: str = "checksums.txt"
    max_artifact_bytes: int = MAX_ARTIFACT_BYTES
    metadata_timeout: float = 15.0
    download_timeout: float = 60.0
    target_path: Optional[Path] = None
    workspace_root: Optional[Path] = None
    current_version: Optional[str] = None

    @property
    def releases_page_url(self) -> str:
        return f"https://github.com/{self.repository}/releases"

    @classmethod
    def from_env(cls, **overrides) -> "UpdaterConfig":
        config = cls(**overrides)
        changes: dict[str, object] = {}

        api_url = os.getenv("EZ_UPDATE_API_URL", "").strip()
        if api_url:
            changes["api_url"] = api_url

        release_host = os.getenv("EZ_UPDATE_RELEASE_HOST", "").strip()
        if release_host:
            changes["release_host"] = release_host.rstrip("/")

        target = os.getenv("EZ_UPDATE_TARGET", "").strip()
        if target:
            changes["target_path"] = Path(target).expanduser()

        workdir = os.getenv("EZ_UPDATE_WORKDIR", "").strip()
        if workdir:
            changes["workspace_root"] = Path(workdir).expanduser()

        timeout = os.getenv("EZ_UPDATE_TIMEOUT", "").strip()
        if timeout:
            try:
                seconds = float(timeout)
                if seconds <= 0:
                    raise ValueError("timeout must be positive")
                changes["metadata_timeout"] = seconds
                changes["download_timeout"] = seconds
            except ValueError as e:
                logger.warning("Ignoring invalid EZ_UPDATE_TIMEOUT=%r: %s", timeout, e)

        if changes:
            logger.debug("Updater config overrides from environment: %s", sorted(changes))
            config = replace(config, **changes)
        return config
