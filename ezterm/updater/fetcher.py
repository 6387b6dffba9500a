"""Download the release archive and its checksum manifest."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import requests  # type: ignore[import-untyped]

from ..core.config import UpdaterConfig
from ..core.errors import ArtifactTooLarge, DownloadError, EmptyArtifact
from .http import request
from .platforms import PlatformDescriptor

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]

CHUNK_SIZE = 8192


@dataclass(frozen=True)
class FetchedRelease:
    version: str
    archive_name: str
    archive_path: Path
    manifest_path: Path


def validate_artifact_size(path: Path, max_bytes: int) -> int:
    size = os.path.getsize(path)
    if size == 0:
        raise EmptyArtifact(str(path))
    if size > max_bytes:
        raise ArtifactTooLarge(size, max_bytes)
    return size


def _content_length(headers, url: str) -> int:
    """Declared body size, or 0 when the header is absent or unusable."""
    raw = headers.get("content-length")
    if not raw:
        return 0
    try:
        total = int(str(raw).strip())
    except ValueError:
        logger.debug("Ignoring malformed Content-Length %r from %s", raw, url)
        return 0
    return max(total, 0)


class ArtifactFetcher:
    def __init__(self, config: UpdaterConfig, session: Any = None):
        self.config = config
        self._http = session or requests

    def artifact_name(self, descriptor: PlatformDescriptor) -> str:
        return f"{self.config.artifact_prefix}-{descriptor.name}.{descriptor.archive_extension}"

    def _release_base(self, version: str) -> str:
        host = self.config.release_host.rstrip("/")
        return f"{host}/download/{self.config.tag_prefix}{version}"

    def artifact_url(self, descriptor: PlatformDescriptor, version: str) -> str:
        return f"{self._release_base(version)}/{self.artifact_name(descriptor)}"

    def manifest_url(self, version: str) -> str:
        return f"{self._release_base(version)}/{self.config.manifest_name}"

    def fetch(
        self,
        descriptor: PlatformDescriptor,
        version: str,
        workspace: Path,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> FetchedRelease:
        archive_name = self.artifact_name(descriptor)
        archive_path = workspace / archive_name
        manifest_path = workspace / self.config.manifest_name

        archive_url = self.artifact_url(descriptor, version)
        logger.info("Downloading %s", archive_url)
        self.download(
            archive_url,
            archive_path,
            max_bytes=self.config.max_artifact_bytes,
            progress_callback=progress_callback,
        )
        size = validate_artifact_size(archive_path, self.config.max_artifact_bytes)
        logger.info("Downloaded %s (%s bytes)", archive_name, size)

        manifest_url = self.manifest_url(version)
        logger.info("Downloading %s", manifest_url)
        self.download(manifest_url, manifest_path)

        return FetchedRelease(
            version=version,
            archive_name=archive_name,
            archive_path=archive_path,
            manifest_path=manifest_path,
        )

    def download(
        self,
        url: str,
        destination: Path,
        *,
        max_bytes: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Path:
        response = request(
            self._http,
            url,
            stream=True,
            timeout=self.config.download_timeout,
            error_cls=DownloadError,
        )
        with response as r:
            total = _content_length(r.headers, url)
            if max_bytes is not None and total > max_bytes:
                raise ArtifactTooLarge(total, max_bytes)

            downloaded = 0
            try:
                with open(destination, "wb") as f:
                    for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        f.write(chunk)
                        downloaded += len(chunk)
                        if max_bytes is not None and downloaded > max_bytes:
                            raise ArtifactTooLarge(downloaded, max_bytes)
                        if progress_callback and total > 0:
                            progress_callback(min(100, int(downloaded / total * 100)), "Downloading...")
            except requests.RequestException as e:
                raise DownloadError(url, e) from e
            except OSError as e:
                raise DownloadError(url, f"could not write {destination}: {e}") from e
        return destination
