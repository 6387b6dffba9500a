from __future__ import annotations

from typing import Optional


class UpdaterError(Exception):
    """Base class for every self-update failure.

    ``stage`` is filled in by the orchestrator with the pipeline stage that was
    running when the error surfaced.
    """

    def __init__(self, message: str, *, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class UnsupportedPlatform(UpdaterError):
    """No release artifact is published for this OS/architecture pair."""

    def __init__(self, os_name: str, arch: str, releases_url: str):
        super().__init__(
            f"Unsupported platform: {os_name} {arch}. "
            f"Please download manually from: {releases_url}"
        )
        self.os_name = os_name
        self.arch = arch
        self.releases_url = releases_url


class NetworkError(UpdaterError):
    """Transport failure or non-success HTTP status."""

    def __init__(self, url: str, cause: object):
        super().__init__(f"Request to {url} failed: {cause}")
        self.url = url
        self.cause = cause


class DownloadError(NetworkError):
    """Release archive or checksum manifest could not be downloaded."""

    def __init__(self, url: str, cause: object):
        UpdaterError.__init__(self, f"Download of {url} failed: {cause}")
        self.url = url
        self.cause = cause


class ParseError(UpdaterError):
    """Remote data did not have the expected shape."""


class EmptyManifest(ParseError):
    """Checksum manifest contained no usable entries."""


class ArtifactSizeError(UpdaterError):
    """Downloaded archive size is outside the accepted bounds."""


class EmptyArtifact(ArtifactSizeError):
    def __init__(self, path: str):
        super().__init__(f"Downloaded file is empty (0 bytes): {path}. Please try again.")
        self.path = path


class ArtifactTooLarge(ArtifactSizeError):
    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Downloaded file is too large ({size} bytes > {limit} bytes). "
            "This may not be a valid release."
        )
        self.size = size
        self.limit = limit


class ManifestMissingEntry(UpdaterError):
    def __init__(self, filename: str):
        super().__init__(f"No checksum found for file: {filename}")
        self.filename = filename


class ChecksumMismatch(UpdaterError):
    def __init__(self, expected: str, actual: str):
        super().__init__(
            "Checksum verification failed! Downloaded file may be corrupted or tampered with. "
            f"Expected: {expected} Actual: {actual}"
        )
        self.expected = expected
        self.actual = actual


class ExtractionError(UpdaterError):
    def __init__(self, cause: object):
        super().__init__(f"Failed to extract update archive: {cause}")
        self.cause = cause


class InstallError(UpdaterError):
    """Replacing the running binary failed.

    ``rolled_back`` is ``None`` when nothing needed restoring, otherwise whether
    the automatic rollback put the previous binary back in place.
    """

    def __init__(self, cause: object, rolled_back: Optional[bool] = None):
        message = f"Failed to install update: {cause}"
        if rolled_back is True:
            message += " (previous binary restored)"
        elif rolled_back is False:
            message += " (rollback failed; restore the .bak file manually)"
        super().__init__(message)
        self.cause = cause
        self.rolled_back = rolled_back


class WorkspaceError(UpdaterError):
    def __init__(self, path: object, cause: object):
        super().__init__(f"Failed to prepare update workspace {path}: {cause}")
        self.path = path
        self.cause = cause


class UpdateInProgress(UpdaterError):
    def __init__(self, version: str, pid: Optional[int]):
        owner = f"pid {pid}" if pid else "owner still starting"
        super().__init__(f"Another update to {version} is already running ({owner}).")
        self.version = version
        self.pid = pid
