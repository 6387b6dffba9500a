"""Self-update orchestration: version check, download, verify, extract, install.

Security notes:
- The archive is never extracted or installed unless its SHA-256 digest matches
  the release's checksums.txt entry.
- Only the immediately preceding binary is kept, as ``<binary>.bak``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from ..core.config import UpdaterConfig
from ..core.errors import UpdaterError
from .archive import extract_archive, locate_binary
from .fetcher import ArtifactFetcher, FetchedRelease
from .installers import Installer, locate_current_executable, select_installer
from .integrity import load_manifest, lookup_digest, verify_checksum
from .platforms import PlatformDescriptor, detect_platform
from .versions import VersionResolver, is_current, is_older
from .workspace import UpdateWorkspace

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]

DOWNLOAD_PROGRESS_START = 15
DOWNLOAD_PROGRESS_END = 60


class UpdateStage(Enum):
    CHECKING_VERSION = "checking version"
    UP_TO_DATE = "up to date"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    EXTRACTING = "extracting"
    INSTALLING = "installing"
    DONE = "done"
    ABORTED = "aborted"


class UpdateStatus(Enum):
    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"


@dataclass(frozen=True)
class UpdateResult:
    status: UpdateStatus
    current_version: str
    latest_version: str
    target_path: Optional[Path] = None
    backup_path: Optional[Path] = None


@dataclass
class UpdateReport:
    stage: UpdateStage = UpdateStage.CHECKING_VERSION
    checksum_verified: bool = False
    backup_path: Optional[Path] = None
    rolled_back: Optional[bool] = None


class AutoUpdater:
    def __init__(
        self,
        config: Optional[UpdaterConfig] = None,
        *,
        session: Any = None,
        platform: Optional[PlatformDescriptor] = None,
        installer: Optional[Installer] = None,
    ):
        self.config = config or UpdaterConfig.from_env()
        self.versions = VersionResolver(self.config, session=session)
        self.fetcher = ArtifactFetcher(self.config, session=session)
        self._platform = platform
        self._installer = installer
        self.last_update_report = UpdateReport()

    def get_last_update_report(self) -> UpdateReport:
        return self.last_update_report

    def _enter(self, stage: UpdateStage, percent: int, message: str, progress_callback) -> None:
        self.last_update_report.stage = stage
        logger.debug("Update stage: %s", stage.value)
        if progress_callback:
            progress_callback(percent, message)

    def perform_update(self, progress_callback: Optional[ProgressCallback] = None) -> UpdateResult:
        self.last_update_report = UpdateReport()
        try:
            return self._run(progress_callback)
        except UpdaterError as e:
            self._abort(e)
            raise
        except OSError as e:
            error = UpdaterError(f"Unexpected filesystem error: {e}")
            self._abort(error)
            raise error from e

    def _abort(self, error: UpdaterError) -> None:
        if error.stage is None:
            error.stage = self.last_update_report.stage.value
        logger.error("Update aborted during %s: %s", error.stage, error)
        self.last_update_report.stage = UpdateStage.ABORTED

    def _run(self, progress_callback: Optional[ProgressCallback]) -> UpdateResult:
        self._enter(UpdateStage.CHECKING_VERSION, 5, "Checking for updates...", progress_callback)
        current = self.versions.current_version()
        latest = self.versions.latest_version()
        logger.info("Current version %s, latest version %s", current, latest)

        if is_current(current, latest):
            self._enter(
                UpdateStage.UP_TO_DATE,
                100,
                f"You are already running the latest version (v{current}).",
                progress_callback,
            )
            return UpdateResult(UpdateStatus.UP_TO_DATE, current, latest)
        if is_older(current, latest):
            logger.warning("Published release %s is older than running build %s", latest, current)

        self._enter(
            UpdateStage.DOWNLOADING,
            DOWNLOAD_PROGRESS_START,
            f"New version available: v{current} -> v{latest}",
            progress_callback,
        )
        descriptor = self._platform or detect_platform(self.config)
        logger.info("Detected platform %s", descriptor.name)
        try:
            target = locate_current_executable(self.config)
        except UpdaterError as e:
            e.stage = UpdateStage.INSTALLING.value
            raise
        installer = self._installer or select_installer(descriptor)

        with UpdateWorkspace(latest, root=self.config.workspace_root) as workspace:
            release = self.fetcher.fetch(
                descriptor, latest, workspace.path, progress_callback=_download_band(progress_callback)
            )

            self._enter(UpdateStage.VERIFYING, DOWNLOAD_PROGRESS_END, "Verifying integrity...", progress_callback)
            self._verify(release)

            self._enter(UpdateStage.EXTRACTING, 75, "Extracting...", progress_callback)
            payload_root = extract_archive(
                release.archive_path, workspace.path / "payload", descriptor.archive_extension
            )
            new_binary = locate_binary(payload_root, descriptor.binary_name)

            self._enter(UpdateStage.INSTALLING, 90, "Installing update...", progress_callback)
            try:
                outcome = installer.install(new_binary, target)
            except UpdaterError as e:
                self.last_update_report.rolled_back = getattr(e, "rolled_back", None)
                raise

        self.last_update_report.backup_path = outcome.backup_path
        self._enter(UpdateStage.DONE, 100, f"Successfully updated to v{latest}", progress_callback)
        return UpdateResult(
            UpdateStatus.UPDATED,
            current,
            latest,
            target_path=outcome.target_path,
            backup_path=outcome.backup_path,
        )

    def _verify(self, release: FetchedRelease) -> None:
        manifest = load_manifest(release.manifest_path)
        expected = lookup_digest(manifest, release.archive_name)
        try:
            verify_checksum(release.archive_path, expected)
        except OSError as e:
            raise UpdaterError(f"Failed to calculate checksum of downloaded file: {e}") from e
        self.last_update_report.checksum_verified = True


def _download_band(progress_callback: Optional[ProgressCallback]) -> Optional[ProgressCallback]:
    """Map the fetcher's 0-100 download progress onto the DOWNLOADING share of the run."""
    if progress_callback is None:
        return None
    span = DOWNLOAD_PROGRESS_END - DOWNLOAD_PROGRESS_START

    def report(percent: int, message: str) -> None:
        progress_callback(DOWNLOAD_PROGRESS_START + percent * span // 100, message)

    return report
