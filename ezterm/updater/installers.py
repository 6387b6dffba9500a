"""Strategies for swapping the running executable for the downloaded one."""

from __future__ import annotations

import logging
import os
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from ..core.config import UpdaterConfig
from ..core.errors import InstallError
from .platforms import PlatformDescriptor

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


@dataclass(frozen=True)
class InstallOutcome:
    target_path: Path
    backup_path: Optional[Path]
    strategy: str


def backup_path_for(target: Path) -> Path:
    return target.with_name(target.name + BACKUP_SUFFIX)


def locate_current_executable(config: UpdaterConfig) -> Path:
    if config.target_path is not None:
        return Path(config.target_path)
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve()
    raise InstallError(
        "self-update only works for the packaged ez binary; "
        "reinstall from source or set EZ_UPDATE_TARGET"
    )


class Installer(Protocol):
    name: str

    def install(self, new_binary: Path, target: Path) -> InstallOutcome:
        """Replace ``target`` with ``new_binary``."""


class CopyOverInstaller:
    """POSIX: write the new binary beside the target and rename it into place.

    The running process keeps executing from the old inode; only the directory
    entry changes.
    """

    name = "copy-over"

    def install(self, new_binary: Path, target: Path) -> InstallOutcome:
        try:
            new_binary.chmod(0o755)
        except OSError as e:
            raise InstallError(f"could not mark {new_binary} executable: {e}") from e

        backup_path: Optional[Path] = backup_path_for(target)
        try:
            shutil.copy2(target, backup_path)
            logger.info("Backed up %s to %s", target, backup_path)
        except OSError as e:
            logger.warning("Could not back up %s (continuing without backup): %s", target, e)
            backup_path = None

        temp_target = target.with_name(f".{target.name}.new")
        try:
            self._copy_binary(new_binary, temp_target)
            os.replace(temp_target, target)
        except OSError as e:
            try:
                temp_target.unlink()
            except FileNotFoundError:
                pass
            except OSError as cleanup_error:
                logger.debug("Could not remove %s: %s", temp_target, cleanup_error)
            raise InstallError(
                f"{e}. You may need to run with sudo or install manually."
            ) from e

        logger.info("Installed new binary at %s", target)
        return InstallOutcome(target_path=target, backup_path=backup_path, strategy=self.name)

    def _copy_binary(self, src: Path, dst: Path) -> None:
        shutil.copy2(src, dst)


class RenameThenCopyInstaller:
    """Windows: move the locked image aside, then copy the new binary in.

    A renamed running .exe stays usable by its process, which frees the
    original path. If the copy fails the backup is renamed straight back.
    """

    name = "rename-then-copy"

    def install(self, new_binary: Path, target: Path) -> InstallOutcome:
        backup_path = backup_path_for(target)
        try:
            os.replace(target, backup_path)
        except OSError as e:
            raise InstallError(f"failed to back up current binary: {e}") from e
        logger.info("Moved %s to %s", target, backup_path)

        try:
            self._copy_binary(new_binary, target)
        except OSError as e:
            logger.error("Copy of new binary failed, rolling back: %s", e)
            try:
                os.replace(backup_path, target)
            except OSError as rollback_error:
                logger.error("Rollback of %s failed: %s", target, rollback_error)
                raise InstallError(e, rolled_back=False) from e
            logger.info("Restored previous binary at %s", target)
            raise InstallError(e, rolled_back=True) from e

        logger.info("Installed new binary at %s", target)
        return InstallOutcome(target_path=target, backup_path=backup_path, strategy=self.name)

    def _copy_binary(self, src: Path, dst: Path) -> None:
        shutil.copy2(src, dst)


def select_installer(descriptor: PlatformDescriptor) -> Installer:
    if descriptor.locks_running_binary:
        return RenameThenCopyInstaller()
    return CopyOverInstaller()
