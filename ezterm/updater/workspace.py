"""Per-attempt temporary directory plus a per-version lock file."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Optional

import psutil

from ..core.errors import UpdateInProgress, WorkspaceError

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "ez-update-"
# A lock with no pid yet may belong to a process between O_EXCL and its write.
UNOWNED_LOCK_GRACE_SECONDS = 5.0


class UpdateWorkspace:
    """Context manager owning the download/extract directory for one update.

    The lock is keyed by target version so two runs for the same release
    cannot interleave; the directory also carries the pid so a leftover from a
    killed run never collides with a fresh one.
    """

    def __init__(self, version: str, root: Optional[Path] = None):
        self.version = version
        self.root = Path(root) if root else Path(tempfile.gettempdir())
        self.pid = os.getpid()
        self.lock_path = self.root / f"{WORKSPACE_PREFIX}{version}.lock"
        self.path = self.root / f"{WORKSPACE_PREFIX}{version}-{self.pid}"
        self._lock_held = False

    def __enter__(self) -> "UpdateWorkspace":
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(self.root, e) from e
        self._acquire_lock()
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._release_lock()
            raise WorkspaceError(self.path, e) from e
        logger.debug("Created update workspace %s", self.path)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if self.path.exists():
            try:
                shutil.rmtree(self.path)
                logger.debug("Removed update workspace %s", self.path)
            except OSError as cleanup_error:
                logger.warning("Could not remove update workspace %s: %s", self.path, cleanup_error)
        self._release_lock()

    def _acquire_lock(self) -> None:
        for _ in range(2):
            try:
                fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                owner = self._read_lock_owner()
                if owner is None and self._lock_age() < UNOWNED_LOCK_GRACE_SECONDS:
                    raise UpdateInProgress(self.version, None)
                if owner is not None and owner != self.pid and psutil.pid_exists(owner):
                    raise UpdateInProgress(self.version, owner)
                logger.info("Reclaiming stale update lock %s (owner pid %s)", self.lock_path, owner)
                try:
                    self.lock_path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    raise WorkspaceError(self.lock_path, e) from e
                continue
            except OSError as e:
                raise WorkspaceError(self.lock_path, e) from e
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(str(self.pid))
            except OSError as e:
                self.lock_path.unlink(missing_ok=True)
                raise WorkspaceError(self.lock_path, e) from e
            self._lock_held = True
            return
        # Lost the race to another process twice in a row.
        owner = self._read_lock_owner()
        raise UpdateInProgress(self.version, owner)

    def _read_lock_owner(self) -> Optional[int]:
        try:
            return int(self.lock_path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None

    def _lock_age(self) -> float:
        try:
            return time.time() - self.lock_path.stat().st_mtime
        except OSError:
            return UNOWNED_LOCK_GRACE_SECONDS

    def _release_lock(self) -> None:
        if not self._lock_held:
            return
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as cleanup_error:
            logger.warning("Could not remove update lock %s: %s", self.lock_path, cleanup_error)
        self._lock_held = False
