import os
import sys

import pytest

from ezterm.core.config import UpdaterConfig
from ezterm.core.errors import InstallError
from ezterm.updater import installers
from ezterm.updater.installers import (
    CopyOverInstaller,
    RenameThenCopyInstaller,
    backup_path_for,
    locate_current_executable,
    select_installer,
)
from ezterm.updater.platforms import resolve_platform


@pytest.fixture
def binaries(tmp_path):
    target = tmp_path / "bin" / "ez"
    target.parent.mkdir()
    target.write_bytes(b"old binary")
    new_binary = tmp_path / "payload" / "ez"
    new_binary.parent.mkdir()
    new_binary.write_bytes(b"new binary")
    return new_binary, target


def _failing_copy(_src, _dst):
    raise OSError("disk full")


def test_select_installer_by_platform():
    assert isinstance(select_installer(resolve_platform("linux", "x86_64")), CopyOverInstaller)
    assert isinstance(select_installer(resolve_platform("macos", "aarch64")), CopyOverInstaller)
    assert isinstance(select_installer(resolve_platform("windows", "x86_64")), RenameThenCopyInstaller)


def test_copy_over_replaces_target_and_keeps_backup(binaries):
    new_binary, target = binaries

    outcome = CopyOverInstaller().install(new_binary, target)

    assert target.read_bytes() == b"new binary"
    assert outcome.backup_path == target.with_name("ez.bak")
    assert outcome.backup_path.read_bytes() == b"old binary"
    assert outcome.strategy == "copy-over"
    assert not target.with_name(".ez.new").exists()


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_copy_over_marks_binary_executable(binaries):
    new_binary, target = binaries
    new_binary.chmod(0o644)

    CopyOverInstaller().install(new_binary, target)

    assert os.stat(target).st_mode & 0o777 == 0o755


def test_copy_over_backup_failure_is_not_fatal(binaries, monkeypatch):
    new_binary, target = binaries
    real_copy2 = installers.shutil.copy2

    def copy2(src, dst, *args, **kwargs):
        if str(dst).endswith(".bak"):
            raise PermissionError("read-only")
        return real_copy2(src, dst, *args, **kwargs)

    monkeypatch.setattr(installers.shutil, "copy2", copy2)

    outcome = CopyOverInstaller().install(new_binary, target)

    assert outcome.backup_path is None
    assert target.read_bytes() == b"new binary"


def test_copy_over_failure_leaves_target_untouched(binaries, monkeypatch):
    new_binary, target = binaries
    installer = CopyOverInstaller()
    monkeypatch.setattr(installer, "_copy_binary", _failing_copy)

    with pytest.raises(InstallError) as excinfo:
        installer.install(new_binary, target)

    assert excinfo.value.rolled_back is None
    assert target.read_bytes() == b"old binary"


def test_rename_then_copy_installs_and_keeps_backup(binaries):
    new_binary, target = binaries

    outcome = RenameThenCopyInstaller().install(new_binary, target)

    assert target.read_bytes() == b"new binary"
    assert outcome.backup_path.read_bytes() == b"old binary"
    assert outcome.strategy == "rename-then-copy"


def test_rename_then_copy_rolls_back_when_copy_fails(binaries, monkeypatch):
    new_binary, target = binaries
    installer = RenameThenCopyInstaller()
    monkeypatch.setattr(installer, "_copy_binary", _failing_copy)

    with pytest.raises(InstallError) as excinfo:
        installer.install(new_binary, target)

    assert excinfo.value.rolled_back is True
    assert "previous binary restored" in str(excinfo.value)
    assert target.read_bytes() == b"old binary"
    assert not target.with_name("ez.bak").exists()


def test_rename_then_copy_reports_failed_rollback(binaries, monkeypatch):
    new_binary, target = binaries
    installer = RenameThenCopyInstaller()
    monkeypatch.setattr(installer, "_copy_binary", _failing_copy)
    real_replace = installers.os.replace

    def replace(src, dst):
        if str(src).endswith(".bak"):
            raise PermissionError("locked")
        return real_replace(src, dst)

    monkeypatch.setattr(installers.os, "replace", replace)

    with pytest.raises(InstallError) as excinfo:
        installer.install(new_binary, target)

    assert excinfo.value.rolled_back is False
    assert target.with_name("ez.bak").read_bytes() == b"old binary"


def test_rename_then_copy_rename_failure_changes_nothing(binaries, monkeypatch):
    new_binary, target = binaries

    def replace(_src, _dst):
        raise PermissionError("in use")

    monkeypatch.setattr(installers.os, "replace", replace)

    with pytest.raises(InstallError, match="failed to back up"):
        RenameThenCopyInstaller().install(new_binary, target)
    assert target.read_bytes() == b"old binary"


def test_locate_current_executable(monkeypatch, tmp_path):
    target = tmp_path / "ez"
    assert locate_current_executable(UpdaterConfig(target_path=target)) == target

    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "executable", str(target))
    assert locate_current_executable(UpdaterConfig()) == target.resolve()

    monkeypatch.delattr(sys, "frozen")
    with pytest.raises(InstallError, match="packaged ez binary"):
        locate_current_executable(UpdaterConfig())


def test_backup_names_per_platform(tmp_path):
    assert backup_path_for(tmp_path / "ez").name == "ez.bak"
    assert backup_path_for(tmp_path / "ez.exe").name == "ez.exe.bak"
