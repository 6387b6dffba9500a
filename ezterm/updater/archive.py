from __future__ import annotations

import logging
import re
import shutil
import stat
import tarfile
import zipfile
from pathlib import Path, PurePosixPath

from ..core.errors import ExtractionError

logger = logging.getLogger(__name__)

TAR_GZ = "tar.gz"
ZIP = "zip"


def extract_archive(archive_path: Path, destination: Path, archive_extension: str) -> Path:
    logger.info("Extracting %s into %s", archive_path, destination)
    try:
        destination.mkdir(parents=True, exist_ok=True)
        if archive_extension == TAR_GZ:
            with tarfile.open(archive_path, "r:gz") as tar:
                _safe_extract_tar(tar, destination)
        elif archive_extension == ZIP:
            with zipfile.ZipFile(archive_path, "r") as zip_ref:
                _safe_extract_zip(zip_ref, destination)
        else:
            raise ExtractionError(f"unknown archive format: {archive_extension}")
    except (OSError, tarfile.TarError, zipfile.BadZipFile) as e:
        raise ExtractionError(e) from e
    return destination


def locate_binary(payload_root: Path, binary_name: str) -> Path:
    direct = payload_root / binary_name
    if direct.is_file():
        return direct

    candidates = [p for p in payload_root.rglob(binary_name) if p.is_file()]
    if not candidates:
        raise ExtractionError(f"archive did not contain {binary_name}")
    candidates.sort(key=lambda p: (len(p.relative_to(payload_root).parts), str(p)))
    logger.debug("Located %s at %s", binary_name, candidates[0])
    return candidates[0]


def _check_member_name(name: str, base_path: Path) -> Path:
    normalized_name = name.replace("\\", "/")
    member_path = PurePosixPath(normalized_name)
    first_part = member_path.parts[0] if member_path.parts else ""
    if (
        member_path.is_absolute()
        or normalized_name.startswith("/")
        or ".." in member_path.parts
        or ":" in first_part
        or re.match(r"^[A-Za-z]:", first_part)
    ):
        raise ExtractionError(f"unsafe archive entry: {name}")

    resolved_path = (base_path / normalized_name).resolve()
    try:
        resolved_path.relative_to(base_path)
    except ValueError:
        raise ExtractionError(f"unsafe archive entry: {name}") from None
    return resolved_path


def _safe_extract_zip(zip_ref: zipfile.ZipFile, extract_dir: Path) -> None:
    base_path = extract_dir.resolve()
    for member in zip_ref.infolist():
        resolved_path = _check_member_name(member.filename, base_path)

        unix_mode = (member.external_attr >> 16) & 0o170000
        if unix_mode == stat.S_IFLNK:
            raise ExtractionError(f"unsafe archive entry: {member.filename}")

        if member.is_dir():
            resolved_path.mkdir(parents=True, exist_ok=True)
            continue

        resolved_path.parent.mkdir(parents=True, exist_ok=True)
        with zip_ref.open(member, "r") as src, open(resolved_path, "wb") as dst:
            shutil.copyfileobj(src, dst)


def _safe_extract_tar(tar: tarfile.TarFile, extract_dir: Path) -> None:
    base_path = extract_dir.resolve()
    for member in tar.getmembers():
        resolved_path = _check_member_name(member.name, base_path)

        if member.isdir():
            resolved_path.mkdir(parents=True, exist_ok=True)
            continue
        if not member.isfile():
            # Links, devices and fifos have no place in a release tarball.
            raise ExtractionError(f"unsafe archive entry: {member.name}")

        source = tar.extractfile(member)
        if source is None:
            raise ExtractionError(f"unreadable archive entry: {member.name}")
        resolved_path.parent.mkdir(parents=True, exist_ok=True)
        with source, open(resolved_path, "wb") as dst:
            shutil.copyfileobj(source, dst)
        resolved_path.chmod(member.mode & 0o777 or 0o644)
