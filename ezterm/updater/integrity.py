"""SHA-256 checksum manifest parsing and artifact verification."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Iterable

from ..core.errors import ChecksumMismatch, EmptyManifest, ManifestMissingEntry, ParseError

logger = logging.getLogger(__name__)

HASH_CHUNK_SIZE = 1024 * 1024


def calculate_sha256(path: Path) -> str:
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest().lower()


def parse_manifest(text: str) -> dict[str, str]:
    """Parse ``<digest> <filename>`` lines into an ordered filename -> digest map.

    Filenames may contain spaces; everything after the digest is rejoined with
    single spaces. Lines without a filename are ignored.
    """
    manifest: dict[str, str] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        manifest[" ".join(parts[1:])] = parts[0]
    return manifest


def load_manifest(path: Path) -> dict[str, str]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"Failed to read checksums file: {e}") from e
    manifest = parse_manifest(text)
    if not manifest:
        raise EmptyManifest("Checksums file is empty or invalid")
    return manifest


def lookup_digest(manifest: dict[str, str], filename: str) -> str:
    digest = manifest.get(filename)
    if digest is not None:
        return digest

    # Release tooling sometimes records paths like "dist/ez-linux-x86_64.tar.gz".
    for name, candidate in manifest.items():
        if name.endswith(filename):
            logger.debug("Matched %s to manifest entry %s by suffix", filename, name)
            return candidate

    raise ManifestMissingEntry(filename)


def verify_checksum(path: Path, expected_digest: str) -> str:
    actual = calculate_sha256(path)
    if actual != expected_digest.strip().lower():
        raise ChecksumMismatch(expected_digest, actual)
    logger.info("Checksum verified for %s", Path(path).name)
    return actual


def format_manifest(entries: Iterable[tuple[str, str]]) -> str:
    return "".join(f"{digest}  {name}\n" for name, digest in entries)


def build_manifest(paths: Iterable[Path]) -> str:
    return format_manifest((Path(p).name, calculate_sha256(Path(p))) for p in paths)
