"""Map the running OS/architecture to the release artifact built for it."""

from __future__ import annotations

import platform
from dataclasses import dataclass
from typing import Optional

from ..core.config import UpdaterConfig
from ..core.errors import UnsupportedPlatform


@dataclass(frozen=True)
class PlatformDescriptor:
    name: str
    archive_extension: str
    binary_name: str = "ez"
    # Windows keeps the image of a running .exe locked, so it cannot be overwritten in place.
    locks_running_binary: bool = False


SUPPORTED_PLATFORMS: dict[tuple[str, str], PlatformDescriptor] = {
    ("linux", "x86_64"): PlatformDescriptor("linux-x86_64", "tar.gz"),
    ("linux", "aarch64"): PlatformDescriptor("linux-aarch64", "tar.gz"),
    ("macos", "x86_64"): PlatformDescriptor("macos-x86_64", "tar.gz"),
    ("macos", "aarch64"): PlatformDescriptor("macos-aarch64", "tar.gz"),
    ("windows", "x86_64"): PlatformDescriptor(
        "windows-x86_64", "zip", binary_name="ez.exe", locks_running_binary=True
    ),
}

_OS_ALIASES = {
    "darwin": "macos",
    "osx": "macos",
    "win32": "windows",
    "cygwin": "windows",
}

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
    "armv8": "aarch64",
}


def _normalise(value: str, aliases: dict[str, str]) -> str:
    lowered = value.strip().lower()
    return aliases.get(lowered, lowered)


def resolve_platform(os_name: str, arch: str, config: Optional[UpdaterConfig] = None) -> PlatformDescriptor:
    key = (_normalise(os_name, _OS_ALIASES), _normalise(arch, _ARCH_ALIASES))
    descriptor = SUPPORTED_PLATFORMS.get(key)
    if descriptor is None:
        releases_url = (config or UpdaterConfig()).releases_page_url
        raise UnsupportedPlatform(os_name, arch, releases_url)
    return descriptor


def detect_platform(config: Optional[UpdaterConfig] = None) -> PlatformDescriptor:
    return resolve_platform(platform.system(), platform.machine(), config)
