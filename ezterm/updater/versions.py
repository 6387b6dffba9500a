from __future__ import annotations

import logging
import re
from typing import Any, Optional

import requests  # type: ignore[import-untyped]
from packaging import version

from .. import __version__
from ..core.config import UpdaterConfig
from ..core.errors import ParseError
from .http import request

logger = logging.getLogger(__name__)

_TAG_FIELD_RE = re.compile(r'"tag_name"\s*:\s*"([^"]*)"')


def strip_tag_prefix(tag: str) -> str:
    return tag.strip().lstrip("vV")


def is_current(current_version: str, latest_version: str) -> bool:
    """True when the running build already matches the published release.

    Plain string equality decides, widened to PEP 440 equivalence so that
    ``1.2`` and ``1.2.0`` count as the same release. No ordering is applied.
    """
    if current_version == latest_version:
        return True
    try:
        return version.parse(current_version) == version.parse(latest_version)
    except version.InvalidVersion:
        return False


def is_older(current_version: str, latest_version: str) -> bool:
    try:
        return version.parse(latest_version) < version.parse(current_version)
    except version.InvalidVersion:
        return False


class VersionResolver:
    def __init__(self, config: UpdaterConfig, session: Any = None):
        self.config = config
        self._http = session or requests

    def current_version(self) -> str:
        return self.config.current_version or __version__

    def latest_version(self) -> str:
        headers = {"Accept": "application/vnd.github.v3+json"}
        response = request(
            self._http,
            self.config.api_url,
            headers=headers,
            timeout=self.config.metadata_timeout,
        )
        try:
            tag = self._extract_tag(response)
        finally:
            response.close()

        if not tag:
            raise ParseError("Could not parse version from release metadata response")
        latest = strip_tag_prefix(tag)
        logger.info("Latest published release: %s", latest)
        return latest

    def _extract_tag(self, response) -> Optional[str]:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            tag = payload.get("tag_name")
            if isinstance(tag, str) and tag.strip():
                return tag
            return None

        # Not JSON (proxies, truncated bodies): scan the raw text for the field.
        match = _TAG_FIELD_RE.search(response.text or "")
        return match.group(1) if match else None
