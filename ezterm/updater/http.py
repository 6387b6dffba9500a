from __future__ import annotations

import logging
from typing import Any, Optional

import requests  # type: ignore[import-untyped]

from .. import __version__
from ..core.errors import NetworkError

logger = logging.getLogger(__name__)

USER_AGENT = f"ez-term-updater/{__version__}"


def request(
    session: Any,
    url: str,
    *,
    timeout: float,
    stream: bool = False,
    headers: Optional[dict[str, str]] = None,
    error_cls: type[NetworkError] = NetworkError,
):
    """Single GET attempt; transport errors and non-2xx statuses raise ``error_cls``."""
    merged = {"User-Agent": USER_AGENT}
    if headers:
        merged.update(headers)
    try:
        response = session.get(url, headers=merged, timeout=timeout, stream=stream)
    except requests.RequestException as e:
        raise error_cls(url, e) from e

    status = int(response.status_code)
    if not 200 <= status < 300:
        response.close()
        raise error_cls(url, f"HTTP {status}")
    logger.debug("GET %s -> HTTP %s", url, status)
    return response
