"""Shared HTTP helpers for backend uploaders."""
import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..errors import PerArtifactUploadError
from ..models import Artifact

logger = logging.getLogger(__name__)

# Besides 5xx, these are worth another attempt
TRANSIENT_STATUS_CODES = {408, 429}


def join_key(prefix: str, display_path: str) -> str:
    """Final object key: `prefix/display_path`, prefix omitted when empty."""
    prefix = prefix.strip("/")
    if not prefix:
        return display_path
    return f"{prefix}/{display_path}"


def quote_key(key: str) -> str:
    return quote(key, safe="/~")


def is_transient_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in TRANSIENT_STATUS_CODES


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    artifact: Artifact,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send one upload request and classify failures.

    Raises:
        PerArtifactUploadError: transient for transport errors, timeouts,
            5xx, 408 and 429; permanent for other error responses
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TransportError as exc:
        raise PerArtifactUploadError(
            f"{type(exc).__name__} uploading {artifact.display_path}: {exc}",
            transient=True,
        ) from exc

    if response.status_code >= 400:
        detail = response.text[:200].strip()
        raise PerArtifactUploadError(
            f"HTTP {response.status_code} uploading {artifact.display_path}: {detail}",
            transient=is_transient_status(response.status_code),
            status_code=response.status_code,
        )

    logger.debug("%s %s -> %d", method, url, response.status_code)
    return response
