"""Retry loop for a single artifact upload."""
import asyncio
import logging
from typing import Awaitable, Callable

from ..config import RetryPolicy
from ..errors import PerArtifactUploadError
from ..models import Artifact, UploadResult
from ..protocols import IUploader
from ..utils.streams import ArtifactStream

logger = logging.getLogger(__name__)


async def upload_with_retries(
    uploader: IUploader,
    artifact: Artifact,
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> UploadResult:
    """
    Upload one artifact, retrying transient failures with exponential backoff.

    The file is reopened for every attempt. Permanent failures and an
    exhausted retry budget re-raise the last PerArtifactUploadError.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            with open(artifact.path, "rb") as fh:
                return await uploader.upload(artifact, ArtifactStream(fh))
        except OSError as exc:
            raise PerArtifactUploadError(
                f"Cannot read {artifact.display_path}: {exc}"
            ) from exc
        except PerArtifactUploadError as exc:
            if not exc.transient or attempt >= policy.max_attempts:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "Attempt %d/%d for %s failed (%s), retrying in %.1fs",
                attempt, policy.max_attempts, artifact.display_path, exc, delay,
            )
            await sleep(delay)
