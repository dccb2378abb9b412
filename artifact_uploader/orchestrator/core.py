"""Core orchestrator - registers, uploads and reports one batch."""
import logging
from typing import Any, Callable, Dict, List, Optional

from ..config import UploadConfig
from ..errors import (
    ArtifactUploadError,
    NoFilesMatchedError,
    PerArtifactUploadError,
    RegistrationError,
)
from ..models import (
    Artifact,
    ArtifactFailure,
    ArtifactState,
    BatchResult,
    BatchState,
    UploadBatch,
)
from ..protocols import IArtifactRegistry, IUploader
from .parallel import run_workers
from .retry import upload_with_retries

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Runs one upload batch end-to-end.

    1. Registers every artifact with the orchestration service.
    2. Uploads with a bounded worker pool, retrying transient failures.
    3. Reports each artifact's terminal state as soon as it is known.

    Failures are collected; one failed artifact never stops the others,
    and uploaded artifacts are not rolled back.
    """

    def __init__(
        self,
        registry: IArtifactRegistry,
        config: Optional[UploadConfig] = None,
        progress_callback: Optional[Callable[[Artifact], None]] = None,
    ):
        self._registry = registry
        self._config = config or UploadConfig()
        self._progress_callback = progress_callback

    async def run(self, batch: UploadBatch, uploader: IUploader) -> BatchResult:
        """
        Upload and register every artifact of `batch`.

        Raises:
            NoFilesMatchedError: batch has no artifacts (before any network call)
            RegistrationError: the initial batch registration failed
        """
        artifacts = batch.artifacts
        if not artifacts:
            raise NoFilesMatchedError(batch.pattern)

        batch_id, artifact_ids, instructions = await self._registry.create_batch(
            batch.job_id, artifacts, upload_destination=batch.destination,
        )
        batch.id = batch_id
        for artifact, artifact_id in zip(artifacts, artifact_ids):
            artifact.id = artifact_id
            artifact.upload_instructions = instructions

        logger.info(
            "Uploading %d artifact(s) for job %s (batch %s, %d parallel)",
            len(artifacts), batch.job_id, batch_id, self._config.concurrency,
        )

        # One slot per artifact; each worker writes only its own index
        failures: List[Optional[ArtifactFailure]] = [None] * len(artifacts)

        async def handle(index: int) -> None:
            artifact = artifacts[index]
            try:
                failures[index] = await self._process(batch, artifact, uploader)
            except Exception as exc:
                logger.exception("Unexpected error processing %s", artifact.display_path)
                artifact.state = ArtifactState.FAILED
                failures[index] = ArtifactFailure(artifact=artifact, error=exc)

        await run_workers(len(artifacts), self._config.concurrency, handle)

        collected = [f for f in failures if f is not None]
        batch.state = BatchState.SUCCEEDED if not collected else BatchState.PARTIALLY_FAILED

        if collected:
            logger.error(
                "Batch %s partially failed: %d of %d artifact(s) failed",
                batch_id, len(collected), len(artifacts),
            )
        else:
            logger.info("Batch %s: all %d artifact(s) uploaded", batch_id, len(artifacts))

        return BatchResult(
            batch_id=batch_id,
            state=batch.state,
            artifacts=artifacts,
            failures=collected,
        )

    async def _process(
        self,
        batch: UploadBatch,
        artifact: Artifact,
        uploader: IUploader,
    ) -> Optional[ArtifactFailure]:
        """Upload one artifact and report it. Never raises."""
        error: Optional[ArtifactUploadError] = None
        artifact.state = ArtifactState.UPLOADING
        logger.debug("Uploading %s (%d bytes)", artifact.display_path, artifact.size)

        try:
            result = await upload_with_retries(uploader, artifact, self._config.retry)
        except ArtifactUploadError as exc:
            error = exc
        except Exception as exc:
            error = PerArtifactUploadError(str(exc) or type(exc).__name__)
            error.__cause__ = exc
        else:
            artifact.key = result.key
            artifact.url = result.url
            artifact.state = ArtifactState.UPLOADED

        if error is not None:
            artifact.state = ArtifactState.FAILED
            logger.error("Failed to upload %s: %s", artifact.display_path, error)

        report_error = await self._report_status(batch, artifact, error)
        if report_error is not None and error is None:
            artifact.state = ArtifactState.FAILED
            error = report_error

        if self._progress_callback:
            try:
                self._progress_callback(artifact)
            except Exception:
                logger.exception("Progress callback failed for %s", artifact.display_path)

        if error is not None:
            return ArtifactFailure(artifact=artifact, error=error)
        logger.info("Uploaded %s", artifact.display_path)
        return None

    async def _report_status(
        self,
        batch: UploadBatch,
        artifact: Artifact,
        error: Optional[Exception],
    ) -> Optional[RegistrationError]:
        """Send the artifact's terminal state; returns the failure instead of raising."""
        try:
            await self._registry.update_status(
                batch.job_id, artifact.id, artifact.state, self._status_metadata(artifact, error),
            )
        except RegistrationError as exc:
            report_error = exc
        except Exception as exc:
            report_error = RegistrationError(f"Status report failed: {exc or type(exc).__name__}")
            report_error.__cause__ = exc
        else:
            return None

        logger.error("Could not report status of %s: %s", artifact.display_path, report_error)
        return report_error

    @staticmethod
    def _status_metadata(artifact: Artifact, error: Optional[Exception]) -> Dict[str, Any]:
        if error is not None:
            return {"error": str(error)}
        return {"key": artifact.key, "url": artifact.url}
