"""
Artifact Registry - Single Responsibility: record artifacts with the
orchestration service.

Implements Repository Pattern for artifact records.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..errors import RegistrationError
from ..models import Artifact, ArtifactState
from ..protocols import IAPIClient

logger = logging.getLogger(__name__)

# Wire names for terminal artifact states
_STATE_NAMES = {
    ArtifactState.UPLOADED: "finished",
    ArtifactState.FAILED: "error",
}


class ArtifactRegistry:
    """
    Repository for artifact records on the orchestration service.

    Implements IArtifactRegistry.
    """

    def __init__(self, api_client: IAPIClient):
        """
        Initialize registry.

        Args:
            api_client: HTTP client for API calls
        """
        self._api = api_client

    async def create_batch(
        self,
        job_id: str,
        artifacts: List[Artifact],
        upload_destination: str = "",
    ) -> Tuple[str, List[str], Optional[Dict[str, Any]]]:
        """
        Register a batch of pending artifacts.

        Returns:
            (batch id, one artifact id per artifact in order, upload instructions)

        Raises:
            RegistrationError: on API failure or a malformed response
        """
        response = await self._api.post(f"/jobs/{job_id}/artifacts", json={
            "artifacts": [artifact.to_payload() for artifact in artifacts],
            "upload_destination": upload_destination,
        })

        try:
            data = response.json()
            batch_id = str(data["id"])
            artifact_ids = [str(i) for i in data["artifact_ids"]]
        except (ValueError, KeyError, TypeError) as exc:
            raise RegistrationError(f"Malformed batch response: {exc}") from exc

        if len(artifact_ids) != len(artifacts):
            raise RegistrationError(
                f"Expected {len(artifacts)} artifact ids, got {len(artifact_ids)}"
            )

        logger.debug("Created artifact batch %s with %d artifacts", batch_id, len(artifact_ids))
        return batch_id, artifact_ids, data.get("upload_instructions")

    async def update_status(
        self,
        job_id: str,
        artifact_id: str,
        state: ArtifactState,
        metadata: Dict[str, Any],
    ) -> None:
        """
        Report the terminal state of one artifact.

        Args:
            job_id: Owning job
            artifact_id: Id returned by create_batch
            state: UPLOADED or FAILED
            metadata: key/url on success, error on failure
        """
        if state not in _STATE_NAMES:
            raise ValueError(f"Not a terminal artifact state: {state}")

        await self._api.put(f"/jobs/{job_id}/artifacts/{artifact_id}", json={
            "state": _STATE_NAMES[state],
            **metadata,
        })
