"""
Protocols (Interfaces) for Dependency Inversion.

Uploaders are independent types satisfying one capability interface;
there is no uploader base class.
"""
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .models import Artifact, ArtifactState, UploadResult
from .utils.streams import ArtifactStream


@runtime_checkable
class IUploader(Protocol):
    """Interface every storage backend implements."""

    def key_prefix(self) -> str:
        """Path prefix under which all artifacts of the batch are stored."""
        ...

    async def upload(self, artifact: Artifact, content: ArtifactStream) -> UploadResult:
        """Transmit the artifact's bytes and return backend metadata."""
        ...


@runtime_checkable
class IAPIClient(Protocol):
    """Interface for API operations."""

    async def post(self, endpoint: str, json: Dict) -> Any:
        """POST request to API."""
        ...

    async def put(self, endpoint: str, json: Dict) -> Any:
        """PUT request to API."""
        ...


@runtime_checkable
class IArtifactRegistry(Protocol):
    """Interface for the orchestration service's artifact records."""

    async def create_batch(
        self,
        job_id: str,
        artifacts: List[Artifact],
        upload_destination: str = "",
    ) -> Tuple[str, List[str], Optional[Dict[str, Any]]]:
        """Register artifacts; returns (batch id, artifact ids, upload instructions)."""
        ...

    async def update_status(
        self,
        job_id: str,
        artifact_id: str,
        state: ArtifactState,
        metadata: Dict[str, Any],
    ) -> None:
        """Report an artifact's terminal state."""
        ...
