"""
Models for the artifact upload pipeline.

Artifacts are mutable only in their state and backend metadata;
everything else is frozen.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class ArtifactState(Enum):
    """Lifecycle of a single artifact."""
    PENDING = "pending"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    FAILED = "failed"


class BatchState(Enum):
    """Overall state of an upload batch."""
    IN_PROGRESS = "in-progress"
    SUCCEEDED = "succeeded"
    PARTIALLY_FAILED = "partially-failed"


class BackendKind(Enum):
    """Storage backend selected by the destination identifier."""
    NONE = "none"
    S3 = "s3"
    GS = "gs"
    ARTIFACTORY = "rt"


@dataclass
class Artifact:
    """One file to be uploaded."""
    path: Path  # absolute source path
    display_path: str  # relative, POSIX separators
    size: int
    content_type: str
    sha256sum: str
    blake3sum: str
    state: ArtifactState = ArtifactState.PENDING
    id: Optional[str] = None
    upload_instructions: Optional[Dict[str, Any]] = None
    # Backend metadata, set after a successful upload
    key: Optional[str] = None
    url: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.path.name

    def to_payload(self) -> Dict[str, Any]:
        """Registration payload for the orchestration service."""
        return {
            "path": self.display_path,
            "absolute_path": str(self.path),
            "file_size": self.size,
            "content_type": self.content_type,
            "sha256sum": self.sha256sum,
            "blake3sum": self.blake3sum,
        }


@dataclass(frozen=True)
class UploadResult:
    """Backend-assigned metadata for an uploaded artifact."""
    key: str
    url: Optional[str] = None


@dataclass(frozen=True)
class Destination:
    """Parsed destination identifier."""
    kind: BackendKind
    bucket: str = ""
    prefix: str = ""
    raw: str = ""


@dataclass
class UploadBatch:
    """The unit of a single invocation."""
    job_id: str
    destination: str
    artifacts: List[Artifact] = field(default_factory=list)
    state: BatchState = BatchState.IN_PROGRESS
    id: Optional[str] = None
    pattern: str = ""


@dataclass(frozen=True)
class ArtifactFailure:
    """A failed artifact and the error that ended it."""
    artifact: Artifact
    error: Exception

    @property
    def display_path(self) -> str:
        return self.artifact.display_path


@dataclass
class BatchResult:
    """Final outcome of an upload batch."""
    batch_id: Optional[str]
    state: BatchState
    artifacts: List[Artifact]
    failures: List[ArtifactFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == BatchState.SUCCEEDED

    @property
    def uploaded_count(self) -> int:
        return sum(1 for a in self.artifacts if a.state == ArtifactState.UPLOADED)

    @property
    def failed_count(self) -> int:
        return len(self.failures)
