"""
Artifact Uploader - uploads CI build artifacts and registers them with the
orchestration service.

Backends: default form upload, Amazon S3 (s3://), Google Cloud Storage
(gs://) and Artifactory (rt://).

Usage:
    from artifact_uploader import UploadSession, UploadConfig

    config = UploadConfig(endpoint=api_url, access_token=token)
    async with UploadSession(config) as session:
        result = await session.upload("log/**/*.log", job_id)

    # Upload straight to your own bucket
    result = await session.upload("dist/*", job_id, "s3://my-bucket/builds")

    if not result.success:
        for failure in result.failures:
            print(failure.display_path, failure.error)
"""
from .config import BackendSettings, RetryPolicy, UploadConfig
from .content_type import ContentTypeResolver
from .destination import DestinationRouter
from .errors import (
    ArtifactUploadError,
    InvalidDestinationError,
    NoFilesMatchedError,
    PerArtifactUploadError,
    RegistrationError,
    UploaderConstructionError,
)
from .models import (
    Artifact,
    ArtifactFailure,
    ArtifactState,
    BackendKind,
    BatchResult,
    BatchState,
    Destination,
    UploadBatch,
    UploadResult,
)
from .orchestrator import UploadOrchestrator, UploadSession
from .paths import PathResolver
from .uploaders import build_uploader

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadSession",
    "UploadOrchestrator",
    "PathResolver",
    "ContentTypeResolver",
    "DestinationRouter",
    "build_uploader",
    # Config
    "UploadConfig",
    "RetryPolicy",
    "BackendSettings",
    # Models
    "Artifact",
    "ArtifactFailure",
    "ArtifactState",
    "BackendKind",
    "BatchResult",
    "BatchState",
    "Destination",
    "UploadBatch",
    "UploadResult",
    # Errors
    "ArtifactUploadError",
    "InvalidDestinationError",
    "NoFilesMatchedError",
    "PerArtifactUploadError",
    "RegistrationError",
    "UploaderConstructionError",
]
