"""
Backend uploaders and the factory that selects one.

Every uploader satisfies protocols.IUploader; build_uploader either
returns a ready instance or raises UploaderConstructionError.
"""
import logging
from typing import List

import aioboto3
import httpx

from ..config import BackendSettings
from ..errors import UploaderConstructionError
from ..models import BackendKind, Destination
from ..protocols import IUploader
from .artifactory import ArtifactoryUploader
from .form import FormUploader
from .gcs import GCSUploader
from .s3 import S3Uploader

logger = logging.getLogger(__name__)


def _require(kind: BackendKind, values: dict) -> None:
    missing: List[str] = [name for name, value in values.items() if not value]
    if missing:
        raise UploaderConstructionError(
            f"Cannot upload to {kind.value}:// destination, missing: {', '.join(missing)}"
        )


def build_uploader(
    destination: Destination,
    job_id: str,
    client: httpx.AsyncClient,
    settings: BackendSettings,
    endpoint: str = "",
    access_token: str = "",
) -> IUploader:
    """
    Construct the uploader for a routed destination.

    Args:
        destination: Parsed destination (kind, bucket, prefix)
        job_id: Owning job; key prefix of the default backend
        client: Shared HTTP client for storage requests
        settings: Backend parameters from the environment
        endpoint: Orchestration service URL (default backend only)
        access_token: Orchestration service token (default backend only)

    Raises:
        UploaderConstructionError: on missing or malformed configuration
    """
    kind = destination.kind

    if kind == BackendKind.NONE:
        _require(kind, {"job id": job_id, "API endpoint": endpoint})
        logger.info("Uploading to default artifact storage")
        return FormUploader(client, job_id, endpoint, access_token)

    if not destination.bucket:
        raise UploaderConstructionError(
            f"Destination {destination.raw!r} is missing a bucket or repository name"
        )

    if kind == BackendKind.S3:
        _require(kind, {
            "ARTIFACT_S3_ACCESS_KEY_ID": settings.s3_access_key_id,
            "ARTIFACT_S3_SECRET_ACCESS_KEY": settings.s3_secret_access_key,
        })
        session = aioboto3.Session(
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
            aws_session_token=settings.s3_session_token or None,
            region_name=settings.s3_region,
        )
        uploader = S3Uploader(
            session, destination,
            region=settings.s3_region,
            acl=settings.s3_acl,
            endpoint=settings.s3_endpoint,
        )
    elif kind == BackendKind.GS:
        _require(kind, {"ARTIFACT_GS_ACCESS_TOKEN": settings.gs_access_token})
        uploader = GCSUploader(client, destination, settings.gs_access_token, acl=settings.gs_acl)
    elif kind == BackendKind.ARTIFACTORY:
        _require(kind, {
            "ARTIFACT_ARTIFACTORY_URL": settings.artifactory_url,
            "ARTIFACT_ARTIFACTORY_USER": settings.artifactory_user,
            "ARTIFACT_ARTIFACTORY_PASSWORD": settings.artifactory_password,
        })
        uploader = ArtifactoryUploader(
            client, destination,
            settings.artifactory_url,
            settings.artifactory_user,
            settings.artifactory_password,
        )
    else:
        raise UploaderConstructionError(f"Unsupported backend: {kind}")

    logger.info("Uploading to %r, using your agent configuration", destination.raw)
    return uploader


__all__ = [
    "build_uploader",
    "FormUploader",
    "S3Uploader",
    "GCSUploader",
    "ArtifactoryUploader",
]
