"""Amazon S3 uploader (s3://bucket/prefix)."""
import logging
from typing import Any, Dict, Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

from ..errors import PerArtifactUploadError
from ..models import Artifact, Destination, UploadResult
from ..utils.streams import ArtifactStream
from .http import is_transient_status, join_key, quote_key

logger = logging.getLogger(__name__)

# Error codes S3 answers with a 4xx status but that are worth another attempt
TRANSIENT_ERROR_CODES = {"RequestTimeout", "SlowDown", "Throttling", "RequestTimeTooSkewed"}


class S3Uploader:
    """
    Uploads artifacts with aioboto3's managed transfer.

    Large files become multipart uploads. With a custom endpoint
    (S3-compatible stores such as MinIO) the bucket is addressed
    path-style below the endpoint.
    """

    def __init__(
        self,
        session: aioboto3.Session,
        destination: Destination,
        region: str = "us-east-1",
        acl: str = "public-read",
        endpoint: str = "",
    ):
        self._session = session
        self._bucket = destination.bucket
        self._prefix = destination.prefix
        self._region = region
        self._acl = acl
        self._endpoint = endpoint.rstrip("/")

    def key_prefix(self) -> str:
        return self._prefix

    def object_url(self, key: str) -> str:
        if self._endpoint:
            return f"{self._endpoint}/{self._bucket}/{quote_key(key)}"
        return f"https://{self._bucket}.s3.amazonaws.com/{quote_key(key)}"

    def _extra_args(self, artifact: Artifact) -> Dict[str, Any]:
        extra: Dict[str, Any] = {
            "ContentType": artifact.content_type,
            "Metadata": {"sha256sum": artifact.sha256sum},
        }
        if self._acl:
            extra["ACL"] = self._acl
        return extra

    async def upload(self, artifact: Artifact, content: ArtifactStream) -> UploadResult:
        key = join_key(self._prefix, artifact.display_path)
        try:
            async with self._session.client(
                "s3",
                region_name=self._region,
                endpoint_url=self._endpoint or None,
            ) as s3:
                await s3.upload_fileobj(
                    content, self._bucket, key, ExtraArgs=self._extra_args(artifact),
                )
        except ClientError as exc:
            raise _client_error(artifact, exc) from exc
        except (BotoConnectionError, HTTPClientError) as exc:
            raise PerArtifactUploadError(
                f"{type(exc).__name__} uploading {artifact.display_path}: {exc}",
                transient=True,
            ) from exc
        except BotoCoreError as exc:
            raise PerArtifactUploadError(
                f"{type(exc).__name__} uploading {artifact.display_path}: {exc}",
            ) from exc

        logger.debug("Stored %s as s3://%s/%s", artifact.display_path, self._bucket, key)
        return UploadResult(key=key, url=self.object_url(key))


def _client_error(artifact: Artifact, exc: ClientError) -> PerArtifactUploadError:
    error = exc.response.get("Error", {})
    code = error.get("Code", "")
    status_code: Optional[int] = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    transient = code in TRANSIENT_ERROR_CODES or (
        status_code is not None and is_transient_status(status_code)
    )
    return PerArtifactUploadError(
        f"S3 {code or status_code} uploading {artifact.display_path}: {error.get('Message', exc)}",
        transient=transient,
        status_code=status_code,
    )
