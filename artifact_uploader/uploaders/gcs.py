"""Google Cloud Storage uploader (gs://bucket/prefix)."""
import httpx

from ..models import Artifact, Destination, UploadResult
from ..utils.streams import ArtifactStream
from .http import join_key, quote_key, send

GCS_UPLOAD_URL = "https://storage.googleapis.com/upload/storage/v1/b/{bucket}/o"


class GCSUploader:
    """Uploads artifacts with the JSON API's simple media upload."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        destination: Destination,
        access_token: str,
        acl: str = "",
    ):
        self._client = client
        self._bucket = destination.bucket
        self._prefix = destination.prefix
        self._access_token = access_token
        self._acl = acl

    def key_prefix(self) -> str:
        return self._prefix

    def object_url(self, key: str) -> str:
        return f"https://storage.googleapis.com/{self._bucket}/{quote_key(key)}"

    async def upload(self, artifact: Artifact, content: ArtifactStream) -> UploadResult:
        key = join_key(self._prefix, artifact.display_path)
        params = {"uploadType": "media", "name": key}
        if self._acl:
            params["predefinedAcl"] = self._acl

        await send(
            self._client, "POST", GCS_UPLOAD_URL.format(bucket=self._bucket), artifact,
            params=params,
            content=content,
            headers={
                "Authorization": f"Bearer {self._access_token}",
                "Content-Type": artifact.content_type,
                "Content-Length": str(artifact.size),
            },
        )
        return UploadResult(key=key, url=self.object_url(key))
