"""Artifactory uploader (rt://repository/prefix)."""
import httpx

from ..models import Artifact, Destination, UploadResult
from ..utils.streams import ArtifactStream
from .http import join_key, quote_key, send


class ArtifactoryUploader:
    """Deploys artifacts with a PUT into a repository, checksum attached."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        destination: Destination,
        base_url: str,
        user: str,
        password: str,
    ):
        self._client = client
        self._repository = destination.bucket
        self._prefix = destination.prefix
        self._base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(user, password)

    def key_prefix(self) -> str:
        return self._prefix

    def object_url(self, key: str) -> str:
        return f"{self._base_url}/{self._repository}/{quote_key(key)}"

    async def upload(self, artifact: Artifact, content: ArtifactStream) -> UploadResult:
        key = join_key(self._prefix, artifact.display_path)
        url = self.object_url(key)
        await send(
            self._client, "PUT", url, artifact,
            content=content,
            auth=self._auth,
            headers={
                "Content-Type": artifact.content_type,
                "Content-Length": str(artifact.size),
                "X-Checksum-Sha256": artifact.sha256sum,
            },
        )
        return UploadResult(key=key, url=url)
