"""Default uploader - multipart form upload to the orchestration service."""
import re
from typing import Any, Dict, Optional

import httpx

from ..models import Artifact, UploadResult
from ..utils.streams import ArtifactStream
from .http import join_key, send

_PLACEHOLDER = re.compile(r"\$\{artifact:([a-z_0-9]+)\}")


def interpolate(template: str, artifact: Artifact, key: str) -> str:
    """Expand `${artifact:path}`-style placeholders in upload instructions."""
    values = {
        "path": artifact.display_path,
        "key": key,
        "id": artifact.id or "",
        "content_type": artifact.content_type,
        "sha256sum": artifact.sha256sum,
        "file_size": str(artifact.size),
    }

    def _sub(match: "re.Match[str]") -> str:
        return values.get(match.group(1), match.group(0))

    return _PLACEHOLDER.sub(_sub, str(template))


class FormUploader:
    """
    Uploads via one multipart submission described by the service's
    upload instructions. No bucket credentials are needed.

    Without instructions, posts to the service's own upload endpoint.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        job_id: str,
        endpoint: str,
        access_token: str = "",
    ):
        self._client = client
        self._job_id = job_id
        self._endpoint = endpoint.rstrip("/")
        self._access_token = access_token

    def key_prefix(self) -> str:
        return self._job_id

    async def upload(self, artifact: Artifact, content: ArtifactStream) -> UploadResult:
        key = join_key(self.key_prefix(), artifact.display_path)
        method, url, file_input, data, headers = self._request_spec(artifact, key)

        files = {file_input: (artifact.filename, content.raw, artifact.content_type)}
        response = await send(
            self._client, method, url, artifact,
            data=data, files=files, headers=headers,
        )

        return UploadResult(key=key, url=self._result_url(response))

    def _request_spec(self, artifact: Artifact, key: str):
        instructions: Optional[Dict[str, Any]] = artifact.upload_instructions
        if not instructions:
            url = f"{self._endpoint}/jobs/{self._job_id}/artifacts/{artifact.id}/upload"
            headers = {}
            if self._access_token:
                headers["Authorization"] = f"Token {self._access_token}"
            return "POST", url, "file", {"key": key}, headers

        action = instructions.get("action") or {}
        url = action["url"]
        if action.get("path"):
            url = f"{url.rstrip('/')}/{interpolate(action['path'], artifact, key).lstrip('/')}"
        data = {
            name: interpolate(value, artifact, key)
            for name, value in (instructions.get("data") or {}).items()
        }
        return action.get("method", "POST"), url, action.get("file_input", "file"), data, {}

    @staticmethod
    def _result_url(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        return body.get("url") if isinstance(body, dict) else None
