"""Tests for the orchestration service client and artifact registry."""
import json
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

from artifact_uploader.errors import RegistrationError
from artifact_uploader.models import Artifact, ArtifactState
from artifact_uploader.services import ArtifactRegistry, HTTPAPIClient


def _artifact(display_path: str) -> Artifact:
    return Artifact(
        path=Path("/work") / display_path,
        display_path=display_path,
        size=10,
        content_type="text/plain",
        sha256sum="sha",
        blake3sum="b3",
    )


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("artifact_uploader.services.api_client.asyncio.sleep", AsyncMock())


class TestHTTPAPIClient:
    @pytest.mark.asyncio
    async def test_requires_context(self):
        client = HTTPAPIClient("http://api.local")
        with pytest.raises(RuntimeError, match="not initialized"):
            await client.post("/x", json={})

    @pytest.mark.asyncio
    async def test_sends_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        async with HTTPAPIClient("http://api.local", "secret", transport=httpx.MockTransport(handler)) as api:
            await api.post("/ping", json={"a": 1})

        assert seen[0].headers["authorization"] == "Token secret"
        assert json.loads(seen[0].content) == {"a": 1}

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        responses = [httpx.Response(502), httpx.Response(503), httpx.Response(200, json={"ok": True})]

        def handler(request):
            return responses.pop(0)

        async with HTTPAPIClient("http://api.local", transport=httpx.MockTransport(handler)) as api:
            response = await api.put("/x", json={})

        assert response.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        async with HTTPAPIClient("http://api.local", transport=httpx.MockTransport(handler)) as api:
            with pytest.raises(RegistrationError) as excinfo:
                await api.post("/x", json={})

        assert len(calls) == HTTPAPIClient.max_retries
        assert excinfo.value.status_code == 500

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(422, json={"message": "bad artifact"})

        async with HTTPAPIClient("http://api.local", transport=httpx.MockTransport(handler)) as api:
            with pytest.raises(RegistrationError, match="bad artifact"):
                await api.post("/x", json={})

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_transport_errors_become_registration_errors(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused")

        async with HTTPAPIClient("http://api.local", transport=httpx.MockTransport(handler)) as api:
            with pytest.raises(RegistrationError, match="Connection refused"):
                await api.post("/x", json={})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        httpx.TooManyRedirects("redirect loop"),
        httpx.DecodingError("bad gzip"),
        httpx.UnsupportedProtocol("ftp not allowed"),
    ])
    async def test_non_transport_request_errors_become_registration_errors(self, error):
        def handler(request):
            raise error

        async with HTTPAPIClient("http://api.local", transport=httpx.MockTransport(handler)) as api:
            with pytest.raises(RegistrationError, match=str(error)) as excinfo:
                await api.put("/x", json={})

        assert excinfo.value.__cause__ is error


class TestArtifactRegistry:
    @pytest.mark.asyncio
    async def test_create_batch(self):
        api = AsyncMock()
        api.post.return_value = httpx.Response(
            201,
            json={"id": "batch-1", "artifact_ids": ["a1", "a2"], "upload_instructions": {"action": {}}},
        )
        registry = ArtifactRegistry(api)

        batch_id, ids, instructions = await registry.create_batch(
            "job-1", [_artifact("log/a.log"), _artifact("log/b.log")], upload_destination="s3://b",
        )

        assert batch_id == "batch-1"
        assert ids == ["a1", "a2"]
        assert instructions == {"action": {}}

        endpoint = api.post.call_args[0][0]
        payload = api.post.call_args[1]["json"]
        assert endpoint == "/jobs/job-1/artifacts"
        assert payload["upload_destination"] == "s3://b"
        assert [a["path"] for a in payload["artifacts"]] == ["log/a.log", "log/b.log"]
        assert payload["artifacts"][0]["sha256sum"] == "sha"
        assert payload["artifacts"][0]["blake3sum"] == "b3"

    @pytest.mark.asyncio
    async def test_create_batch_malformed_response(self):
        api = AsyncMock()
        api.post.return_value = httpx.Response(201, json={"unexpected": True})

        with pytest.raises(RegistrationError, match="Malformed"):
            await ArtifactRegistry(api).create_batch("job-1", [_artifact("a.log")])

    @pytest.mark.asyncio
    async def test_create_batch_id_count_mismatch(self):
        api = AsyncMock()
        api.post.return_value = httpx.Response(201, json={"id": "b", "artifact_ids": ["only-one"]})

        with pytest.raises(RegistrationError, match="Expected 2"):
            await ArtifactRegistry(api).create_batch("job-1", [_artifact("a.log"), _artifact("b.log")])

    @pytest.mark.asyncio
    async def test_update_status_uploaded(self):
        api = AsyncMock()
        registry = ArtifactRegistry(api)

        await registry.update_status(
            "job-1", "a1", ArtifactState.UPLOADED, {"key": "job-1/a.log", "url": None},
        )

        api.put.assert_awaited_once_with(
            "/jobs/job-1/artifacts/a1",
            json={"state": "finished", "key": "job-1/a.log", "url": None},
        )

    @pytest.mark.asyncio
    async def test_update_status_failed(self):
        api = AsyncMock()

        await ArtifactRegistry(api).update_status("job-1", "a1", ArtifactState.FAILED, {"error": "HTTP 403"})

        assert api.put.call_args[1]["json"] == {"state": "error", "error": "HTTP 403"}

    @pytest.mark.asyncio
    async def test_update_status_rejects_non_terminal_state(self):
        with pytest.raises(ValueError):
            await ArtifactRegistry(AsyncMock()).update_status("job-1", "a1", ArtifactState.PENDING, {})
