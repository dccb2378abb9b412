"""End-to-end tests for UploadSession with mocked HTTP."""
import json
import os
from unittest.mock import AsyncMock

import httpx
import pytest

from artifact_uploader.config import BackendSettings, RetryPolicy, UploadConfig
from artifact_uploader.destination import DestinationRouter
from artifact_uploader.errors import (
    InvalidDestinationError,
    NoFilesMatchedError,
    RegistrationError,
    UploaderConstructionError,
)
from artifact_uploader.models import ArtifactState, BatchState
from artifact_uploader.orchestrator import UploadSession


class FakeServices:
    """Answers both orchestration service and storage requests."""

    def __init__(self, fail_paths=(), status_error=None):
        self.requests = []
        self._status_error = status_error
        self.registered = []
        self.status_updates = {}
        self._fail_paths = set(fail_paths)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path.endswith("/artifacts") and request.url.host == "api.local":
            payload = json.loads(request.content)
            self.registered = [a["path"] for a in payload["artifacts"]]
            ids = [f"art-{i}" for i in range(len(self.registered))]
            return httpx.Response(201, json={"id": "batch-9", "artifact_ids": ids})

        if request.method == "PUT" and request.url.host == "api.local":
            if self._status_error is not None:
                raise self._status_error
            artifact_id = path.rsplit("/", 1)[1]
            self.status_updates[artifact_id] = json.loads(request.content)
            return httpx.Response(200, json={})

        if any(path.endswith(p) for p in self._fail_paths):
            return httpx.Response(403, text="Access Denied")
        return httpx.Response(200)

    def storage_requests(self):
        return [r for r in self.requests if r.url.host != "api.local"]


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "log").mkdir()
    (tmp_path / "log" / "first.log").write_text("first\n")
    (tmp_path / "log" / "second.log").write_text("second\n")
    return tmp_path


def _session(root, services, environ=None, settings=None):
    config = UploadConfig(
        endpoint="http://api.local",
        access_token="secret",
        concurrency=2,
        retry=RetryPolicy(base_delay=0),
    )
    transport = httpx.MockTransport(services)
    return UploadSession(
        config,
        settings=settings or BackendSettings(),
        router=DestinationRouter(environ=environ or {}),
        root=root,
        api_transport=transport,
        storage_transport=transport,
    )


class TestUploadSession:
    @pytest.mark.asyncio
    async def test_default_backend(self, workspace):
        services = FakeServices()

        async with _session(workspace, services) as session:
            result = await session.upload("log/*.log", "job-1")

        assert result.success
        assert result.batch_id == "batch-9"
        assert services.registered == ["log/first.log", "log/second.log"]
        assert {r.url.path for r in services.storage_requests()} == set()
        upload_paths = sorted(r.url.path for r in services.requests if r.url.path.endswith("/upload"))
        assert upload_paths == [
            "/jobs/job-1/artifacts/art-0/upload",
            "/jobs/job-1/artifacts/art-1/upload",
        ]
        assert services.status_updates["art-0"] == {
            "state": "finished", "key": "job-1/log/first.log", "url": None,
        }

    @pytest.mark.asyncio
    async def test_s3_keys_use_destination_prefix(self, workspace, fake_s3):
        services = FakeServices()
        settings = BackendSettings(s3_access_key_id="AKID", s3_secret_access_key="secret")

        async with _session(workspace, services, settings=settings) as session:
            result = await session.upload("log/*.log", "job-1", "s3://my-bucket/builds/7")

        assert result.success
        assert sorted(a.key for a in result.artifacts) == [
            "builds/7/log/first.log", "builds/7/log/second.log",
        ]
        assert services.storage_requests() == []
        (s3,) = fake_s3.instances
        assert sorted((u["bucket"], u["key"]) for u in s3.uploads) == [
            ("my-bucket", "builds/7/log/first.log"),
            ("my-bucket", "builds/7/log/second.log"),
        ]

    @pytest.mark.asyncio
    async def test_invalid_destination_makes_no_requests(self, workspace):
        services = FakeServices()

        async with _session(workspace, services) as session:
            with pytest.raises(InvalidDestinationError):
                await session.upload("log/*.log", "job-1", "ftp://example.com/x")

        assert services.requests == []

    @pytest.mark.asyncio
    async def test_missing_backend_credentials_make_no_requests(self, workspace):
        services = FakeServices()

        async with _session(workspace, services) as session:
            with pytest.raises(UploaderConstructionError):
                await session.upload("log/*.log", "job-1", "gs://bucket")

        assert services.requests == []

    @pytest.mark.asyncio
    async def test_no_matches_makes_no_requests(self, workspace):
        services = FakeServices()

        async with _session(workspace, services) as session:
            with pytest.raises(NoFilesMatchedError):
                await session.upload("missing/*.bin", "job-1")

        assert services.requests == []

    @pytest.mark.asyncio
    async def test_symlinked_directory_skipped_by_default(self, workspace):
        (workspace / "elsewhere").mkdir()
        (workspace / "elsewhere" / "hidden.log").write_text("hidden\n")
        os.symlink(workspace / "elsewhere", workspace / "log" / "linked", target_is_directory=True)
        services = FakeServices()

        async with _session(workspace, services) as session:
            result = await session.upload("log/**/*.log", "job-1")

        assert result.success
        assert services.registered == ["log/first.log", "log/second.log"]

    @pytest.mark.asyncio
    async def test_partial_failure(self, workspace):
        services = FakeServices(fail_paths={"art-1/upload"})

        async with _session(workspace, services) as session:
            result = await session.upload("log/*.log", "job-1")

        assert result.state == BatchState.PARTIALLY_FAILED
        assert [f.display_path for f in result.failures] == ["log/second.log"]
        assert result.artifacts[0].state == ArtifactState.UPLOADED
        assert services.status_updates["art-1"]["state"] == "error"

    @pytest.mark.asyncio
    async def test_explicit_destination_overrides_configured(self, workspace):
        services = FakeServices()
        settings = BackendSettings(gs_access_token="token")

        async with _session(
            workspace, services,
            environ={"ARTIFACT_UPLOAD_DESTINATION": "ftp://ignored"},
            settings=settings,
        ) as session:
            result = await session.upload("log/first.log", "job-1", "gs://bucket")

        assert result.success
        assert result.artifacts[0].url == "https://storage.googleapis.com/bucket/log/first.log"

    @pytest.mark.asyncio
    async def test_status_report_redirect_loop_fails_artifacts_not_batch(self, workspace, monkeypatch):
        monkeypatch.setattr("artifact_uploader.services.api_client.asyncio.sleep", AsyncMock())
        services = FakeServices(status_error=httpx.TooManyRedirects("loop"))

        async with _session(workspace, services) as session:
            result = await session.upload("log/*.log", "job-1")

        assert result.state == BatchState.PARTIALLY_FAILED
        assert result.failed_count == 2
        assert all(isinstance(f.error, RegistrationError) for f in result.failures)
        assert "loop" in str(result.failures[0].error)

    @pytest.mark.asyncio
    async def test_upload_requires_context(self, workspace):
        session = _session(workspace, FakeServices())

        with pytest.raises(RuntimeError, match="not initialized"):
            await session.upload("log/*.log", "job-1")
