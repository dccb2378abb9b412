"""Upload session - wires routing, uploader construction, resolution and the orchestrator."""
import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

import httpx

from ..config import BackendSettings, UploadConfig
from ..content_type import ContentTypeResolver
from ..destination import DestinationRouter
from ..models import Artifact, BatchResult, UploadBatch
from ..paths import PathResolver
from ..services.api_client import HTTPAPIClient
from ..services.registry import ArtifactRegistry
from ..uploaders import build_uploader
from .core import UploadOrchestrator

logger = logging.getLogger(__name__)


class UploadSession:
    """
    Owns the HTTP clients for one invocation and runs the pipeline.

    Usage:
        async with UploadSession(config) as session:
            result = await session.upload("log/**/*.log", job_id, "s3://bucket/prefix")

    Order of work: the destination is routed and the uploader built before
    any file is resolved, so configuration mistakes fail fast.
    """

    def __init__(
        self,
        config: Optional[UploadConfig] = None,
        settings: Optional[BackendSettings] = None,
        router: Optional[DestinationRouter] = None,
        root: Optional[Path] = None,
        api_transport: Optional[httpx.AsyncBaseTransport] = None,
        storage_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config or UploadConfig()
        self._settings = settings or BackendSettings.from_env()
        self._router = router or DestinationRouter()
        self._resolver = PathResolver(root=root, content_types=ContentTypeResolver())
        self._api_transport = api_transport
        self._storage_transport = storage_transport

        # Initialized in __aenter__
        self._api_client: Optional[HTTPAPIClient] = None
        self._storage_client: Optional[httpx.AsyncClient] = None
        self._registry: Optional[ArtifactRegistry] = None

    async def __aenter__(self):
        self._api_client = HTTPAPIClient(
            self._config.endpoint,
            access_token=self._config.access_token,
            timeout=self._config.timeout,
            transport=self._api_transport,
        )
        await self._api_client.__aenter__()
        self._storage_client = httpx.AsyncClient(
            timeout=self._config.timeout,
            transport=self._storage_transport,
        )
        self._registry = ArtifactRegistry(self._api_client)
        return self

    async def __aexit__(self, *args):
        if self._storage_client:
            await self._storage_client.aclose()
        if self._api_client:
            await self._api_client.__aexit__(*args)

    async def upload(
        self,
        pattern: str,
        job_id: str,
        destination: Optional[str] = None,
        progress_callback: Optional[Callable[[Artifact], None]] = None,
    ) -> BatchResult:
        """
        Resolve `pattern` and upload every match for `job_id`.

        Raises:
            InvalidDestinationError: unknown destination scheme
            UploaderConstructionError: backend misconfigured
            NoFilesMatchedError: pattern matched nothing
            RegistrationError: batch registration failed
        """
        if self._registry is None or self._storage_client is None:
            raise RuntimeError("UploadSession not initialized. Use 'async with' context.")

        parsed = self._router.parse(destination)
        uploader = build_uploader(
            parsed,
            job_id,
            self._storage_client,
            self._settings,
            endpoint=self._config.endpoint,
            access_token=self._config.access_token,
        )

        artifacts = await asyncio.to_thread(
            self._resolver.resolve,
            pattern,
            self._config.follow_symlinks,
            self._config.content_type,
        )

        batch = UploadBatch(
            job_id=job_id,
            destination=parsed.raw,
            artifacts=artifacts,
            pattern=pattern,
        )
        orchestrator = UploadOrchestrator(self._registry, self._config, progress_callback)
        return await orchestrator.run(batch, uploader)
