"""HTTP adapter for orchestration service API operations."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import RegistrationError

logger = logging.getLogger(__name__)


class HTTPAPIClient:
    """
    HTTP client adapter for API calls.

    Implements IAPIClient protocol. Server errors and transport failures
    are retried a few times; anything still failing, including redirect
    loops and undecodable bodies, is a RegistrationError.
    """

    max_retries = 3

    def __init__(
        self,
        base_url: str,
        access_token: str = "",
        timeout: float = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        headers = {"User-Agent": "artifact-uploader"}
        if self._access_token:
            headers["Authorization"] = f"Token {self._access_token}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def post(self, endpoint: str, json: Dict) -> Any:
        return await self._request("POST", endpoint, json)

    async def put(self, endpoint: str, json: Dict) -> Any:
        return await self._request("PUT", endpoint, json)

    async def _request(self, method: str, endpoint: str, json: Dict) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPAPIClient not initialized. Use 'async with' context.")

        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                response = await self._client.request(method, endpoint, json=json)
            except httpx.RequestError as exc:
                if not last_attempt:
                    logger.debug("%s %s failed (%s), retrying", method, endpoint, exc)
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue
                raise RegistrationError(f"{method} {endpoint} failed: {exc}") from exc

            if response.status_code >= 500 and not last_attempt:
                logger.debug("%s %s returned %d, retrying", method, endpoint, response.status_code)
                await asyncio.sleep(0.5 * (attempt + 1))
                continue

            if response.status_code >= 400:
                try:
                    error_detail = response.json()
                except ValueError:
                    error_detail = response.text
                raise RegistrationError(
                    f"API error {response.status_code} on {method} {endpoint}: {error_detail}",
                    status_code=response.status_code,
                )

            return response

        raise RegistrationError(f"Failed to {method} {endpoint} after {self.max_retries} attempts")
