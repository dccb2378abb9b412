"""Readable content stream handed to uploaders."""
import asyncio
from typing import AsyncIterator, BinaryIO

from .hashing import CHUNK_SIZE


class ArtifactStream:
    """
    Async byte stream over an open binary file.

    Reads happen in a worker thread so the event loop is not blocked.
    Iterating yields fixed-size chunks; `read(size)` makes the stream an
    async file object for transfer managers. The underlying file is
    exposed as `raw` for multipart bodies, which httpx reads itself.
    """

    def __init__(self, fileobj: BinaryIO, chunk_size: int = CHUNK_SIZE):
        self.raw = fileobj
        self._chunk_size = chunk_size

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.read(self._chunk_size)
            if not chunk:
                break
            yield chunk

    async def read(self, size: int = -1) -> bytes:
        """Read up to `size` bytes, or the remaining content when negative."""
        return await asyncio.to_thread(self.raw.read, size)
