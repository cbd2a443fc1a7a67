"""Asynchronous read session against a datanode using asyncio streams."""

import asyncio
import logging
from typing import Optional

from ..core.model import (
    AccessCredential, BlockDescriptor, ReplicaEndpoint, SessionOpenError,
)
from .base import STATUS, STATUS_SUCCESS, describe_status, encode_read_request


logger = logging.getLogger(__name__)


class AsyncDatanodeBlockReader:
    """Asynchronous read session on one replica; owns its stream until closed."""

    def __init__(self, endpoint: ReplicaEndpoint, timeout: float, buffer_size: int = 4096):
        self.endpoint = endpoint
        self.timeout = timeout
        self.buffer_size = buffer_size
        self.bytes_fetched = 0
        self.reads_made = 0
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    async def open(self, block: BlockDescriptor, credential: AccessCredential,
                   offset: int, length: int, client_name: str) -> None:
        """Connect and send the read request; raise SessionOpenError if refused."""
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.endpoint.host, self.endpoint.port),
                self.timeout,
            )
        except (OSError, UnicodeError, asyncio.TimeoutError) as e:
            raise SessionOpenError(f"Failed to connect to {self.endpoint}: {e!r}") from e

        try:
            self._writer.write(encode_read_request(block, credential, offset, length, client_name))
            await asyncio.wait_for(self._writer.drain(), self.timeout)
            raw = await asyncio.wait_for(self._reader.readexactly(STATUS.size), self.timeout)
        except (OSError, asyncio.TimeoutError, asyncio.IncompleteReadError) as e:
            await self.close()
            raise SessionOpenError(f"Read handshake with {self.endpoint} failed: {e!r}") from e

        (status,) = STATUS.unpack(raw)
        if status != STATUS_SUCCESS:
            await self.close()
            raise SessionOpenError(
                f"{self.endpoint} refused block {block.block_id}: {describe_status(status)}",
                status=status,
            )
        logger.debug("Opened async read session on %s for block %d [%d, +%d)",
                     self.endpoint, block.block_id, offset, length)

    async def read(self, length: int) -> bytes:
        """Return up to `length` bytes (at most buffer_size per call)."""
        if self._reader is None:
            raise IOError("Read session is not open")
        self.reads_made += 1
        try:
            data = await asyncio.wait_for(
                self._reader.read(min(length, self.buffer_size)), self.timeout
            )
        except asyncio.TimeoutError as e:
            # asyncio.TimeoutError is not an OSError before Python 3.11
            raise TimeoutError(f"No data from {self.endpoint} within {self.timeout}s") from e
        if not data:
            raise IOError("Premature end of block stream")
        self.bytes_fetched += len(data)
        return data

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the stream if still open."""
        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Error while closing session on %s: %s", self.endpoint, e)


async def open_block_session_async(endpoint: ReplicaEndpoint, block: BlockDescriptor,
                                   credential: AccessCredential, offset: int, length: int, *,
                                   timeout: float, buffer_size: int = 4096,
                                   client_name: str = "blockview") -> AsyncDatanodeBlockReader:
    """Create an opened asynchronous read session."""
    reader = AsyncDatanodeBlockReader(endpoint, timeout, buffer_size)
    await reader.open(block, credential, offset, length, client_name)
    return reader
