"""Read a byte range of a block from one replica, retrying failed reads."""

import logging
from typing import List, Optional, Tuple

from ..config import settings
from ..core.model import (
    AccessCredential, BlockDescriptor, ReadRange, ReplicaEndpoint, TransientReadFailureError,
)
from ..core.util import split_lines
from .base import AsyncByteSession, ByteSession
from .datanode_async import open_block_session_async
from .datanode_sync import open_block_session


logger = logging.getLogger(__name__)


class _ReadLoop:
    """Accumulates a fixed-size range, spending a retry budget on failed reads.

    Reading -> RetryPending on a failed read; RetryPending -> Reading while
    budget remains, otherwise Failed.
    """

    def __init__(self, endpoint: ReplicaEndpoint, length: int, max_retries: int):
        self.endpoint = endpoint
        self.buf = bytearray(length)
        self.read_offset = 0
        self.retries_left = max_retries

    @property
    def remaining(self) -> int:
        return len(self.buf) - self.read_offset

    def accept(self, chunk: bytes) -> None:
        if not chunk:
            raise IOError("Premature end of block stream")
        chunk = chunk[:self.remaining]
        self.buf[self.read_offset:self.read_offset + len(chunk)] = chunk
        self.read_offset += len(chunk)

    def retry_or_fail(self, err: Exception) -> None:
        if self.retries_left == 0:
            raise TransientReadFailureError(
                f"Could not read data from datanode {self.endpoint}: "
                f"{self.remaining} of {len(self.buf)} bytes unread"
            ) from err
        self.retries_left -= 1
        logger.debug("Read from %s failed (%r), %d retries left",
                     self.endpoint, err, self.retries_left)


class RangeStreamer:
    """Streams a bounded byte range of a block from a chosen replica."""

    def __init__(self, session_timeout: Optional[float] = None, max_retries: Optional[int] = None, *,
                 buffer_size: Optional[int] = None, client_name: Optional[str] = None,
                 open_session=open_block_session, open_session_async=open_block_session_async):
        self.session_timeout = settings.read_timeout if session_timeout is None else session_timeout
        self.max_retries = settings.max_retries if max_retries is None else max_retries
        self.buffer_size = buffer_size or settings.buffer_size
        self.client_name = client_name or settings.client_name
        self._open_session = open_session
        self._open_session_async = open_session_async

    def _session_args(self, session_timeout):
        return {
            "timeout": self.session_timeout if session_timeout is None else session_timeout,
            "buffer_size": self.buffer_size,
            "client_name": self.client_name,
        }

    def stream(self, endpoint: ReplicaEndpoint, block: BlockDescriptor,
               credential: AccessCredential, read_range: ReadRange,
               session_timeout: Optional[float] = None,
               max_retries: Optional[int] = None) -> bytes:
        """Return exactly the effective length of `read_range`, or raise."""
        amount = read_range.effective_length(block)
        if amount == 0:
            return b""

        loop = _ReadLoop(endpoint, amount, self.max_retries if max_retries is None else max_retries)
        session: ByteSession = self._open_session(
            endpoint, block, credential, read_range.offset, amount,
            **self._session_args(session_timeout),
        )
        try:
            while loop.remaining > 0:
                try:
                    loop.accept(session.read(loop.remaining))
                except OSError as e:
                    loop.retry_or_fail(e)
        finally:
            session.close()
        return bytes(loop.buf)

    async def stream_async(self, endpoint: ReplicaEndpoint, block: BlockDescriptor,
                           credential: AccessCredential, read_range: ReadRange,
                           session_timeout: Optional[float] = None,
                           max_retries: Optional[int] = None) -> bytes:
        """Async counterpart of stream()."""
        amount = read_range.effective_length(block)
        if amount == 0:
            return b""

        loop = _ReadLoop(endpoint, amount, self.max_retries if max_retries is None else max_retries)
        session: AsyncByteSession = await self._open_session_async(
            endpoint, block, credential, read_range.offset, amount,
            **self._session_args(session_timeout),
        )
        try:
            while loop.remaining > 0:
                try:
                    loop.accept(await session.read(loop.remaining))
                except OSError as e:
                    loop.retry_or_fail(e)
        finally:
            await session.close()
        return bytes(loop.buf)

    def stream_lines(self, endpoint: ReplicaEndpoint, block: BlockDescriptor,
                     credential: AccessCredential, read_range: ReadRange,
                     **kwargs) -> List[Tuple[str, int]]:
        """Stream the range and split it into (line, block offset) pairs."""
        data = self.stream(endpoint, block, credential, read_range, **kwargs)
        return split_lines(data, read_range.offset)

    async def stream_lines_async(self, endpoint: ReplicaEndpoint, block: BlockDescriptor,
                                 credential: AccessCredential, read_range: ReadRange,
                                 **kwargs) -> List[Tuple[str, int]]:
        data = await self.stream_async(endpoint, block, credential, read_range, **kwargs)
        return split_lines(data, read_range.offset)
