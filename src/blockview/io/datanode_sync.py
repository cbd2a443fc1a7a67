"""Synchronous read session against a datanode using blocking sockets."""

import logging
import socket

from ..core.model import (
    AccessCredential, BlockDescriptor, ReplicaEndpoint, SessionOpenError,
)
from .base import STATUS, STATUS_SUCCESS, describe_status, encode_read_request


logger = logging.getLogger(__name__)


class DatanodeBlockReader:
    """One read session on one replica; owns its socket until closed."""

    def __init__(self, endpoint: ReplicaEndpoint, timeout: float, buffer_size: int = 4096):
        self.endpoint = endpoint
        self.timeout = timeout
        self.buffer_size = buffer_size
        self.bytes_fetched = 0
        self.reads_made = 0
        self._sock: socket.socket | None = None

    def open(self, block: BlockDescriptor, credential: AccessCredential,
             offset: int, length: int, client_name: str) -> None:
        """Connect and send the read request; raise SessionOpenError if refused."""
        try:
            self._sock = socket.create_connection(self.endpoint.address, timeout=self.timeout)
        except (OSError, UnicodeError) as e:
            raise SessionOpenError(f"Failed to connect to {self.endpoint}: {e}") from e

        try:
            self._sock.sendall(encode_read_request(block, credential, offset, length, client_name))
            (status,) = STATUS.unpack(self._recv_exact(STATUS.size))
        except OSError as e:
            self.close()
            raise SessionOpenError(f"Read handshake with {self.endpoint} failed: {e}") from e

        if status != STATUS_SUCCESS:
            self.close()
            raise SessionOpenError(
                f"{self.endpoint} refused block {block.block_id}: {describe_status(status)}",
                status=status,
            )
        logger.debug("Opened read session on %s for block %d [%d, +%d)",
                     self.endpoint, block.block_id, offset, length)

    def _recv_exact(self, n: int) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            chunk = self._sock.recv(n - len(buf))
            if not chunk:
                raise IOError(f"Connection closed after {len(buf)} of {n} bytes")
            buf.extend(chunk)
        return bytes(buf)

    def read(self, length: int) -> bytes:
        """Return up to `length` bytes (at most buffer_size per call)."""
        if self._sock is None:
            raise IOError("Read session is not open")
        self.reads_made += 1
        data = self._sock.recv(min(length, self.buffer_size))
        if not data:
            raise IOError("Premature end of block stream")
        self.bytes_fetched += len(data)
        return data

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close the socket if still open."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None


def open_block_session(endpoint: ReplicaEndpoint, block: BlockDescriptor,
                       credential: AccessCredential, offset: int, length: int, *,
                       timeout: float, buffer_size: int = 4096,
                       client_name: str = "blockview") -> DatanodeBlockReader:
    """Create an opened synchronous read session."""
    reader = DatanodeBlockReader(endpoint, timeout, buffer_size)
    reader.open(block, credential, offset, length, client_name)
    return reader
