"""Base protocols and wire framing shared by the sync and async session readers."""

import struct
from typing import Protocol, runtime_checkable

from ..core.model import AccessCredential, BlockDescriptor


DATA_TRANSFER_VERSION = 19
OP_READ_BLOCK = 81

STATUS_SUCCESS = 0
STATUS_ERROR = 1
STATUS_ERROR_ACCESS_TOKEN = 5

_OP_HEADER = struct.Struct(">hB")
_READ_BLOCK = struct.Struct(">qqqq")
_NAME_LEN = struct.Struct(">H")
_TOKEN_LEN = struct.Struct(">I")
STATUS = struct.Struct(">h")


def encode_read_request(block: BlockDescriptor, credential: AccessCredential,
                        offset: int, length: int, client_name: str) -> bytes:
    """Frame a read-block request for ``[offset, offset + length)`` of ``block``."""
    name = client_name.encode("utf-8")
    return b"".join((
        _OP_HEADER.pack(DATA_TRANSFER_VERSION, OP_READ_BLOCK),
        _READ_BLOCK.pack(block.block_id, block.generation_stamp, offset, length),
        _NAME_LEN.pack(len(name)), name,
        _TOKEN_LEN.pack(len(credential.token)), credential.token,
    ))


def describe_status(status: int) -> str:
    if status == STATUS_ERROR_ACCESS_TOKEN:
        return "access token rejected"
    if status == STATUS_ERROR:
        return "datanode reported an error"
    return f"unexpected status {status}"


@runtime_checkable
class ByteSession(Protocol):
    """Protocol for an open synchronous read session on one replica."""

    bytes_fetched: int  # running total

    def read(self, length: int) -> bytes:
        """Return between 1 and `length` bytes of the requested range.
        Transient failures → raise OSError.
        """
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class AsyncByteSession(Protocol):
    """Protocol for an open asynchronous read session on one replica."""

    bytes_fetched: int  # running total

    async def read(self, length: int) -> bytes:
        """Return between 1 and `length` bytes of the requested range.
        Transient failures → raise OSError.
        """
        ...

    async def close(self) -> None:
        ...
