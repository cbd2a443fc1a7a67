from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True, slots=True)
class BlockDescriptor:
    block_id: int
    generation_stamp: int
    length: int

    def __post_init__(self) -> None:
        if self.length < 0:
            raise ValueError(f"Block length cannot be negative: {self.length}")


@dataclass(frozen=True, slots=True)
class ReplicaEndpoint:
    """Data-transfer address of a node claiming to hold a replica."""

    host: str
    port: int

    def __post_init__(self) -> None:
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Port out of range 1-65535: {self.port}")

    @property
    def address(self) -> Tuple[str, int]:
        return (self.host, self.port)

    @classmethod
    def parse(cls, text: str) -> ReplicaEndpoint:
        """Build an endpoint from ``host:port`` (IPv6 hosts as ``[::1]:port``)."""
        host, sep, port = text.strip().rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError(f"Invalid endpoint {text!r}, expected HOST:PORT")
        return cls(host.strip("[]"), int(port))

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class AccessCredential:
    token: bytes = field(default=b"", repr=False)   # opaque, never logged


@dataclass(frozen=True, slots=True)
class ReadRange:
    offset: int
    length: int

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError("Start offset cannot be negative")
        if self.length < 0:
            raise ValueError("Length cannot be negative")

    def effective_length(self, block: BlockDescriptor) -> int:
        """Bytes actually requested: the range clipped to the end of the block."""
        if self.offset > block.length:
            raise ValueError(
                f"Offset {self.offset} is past the end of block {block.block_id} "
                f"({block.length} bytes)"
            )
        return min(self.length, block.length - self.offset)


@dataclass(slots=True)
class ReadResult:
    success: bool
    endpoint: ReplicaEndpoint | None
    offset: int
    data: bytes | None
    lines: List[Tuple[str, int]] | None
    error: str | None
    bytes_fetched: int


class BlockAccessError(IOError):
    """Base class for failures surfaced while locating or reading a block."""


class NoCandidatesError(BlockAccessError):
    """Raised when a block has no replica locations to choose from."""


class NoReachableReplicaError(BlockAccessError):
    """Raised when every candidate replica failed its liveness probe."""


class TransientReadFailureError(BlockAccessError):
    """Raised when the read retry budget runs out with bytes still unread."""


class SessionOpenError(BlockAccessError):
    """Raised when the chosen replica refuses or fails the read handshake."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
