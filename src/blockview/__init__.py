"""blockview - pick a live replica of a block and read a byte range from it."""

from typing import Optional, Sequence

from .core.model import (                                             # re-export
    AccessCredential, BlockDescriptor, ReadRange, ReadResult, ReplicaEndpoint,
    BlockAccessError, NoCandidatesError, NoReachableReplicaError,
    SessionOpenError, TransientReadFailureError,
)
from .core.util import split_lines
from .io import RangeStreamer, ReplicaSelector


def _build_result(endpoint, read_range: ReadRange, data: bytes, lines: bool) -> ReadResult:
    return ReadResult(
        success=True,
        endpoint=endpoint,
        offset=read_range.offset,
        data=data,
        lines=split_lines(data, read_range.offset) if lines else None,
        error=None,
        bytes_fetched=len(data),
    )


async def read_block(candidates: Sequence[ReplicaEndpoint], block: BlockDescriptor,
                     credential: AccessCredential, read_range: ReadRange, *,
                     lines: bool = False,
                     selector: Optional[ReplicaSelector] = None,
                     streamer: Optional[RangeStreamer] = None) -> ReadResult:
    """Select a live replica and read the range from it asynchronously."""
    selector = selector or ReplicaSelector()
    streamer = streamer or RangeStreamer()
    endpoint = await selector.select_async(candidates)
    data = await streamer.stream_async(endpoint, block, credential, read_range)
    return _build_result(endpoint, read_range, data, lines)


def read_block_sync(candidates: Sequence[ReplicaEndpoint], block: BlockDescriptor,
                    credential: AccessCredential, read_range: ReadRange, *,
                    lines: bool = False,
                    selector: Optional[ReplicaSelector] = None,
                    streamer: Optional[RangeStreamer] = None) -> ReadResult:
    """Select a live replica and read the range from it synchronously."""
    selector = selector or ReplicaSelector()
    streamer = streamer or RangeStreamer()
    endpoint = selector.select(candidates)
    data = streamer.stream(endpoint, block, credential, read_range)
    return _build_result(endpoint, read_range, data, lines)


__all__ = [
    "read_block", "read_block_sync",
    "ReplicaSelector", "RangeStreamer",
    "AccessCredential", "BlockDescriptor", "ReadRange", "ReadResult", "ReplicaEndpoint",
    "BlockAccessError", "NoCandidatesError", "NoReachableReplicaError",
    "SessionOpenError", "TransientReadFailureError",
]
