"""I/O layer for blockview - replica probing and range read sessions."""

# Re-export these for import convenience
from .base import ByteSession, AsyncByteSession
from .datanode_sync import DatanodeBlockReader, open_block_session
from .datanode_async import AsyncDatanodeBlockReader, open_block_session_async
from .selector import ReplicaSelector, probe_endpoint, probe_endpoint_async
from .streamer import RangeStreamer
