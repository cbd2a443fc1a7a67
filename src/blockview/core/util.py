from __future__ import annotations
import base64
from typing import Any, Dict, List, Tuple
from .model import ReadResult

LINE_DELIMITER = b"\n"


def split_lines(data: bytes, start_offset: int = 0) -> List[Tuple[str, int]]:
    """Split ``data`` into lines, pairing each with the block offset it starts at.

    The delimiter is stripped from each line but still counted, so every
    offset points at the first byte of its line in the original block.
    """
    lines: List[Tuple[str, int]] = []
    offset = start_offset
    parts = data.split(LINE_DELIMITER)
    if parts and parts[-1] == b"":
        parts.pop()             # trailing delimiter, not an extra line
    for raw in parts:
        lines.append((raw.decode("utf-8", errors="replace"), offset))
        offset += len(raw) + 1
    return lines


def chunk_size_to_view(value: int | str | None, default: int) -> int:
    """Viewer chunk size: anything missing or non-positive falls back to ``default``."""
    n = 0 if value is None else int(value)
    return n if n > 0 else default


def result_asdict(res: ReadResult, *, as_text: bool = False) -> Dict[str, Any]:
    """Return a JSON-serialisable dict for a ReadResult."""
    if not res.success:
        return {"success": False, "error": res.error, "bytes_fetched": res.bytes_fetched}
    payload: Dict[str, Any] = {
        "success": True,
        "endpoint": str(res.endpoint) if res.endpoint else None,
        "offset": res.offset,
        "bytes_fetched": res.bytes_fetched,
    }
    if res.lines is not None:
        payload["lines"] = [{"offset": off, "text": text} for text, off in res.lines]
    elif res.data is not None:
        if as_text:
            payload["text"] = res.data.decode("utf-8", errors="replace")
        else:
            payload["data_b64"] = base64.b64encode(res.data).decode("ascii")
    return payload
