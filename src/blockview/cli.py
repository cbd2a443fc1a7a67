"""CLI implementation for blockview."""

import asyncio
import base64
import binascii
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from . import read_block, read_block_sync
from .config import settings
from .core.model import (
    AccessCredential, BlockDescriptor, ReadRange, ReadResult, ReplicaEndpoint,
)
from .core.util import chunk_size_to_view, result_asdict
from .io import RangeStreamer, ReplicaSelector

app = typer.Typer(add_completion=False, help="Preview a byte range of a block from a live replica.")


def iter_sources(nodes: list[str]) -> list[str]:
    """Get list of endpoints from nodes argument or stdin."""
    if "-" in nodes:
        # stdin mode
        return [ln.strip() for ln in sys.stdin if ln.strip()]
    elif nodes:
        return list(nodes)
    return []


@app.command()
def main(
    nodes: list[str] = typer.Argument(None, help="Replica endpoints as HOST:PORT, or '-' for stdin"),
    block_id: int = typer.Option(..., "--block-id", help="Block id"),
    gen_stamp: int = typer.Option(0, "--gen-stamp", help="Block generation stamp"),
    block_length: int = typer.Option(..., "--block-length", min=0, help="Total block length in bytes"),
    offset: int = typer.Option(0, "--offset", min=0, help="Start offset into the block"),
    length: int = typer.Option(0, "--length", help="Bytes to view (<= 0 uses the default chunk size)"),
    token: str = typer.Option("", "--token", help="Base64 block access token"),
    lines: bool = typer.Option(False, "--lines", help="Emit lines with their block offsets"),
    text: bool = typer.Option(False, "--text", help="Emit data as UTF-8 text instead of Base64"),
    sync: bool = typer.Option(False, "--sync", help="Force synchronous I/O"),
    timeout: Optional[float] = typer.Option(None, "--timeout", min=0.001, help="Probe/read timeout in seconds"),
    retries: Optional[int] = typer.Option(None, "--retries", min=0, help="Read retry budget"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write to PATH instead of stdout"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging to stderr"),
):
    """Read a range of one block from whichever replica answers first."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    sources = iter_sources(nodes or [])
    if not sources:
        typer.echo("No replica endpoints given.", err=True)
        raise typer.Exit(code=1)

    try:
        candidates = [ReplicaEndpoint.parse(s) for s in sources]
        credential = AccessCredential(base64.b64decode(token, validate=True))
        block = BlockDescriptor(block_id, gen_stamp, block_length)
        read_range = ReadRange(offset, chunk_size_to_view(length, settings.default_chunk_size))
    except (ValueError, binascii.Error) as e:
        typer.echo(f"Invalid arguments: {e}", err=True)
        raise typer.Exit(code=2)

    selector = ReplicaSelector(timeout)
    streamer = RangeStreamer(timeout, retries)
    kwargs = dict(lines=lines, selector=selector, streamer=streamer)

    try:
        if sync:
            res = read_block_sync(candidates, block, credential, read_range, **kwargs)
        else:
            res = asyncio.run(read_block(candidates, block, credential, read_range, **kwargs))
    except (IOError, ValueError) as e:
        res = ReadResult(success=False, endpoint=None, offset=offset, data=None,
                         lines=None, error=str(e), bytes_fetched=0)

    # open output sink
    sink = open(output, "w", encoding="utf-8") if output else sys.stdout
    try:
        json.dump(result_asdict(res, as_text=text), sink, indent=2)
        sink.write("\n")
    finally:
        if output:
            sink.close()

    if not res.success:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
