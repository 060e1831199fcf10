"""Feeding collectors from byte streams and writing their output."""

import json
import sys
from typing import Any, BinaryIO, Callable, Iterator, List, Optional
from contextlib import contextmanager

import yaml

from liststream.engine.collector import Collector, Mode, bytes_to_json
from liststream.engine.config import DEFAULT_CHUNK_SIZE, OutputFormat

def iter_chunks(source: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield successive reads of at most ``chunk_size`` bytes until EOF."""
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            break
        yield chunk

def iter_json_lines(source: BinaryIO) -> Iterator[Any]:
    """Yield one decoded value per non-blank line.

    Raises:
        ValueError: A line is not valid UTF-8 (``UnicodeDecodeError``) or
            not valid JSON (``json.JSONDecodeError``)
    """
    for line in source:
        line = line.strip()
        if line:
            yield json.loads(line)

def feed(collector: Collector, source: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Write everything read from ``source`` into ``collector``.

    Binary collectors receive raw chunks, object collectors receive JSON Lines
    values. The collector is not ended.

    Returns:
        Number of items written
    """
    if collector.mode is Mode.OBJECTS:
        items = iter_json_lines(source)
    else:
        items = iter_chunks(source, chunk_size)
    count = 0
    for item in items:
        collector.write(item)
        count += 1
    return count

def json_line(value: Any) -> bytes:
    return (json.dumps(value, default=bytes_to_json) + "\n").encode("utf-8")

def render(collector: Collector, value: Any, fmt: OutputFormat) -> bytes:
    """Encode a finalized collection.

    Args:
        collector: The collector that produced ``value``
        value: The value handed to the completion callback
        fmt: Output format

    Returns:
        raw: the concatenated bytes (binary) or JSON Lines (objects);
        json: ``collector.to_json()``; yaml: a YAML list of the stored items
    """
    if fmt is OutputFormat.JSON:
        return collector.to_json().encode("utf-8")
    if fmt is OutputFormat.YAML:
        items = [collector.get(i) for i in range(len(collector))]
        return yaml.safe_dump(items, sort_keys=False, allow_unicode=True).encode("utf-8")
    if collector.mode is Mode.BINARY:
        return value
    return b"".join(json_line(item) for item in value)

class StreamHandler:
    """Pipe destination that forwards chunks to stdout, a file and a callback."""

    def __init__(
        self,
        stream: bool = True,
        file: Optional[BinaryIO] = None,
        callback: Optional[Callable[[bytes], None]] = None,
        objects: bool = False,
        buffer: bool = True,
    ):
        """Initialize the stream handler.

        Args:
            stream: Whether to write to stdout
            file: Optional binary file to write to
            callback: Optional callback for each encoded chunk
            objects: Encode incoming values as JSON Lines instead of expecting bytes
            buffer: Keep a copy of everything written for getvalue()
        """
        self.stream = stream
        self.file = file
        self.callback = callback
        self.objects = objects
        self.buffer = buffer
        self.ended = False
        self._buffer: List[bytes] = []

    def write(self, chunk: Any) -> bool:
        """Write a chunk to all configured outputs.

        Returns:
            True, the handler never asks its source to pause
        """
        data = json_line(chunk) if self.objects else bytes(chunk)

        if self.stream:
            out = sys.stdout.buffer
            out.write(data)
            out.flush()

        if self.file:
            self.file.write(data)

        if self.callback:
            self.callback(data)

        if self.buffer:
            self._buffer.append(data)
        return True

    def flush(self) -> None:
        if self.file:
            self.file.flush()

    def end(self) -> None:
        self.ended = True

    def getvalue(self) -> bytes:
        """Get all written bytes."""
        return b"".join(self._buffer)

    @contextmanager
    def capture(self):
        """Context manager that closes the file on exit.

        Yields:
            The handler instance
        """
        try:
            yield self
        finally:
            if self.file:
                self.file.close()
