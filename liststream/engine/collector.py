"""Duplex collector: writes accumulate into a list that is also readable."""

import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

OBJECT_HIGH_WATER_MARK = 16
BYTE_HIGH_WATER_MARK = 16 * 1024

EVENTS = ("data", "end", "finish", "drain", "error", "close")

Callback = Callable[[Optional[Exception], Any], None]

_NOTHING = object()


class Mode(str, Enum):
    """How stored items are validated and finalized."""
    BINARY = "binary"
    OBJECTS = "objects"


class WriteAfterEndError(RuntimeError):
    """Raised when writing to a collector that has ended or been destroyed."""


def bytes_to_json(value: Any) -> Any:
    """``json.dumps`` default hook: bytes-like values become lists of byte values."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return list(bytes(value))
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class Collector:
    """Collects written items into a list and replays them on its readable side.

    In binary mode every item is stored as ``bytes`` and the finalized value
    is their concatenation. In object mode items are stored untouched and the
    finalized value is the list itself.
    """

    def __init__(
        self,
        callback: Optional[Callback] = None,
        *,
        objects: bool = False,
        encoding: str = "utf-8",
    ):
        """Initialize the collector.

        Args:
            callback: Called once per cycle as ``callback(None, value)`` after ``end()``
            objects: Store arbitrary values instead of bytes
            encoding: Encoding applied to ``str`` items in binary mode
        """
        self.mode = Mode.OBJECTS if objects else Mode.BINARY
        self.callback = callback
        self.encoding = encoding
        self._chunks: List[Any] = []
        self._cursor = 0
        self._pending_bytes = 0
        self._result: Any = None
        self._finished = False
        self._delivered = False
        self._ended = False
        self._destroyed = False
        self._flowing = False
        self._in_flow = False
        self._need_drain = False
        self._pipes: List[Tuple[Any, bool]] = []
        self._listeners: Dict[str, List[Callable]] = {event: [] for event in EVENTS}

    @classmethod
    def objects(cls, callback: Optional[Callback] = None, **kwargs: Any) -> "Collector":
        """Create a collector in object mode."""
        return cls(callback, objects=True, **kwargs)

    def write(self, item: Any) -> bool:
        """Append an item and make it readable.

        Args:
            item: The value to store; bytes-like or ``str`` in binary mode

        Returns:
            False when the unread backlog has reached the high-water mark.
            The item is stored either way.

        Raises:
            TypeError: A binary collector was given a non bytes-like item
            WriteAfterEndError: The collector already ended or was destroyed
        """
        if self._destroyed:
            raise WriteAfterEndError("write after destroy")
        if self._finished:
            raise WriteAfterEndError("write after end")
        if self.mode is Mode.BINARY:
            item = self._to_bytes(item)
            self._pending_bytes += len(item)
        self._chunks.append(item)

        if self._flowing:
            self._flow()
        if self._over_high_water_mark():
            self._need_drain = True
            return False
        return True

    def end(self, item: Any = _NOTHING) -> None:
        """Signal end-of-input, optionally writing one last item first.

        Finalizes the store, delivers the callback and ``finish`` listeners,
        then ends the readable side once every item has been read. Calling
        it again is a no-op. An exception from the callback propagates after
        ``finish`` and end-of-sequence have been handled.
        """
        if self._destroyed:
            raise WriteAfterEndError("end after destroy")
        if self._finished:
            return
        if item is not _NOTHING:
            self.write(item)

        self._finished = True
        if self.mode is Mode.BINARY:
            self._result = b"".join(self._chunks)
        else:
            self._result = self._chunks
        logger.debug("collector finished: mode=%s items=%d", self.mode.value, len(self._chunks))

        # a raising callback still ends the readable side
        try:
            if self.callback is not None and not self._delivered:
                self._delivered = True
                self.callback(None, self._result)
        finally:
            self._emit("finish", self._result)
            self._flow()

    def destroy(self, error: Optional[Exception] = None) -> None:
        """Abort the stream without finalizing it.

        Piped destinations are detached but not ended and the completion
        callback is never delivered. ``error`` goes to the ``error``
        listeners, or is raised when there are none.
        """
        if self._destroyed:
            return
        self._destroyed = True
        self._flowing = False
        for dest, _ in self._pipes:
            self._detach(dest)
        self._pipes = []
        logger.debug("collector destroyed: error=%r", error)

        unhandled = error is not None and not self._listeners["error"]
        if error is not None and not unhandled:
            self._emit("error", error)
        self._emit("close")
        if unhandled:
            raise error

    def read(self) -> Any:
        """Return the next unread item, or None when nothing is pending."""
        if self._destroyed or self._cursor >= len(self._chunks):
            self._maybe_end()
            return None
        item = self._take()
        self._check_drain()
        self._maybe_end()
        return item

    def __iter__(self) -> Iterator[Any]:
        return self

    def __next__(self) -> Any:
        if self._destroyed or self._cursor >= len(self._chunks):
            self._maybe_end()
            raise StopIteration
        return self.read()

    def pipe(self, dest: Any, end: bool = True) -> Any:
        """Send every unread and future item to ``dest.write()``.

        Args:
            dest: Any object with ``write()``; ``flush()``, ``end()`` and
                ``on("drain", ...)`` are used when it has them
            end: End ``dest`` when this collector's readable side ends

        Returns:
            The destination, for chaining
        """
        if self._ended:
            if end:
                self._end_dest(dest)
            return dest
        self._pipes.append((dest, end))
        on = getattr(dest, "on", None)
        if callable(on):
            on("drain", self.resume)
        self.resume()
        return dest

    def unpipe(self, dest: Any = None) -> None:
        """Detach one destination, or all of them, without ending it.

        The stream pauses once no destination or ``data`` listener is left.
        """
        kept = []
        for target, end in self._pipes:
            if dest is None or target is dest:
                self._detach(target)
            else:
                kept.append((target, end))
        self._pipes = kept
        if not self._pipes and not self._listeners["data"]:
            self._flowing = False

    def pause(self) -> None:
        self._flowing = False

    def resume(self) -> None:
        if self._destroyed:
            return
        self._flowing = True
        self._flow()

    def on(self, event: str, listener: Callable) -> "Collector":
        """Register a listener; a ``data`` listener switches to flowing mode."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")
        self._listeners[event].append(listener)
        if event == "data":
            self.resume()
        return self

    def off(self, event: str, listener: Callable) -> "Collector":
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)
        return self

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def length(self) -> int:
        return len(self._chunks)

    @property
    def readable_length(self) -> int:
        """Stored items not yet surfaced on the readable side."""
        return len(self._chunks) - self._cursor

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def result(self) -> Any:
        """The finalized value, or None before ``end()``."""
        return self._result

    def get(self, index: int) -> Any:
        """Return the item stored by the ``index``-th write.

        Raises:
            IndexError: ``index`` is outside ``[0, length)``
        """
        if not 0 <= index < len(self._chunks):
            raise IndexError(f"index {index} out of range for {len(self._chunks)} items")
        return self._chunks[index]

    def to_json(self) -> str:
        """Serialize the whole store as a compact JSON array.

        Binary items become arrays of byte values.
        """
        return json.dumps(self._chunks, separators=(",", ":"), default=bytes_to_json)

    def clear(self) -> None:
        """Empty the collector so it can take a new sequence.

        The callback fires again on the next ``end()``. Listeners stay registered.
        """
        # a fresh list, the previous one may have been delivered as a result
        self._chunks = []
        self._cursor = 0
        self._pending_bytes = 0
        self._result = None
        self._finished = False
        self._delivered = False
        self._ended = False
        self._need_drain = False
        logger.debug("collector cleared")

    def __repr__(self) -> str:
        return (
            f"<Collector mode={self.mode.value} length={len(self._chunks)} "
            f"finished={self._finished}>"
        )

    def _to_bytes(self, item: Any) -> bytes:
        if isinstance(item, bytes):
            return item
        if isinstance(item, (bytearray, memoryview)):
            return bytes(item)
        if isinstance(item, str):
            return item.encode(self.encoding)
        raise TypeError(
            f"binary collector expects bytes-like or str items, got {type(item).__name__}"
        )

    def _over_high_water_mark(self) -> bool:
        if self.mode is Mode.BINARY:
            return self._pending_bytes >= BYTE_HIGH_WATER_MARK
        return self.readable_length >= OBJECT_HIGH_WATER_MARK

    def _take(self) -> Any:
        item = self._chunks[self._cursor]
        self._cursor += 1
        if self.mode is Mode.BINARY:
            self._pending_bytes -= len(item)
        return item

    def _check_drain(self) -> None:
        if self._need_drain and not self._over_high_water_mark():
            self._need_drain = False
            self._emit("drain")

    def _flow(self) -> None:
        # re-entrant writes (from data listeners or drain handlers) are picked
        # up by the outer loop
        if self._in_flow:
            return
        self._in_flow = True
        try:
            while self._flowing and not self._destroyed and self._cursor < len(self._chunks):
                item = self._take()
                self._emit("data", item)
                for dest, _ in list(self._pipes):
                    if dest.write(item) is False:
                        self._flowing = False
                self._check_drain()
            self._maybe_end()
        finally:
            self._in_flow = False

    def _maybe_end(self) -> None:
        if (
            self._finished
            and not self._ended
            and not self._destroyed
            and self._cursor >= len(self._chunks)
        ):
            self._ended = True
            pipes, self._pipes = self._pipes, []
            for dest, end in pipes:
                self._detach(dest)
                if end:
                    self._end_dest(dest)
            self._emit("end")

    def _end_dest(self, dest: Any) -> None:
        flush = getattr(dest, "flush", None)
        if callable(flush):
            flush()
        end = getattr(dest, "end", None)
        if callable(end):
            end()

    def _detach(self, dest: Any) -> None:
        off = getattr(dest, "off", None)
        if callable(off):
            off("drain", self.resume)

    def _emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners[event]):
            listener(*args)
