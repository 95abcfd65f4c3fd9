"""Encoding sink interface and the frame writers that feed it."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, Dict

from export_server.config.default import DEFAULT_FPS, DEFAULT_FRAME_ENCODING


@dataclass
class SinkOptions:
    """Parameters a sink is constructed from."""

    format: str
    output: Path
    encoding: str = DEFAULT_FRAME_ENCODING
    fps: float = DEFAULT_FPS
    buffer: bool = False
    debug: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)


class StreamSink(ABC):
    """One open encoding pipe producing a single output file."""

    encoding: str

    @abstractmethod
    def is_writable(self) -> bool:
        """Return True while the sink still accepts frames."""

    @abstractmethod
    async def write_frame(self, chunks: AsyncIterator[bytes], name: str) -> None:
        """Write one frame read incrementally from ``chunks``."""

    @abstractmethod
    async def write_buffer_frame(self, data: bytes) -> None:
        """Write one frame that is already fully in memory."""

    @abstractmethod
    async def end(self) -> None:
        """Flush and close the output, raising if encoding failed."""

    @abstractmethod
    def close(self) -> None:
        """Abort immediately, discarding pending output."""


SinkFactory = Callable[[SinkOptions], Awaitable[StreamSink]]

# Exceptions a sink may raise from open, write or finalize.
SINK_ERRORS = (OSError, RuntimeError, ValueError)


class FrameWriter(ABC):
    """Strategy for handing an uploaded frame to a sink."""

    def __init__(self, sink: StreamSink) -> None:
        self.sink = sink

    @abstractmethod
    async def write(self, chunks: AsyncIterator[bytes], name: str) -> int:
        """Write one frame and return the number of bytes consumed."""


class _CountingStream:
    def __init__(self, chunks: AsyncIterator[bytes]) -> None:
        self._chunks = chunks
        self.bytes_read = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._chunks:
            self.bytes_read += len(chunk)
            yield chunk


class StreamingFrameWriter(FrameWriter):
    """Pass the upload stream straight through to the sink."""

    async def write(self, chunks: AsyncIterator[bytes], name: str) -> int:
        counted = _CountingStream(chunks)
        await self.sink.write_frame(counted.__aiter__(), name)
        return counted.bytes_read


class BufferedFrameWriter(FrameWriter):
    """Collect the whole frame in memory before writing it."""

    async def write(self, chunks: AsyncIterator[bytes], name: str) -> int:
        parts = [chunk async for chunk in chunks]
        data = b"".join(parts)
        await self.sink.write_buffer_frame(data)
        return len(data)


def select_frame_writer(sink: StreamSink, buffer: bool) -> FrameWriter:
    """Pick the frame writer variant for a session, once, at start."""
    if buffer:
        return BufferedFrameWriter(sink)
    return StreamingFrameWriter(sink)


__all__ = [
    "SINK_ERRORS",
    "BufferedFrameWriter",
    "FrameWriter",
    "SinkFactory",
    "SinkOptions",
    "StreamSink",
    "StreamingFrameWriter",
    "select_frame_writer",
]
