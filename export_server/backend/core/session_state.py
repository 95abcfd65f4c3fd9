"""The single export session shared by the lifecycle and frame handlers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from export_server.backend.component.stream_sink import FrameWriter, StreamSink
from export_server.utils.logger import LOGGER


@dataclass(frozen=True)
class SessionSnapshot:
    """Session contents observed at one instant."""

    generation: int
    sink: Optional[StreamSink]
    filename: Optional[str]
    writer: Optional[FrameWriter]

    @property
    def is_open(self) -> bool:
        return self.sink is not None


class ExportSession:
    """Holds at most one open sink and the name of the file it produces.

    Every transition bumps ``generation`` so a frame that observed one
    session can tell whether that session is still installed when its turn
    to write comes. ``lock`` serializes transitions and stream writes.
    """

    def __init__(self, streaming_enabled: bool) -> None:
        self.streaming_enabled = streaming_enabled
        self.lock = asyncio.Lock()
        self._sink: Optional[StreamSink] = None
        self._filename: Optional[str] = None
        self._writer: Optional[FrameWriter] = None
        self._generation = 0

    @property
    def sink(self) -> Optional[StreamSink]:
        return self._sink

    @property
    def filename(self) -> Optional[str]:
        return self._filename

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_open(self) -> bool:
        return self._sink is not None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            generation=self._generation,
            sink=self._sink,
            filename=self._filename,
            writer=self._writer,
        )

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def install(self, sink: StreamSink, filename: str, writer: FrameWriter) -> int:
        """Make ``sink`` the open sink; the previous one must be gone."""
        if not self.streaming_enabled:
            raise RuntimeError("streaming is not configured")
        if self._sink is not None:
            raise RuntimeError("an export sink is already open")
        if not filename:
            raise ValueError("filename is required")
        self._sink = sink
        self._filename = filename
        self._writer = writer
        self._generation += 1
        return self._generation

    def detach(self) -> Optional[StreamSink]:
        """Clear the session and hand the sink to the caller to finalize."""
        sink = self._sink
        self._clear()
        return sink

    def reset(self, generation: Optional[int] = None) -> bool:
        """Abort and discard the open sink.

        With ``generation`` set, only the session of that generation is
        reset; a newer session is left alone. Returns True if a sink was
        closed.
        """
        if generation is not None and generation != self._generation:
            return False
        sink = self._sink
        self._clear()
        if sink is None:
            return False
        try:
            sink.close()
        except (OSError, RuntimeError):
            LOGGER.exception("Failed to abort export sink during reset")
        return True

    def _clear(self) -> None:
        if self._sink is None and self._filename is None:
            return
        self._sink = None
        self._filename = None
        self._writer = None
        self._generation += 1


__all__ = ["ExportSession", "SessionSnapshot"]
