"""Routes each uploaded frame into the open sink or straight to disk."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from export_server.backend.application.outcome import ExportOutcome
from export_server.backend.component.stream_sink import (
    SINK_ERRORS,
    FrameWriter,
    StreamSink,
)
from export_server.backend.component.upload import (
    UploadPart,
    ensure_directory,
    safe_basename,
    write_file,
)
from export_server.backend.core.metrics import Metrics
from export_server.backend.core.session_state import ExportSession, SessionSnapshot
from export_server.backend.runtime.config import OutputRuntimeConfig
from export_server.errors import ErrorCategory, ErrorCode, ExportError
from export_server.utils.logger import LOGGER

# Failures that leave the session untouched; the sink is still consistent.
_FRAME_ONLY_CODES = frozenset(
    {
        ErrorCode.SINK_NOT_WRITABLE,
        ErrorCode.FRAME_ENCODING_MISMATCH,
        ErrorCode.STREAM_STOPPED_EARLY,
        ErrorCode.UPLOAD_FILE_MISSING,
    }
)


class FrameRouter:
    """Writes one uploaded frame and reports where it went."""

    def __init__(
        self,
        session: ExportSession,
        output: OutputRuntimeConfig,
        metrics: Metrics,
    ) -> None:
        self._session = session
        self._output = output
        self._metrics = metrics

    async def ingest(self, part: Optional[UploadPart]) -> ExportOutcome:
        directory = self._output.directory
        if directory is None:
            self._metrics.record_error(ErrorCode.SAVE_OUTPUT_DISABLED)
            return ExportOutcome.from_code(ErrorCode.SAVE_OUTPUT_DISABLED)
        if part is None:
            self._metrics.record_error(ErrorCode.UPLOAD_FILE_MISSING)
            return ExportOutcome.from_code(ErrorCode.UPLOAD_FILE_MISSING)

        snapshot = self._session.snapshot()
        try:
            outcome = await self._route(part, snapshot, directory)
        except ExportError as exc:
            self._metrics.record_error(exc.code)
            if exc.code in _FRAME_ONLY_CODES:
                LOGGER.warning("Frame %s rejected: %s", part.filename, exc)
            else:
                LOGGER.error("Frame %s failed: %s", part.filename, exc)
                self._reset(snapshot, exc)
            return ExportOutcome.failure(exc)
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("Unexpected error writing frame %s", part.filename)
            self._metrics.record_error(ErrorCode.EXPORT_UNEXPECTED)
            self._reset(snapshot, None)
            return ExportOutcome.from_code(ErrorCode.EXPORT_UNEXPECTED)
        return outcome

    def _reset(self, snapshot: SessionSnapshot, exc: Optional[ExportError]) -> None:
        # A partially written container cannot be resumed; drop the session
        # the frame was routed against, but never a newer one.
        if self._session.reset(snapshot.generation):
            self._metrics.record_session_closed("failed")
            LOGGER.warning(
                "Export %s discarded after %s",
                snapshot.filename,
                exc.category.value if exc else ErrorCategory.INTERNAL.value,
            )

    async def _route(
        self, part: UploadPart, snapshot: SessionSnapshot, directory: Path
    ) -> ExportOutcome:
        try:
            await ensure_directory(directory)
        except OSError as exc:
            raise ExportError(ErrorCode.DIRECTORY_CREATE_FAILED, str(exc)) from exc

        sink, writer = snapshot.sink, snapshot.writer
        if not self._session.streaming_enabled or sink is None or writer is None:
            return await self._save_file(part, directory)
        return await self._stream_frame(part, snapshot, sink, writer)

    async def _save_file(self, part: UploadPart, directory: Path) -> ExportOutcome:
        filename = safe_basename(part.filename)
        if not filename:
            raise ExportError(ErrorCode.UPLOAD_FILE_MISSING, "Upload has no filename")
        path = directory / filename
        try:
            size = await write_file(path, part.stream)
        except OSError as exc:
            raise ExportError(ErrorCode.FILE_WRITE_FAILED, str(exc)) from exc
        self._metrics.record_frame(streamed=False, size=size)
        LOGGER.info("Saved %s (%d bytes)", path, size)
        return ExportOutcome.success(
            {
                "filename": filename,
                "streaming": False,
                "outputDirectoryName": self._output.directory_name,
            }
        )

    async def _stream_frame(
        self,
        part: UploadPart,
        snapshot: SessionSnapshot,
        sink: StreamSink,
        writer: FrameWriter,
    ) -> ExportOutcome:
        async with self._session.lock:
            # Generation first: a sink stops being writable once finalizing starts.
            if not self._session.is_current(snapshot.generation):
                raise ExportError(ErrorCode.STREAM_STOPPED_EARLY)
            if not sink.is_writable():
                raise ExportError(ErrorCode.SINK_NOT_WRITABLE)
            if part.content_type and part.content_type != sink.encoding:
                raise ExportError(
                    ErrorCode.FRAME_ENCODING_MISMATCH,
                    f"Frame is {part.content_type} but the stream expects "
                    f"{sink.encoding}",
                )
            try:
                size = await writer.write(part.stream, part.filename)
            except SINK_ERRORS as exc:
                raise ExportError(ErrorCode.SINK_WRITE_FAILED, str(exc)) from exc

        self._metrics.record_frame(streamed=True, size=size)
        LOGGER.trace("Streamed %s into %s (%d bytes)", part.filename, snapshot.filename, size)
        return ExportOutcome.success(
            {
                "filename": snapshot.filename,
                "streaming": True,
                "outputDirectoryName": self._output.directory_name,
            }
        )


__all__ = ["FrameRouter"]
