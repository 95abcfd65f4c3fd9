"""Start and end of encoded export sessions."""

from __future__ import annotations

from typing import Any, Dict, Optional

from export_server.backend.application.outcome import ExportOutcome
from export_server.backend.component.stream_sink import (
    SINK_ERRORS,
    SinkFactory,
    SinkOptions,
    StreamSink,
    select_frame_writer,
)
from export_server.backend.component.upload import ensure_directory, safe_basename
from export_server.backend.core.metrics import Metrics
from export_server.backend.core.session_state import ExportSession
from export_server.backend.runtime.config import (
    OutputRuntimeConfig,
    StreamRuntimeConfig,
)
from export_server.config.default import (
    DEFAULT_FPS,
    DEFAULT_FRAME_ENCODING,
    GIF_MAX_SMOOTH_FPS,
    SUPPORTED_FRAME_ENCODINGS,
)
from export_server.errors import ErrorCode, ExportError
from export_server.utils.logger import LOGGER, set_export_name


class LifecycleManager:
    """Opens and finalizes the session's sink, one at a time."""

    def __init__(
        self,
        session: ExportSession,
        output: OutputRuntimeConfig,
        stream: StreamRuntimeConfig,
        sink_factory: SinkFactory,
        metrics: Metrics,
    ) -> None:
        self._session = session
        self._output = output
        self._stream = stream
        self._sink_factory = sink_factory
        self._metrics = metrics

    def _descriptor(self, filename: Optional[str], streaming: bool) -> Dict[str, Any]:
        return {
            "streaming": streaming,
            "filename": filename,
            "outputDirectoryName": self._output.directory_name,
        }

    async def start(
        self,
        filename: str,
        encoding: Optional[str] = None,
        fps: Optional[float] = None,
    ) -> ExportOutcome:
        """Supersede any open sink with a new one for ``filename``."""
        if not self._session.streaming_enabled:
            return ExportOutcome.success(self._descriptor(filename, False))
        try:
            sink_filename = await self._start(filename, encoding, fps)
        except ExportError as exc:
            LOGGER.error("stream-start failed: %s", exc)
            self._metrics.record_error(exc.code)
            return ExportOutcome.failure(exc)
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("Unexpected stream-start error")
            self._session.reset()
            self._metrics.record_error(ErrorCode.EXPORT_UNEXPECTED)
            return ExportOutcome.from_code(ErrorCode.EXPORT_UNEXPECTED)
        return ExportOutcome.success(self._descriptor(sink_filename, True))

    async def _start(
        self, filename: str, encoding: Optional[str], fps: Optional[float]
    ) -> str:
        directory = self._output.directory
        if directory is None:
            raise ExportError(ErrorCode.STREAM_OUTPUT_DISABLED)
        encoding = encoding or DEFAULT_FRAME_ENCODING
        if encoding not in SUPPORTED_FRAME_ENCODINGS:
            raise ExportError(ErrorCode.ENCODING_UNSUPPORTED)

        fmt = self._stream.format
        sink_filename = f"{safe_basename(filename)}.{fmt}"
        output_path = directory / sink_filename
        if fmt == "gif" and fps is not None and fps > GIF_MAX_SMOOTH_FPS:
            LOGGER.warning(
                "Values above %g FPS may produce choppy GIFs (requested %g)",
                GIF_MAX_SMOOTH_FPS,
                fps,
            )

        async with self._session.lock:
            await self._quiesce()
            set_export_name(sink_filename)
            try:
                await ensure_directory(directory)
            except OSError as exc:
                raise ExportError(ErrorCode.DIRECTORY_CREATE_FAILED, str(exc)) from exc
            options = SinkOptions(
                format=str(fmt),
                output=output_path,
                encoding=encoding,
                fps=fps or self._stream.options.get("default_fps") or DEFAULT_FPS,
                buffer=self._stream.buffer,
                debug=self._stream.debug,
                extra=dict(self._stream.options),
            )
            try:
                sink = await self._sink_factory(options)
            except SINK_ERRORS as exc:
                raise ExportError(ErrorCode.SINK_OPEN_FAILED, str(exc)) from exc
            self._session.install(
                sink, sink_filename, select_frame_writer(sink, self._stream.buffer)
            )
            self._metrics.record_session_started()
        LOGGER.info(
            "Export stream started path=%s encoding=%s fps=%s buffered=%s",
            output_path,
            encoding,
            options.fps,
            self._stream.buffer,
        )
        return sink_filename

    async def _quiesce(self) -> None:
        sink = self._session.detach()
        if sink is None:
            return
        LOGGER.info("Finalizing previous export before starting a new one")
        try:
            await sink.end()
        except SINK_ERRORS:
            LOGGER.exception("Failed to finalize superseded export; discarding it")
            _abort(sink)
            self._metrics.record_session_closed("failed")
            return
        self._metrics.record_session_closed("superseded")

    async def end(self, filename: Optional[str] = None) -> ExportOutcome:
        """Finalize the open sink, if any, and clear the session."""
        if not self._session.streaming_enabled:
            return ExportOutcome.success(self._descriptor(filename, False))
        async with self._session.lock:
            stored = self._session.filename
            sink = self._session.detach()
            if sink is None:
                LOGGER.debug("stream-end with no open export")
                return ExportOutcome.success(self._descriptor(filename, True))
            try:
                await sink.end()
            except SINK_ERRORS as exc:
                LOGGER.exception("Failed to finalize export %s", stored)
                _abort(sink)
                self._metrics.record_session_closed("failed")
                self._metrics.record_error(ErrorCode.SINK_FINALIZE_FAILED)
                return ExportOutcome.from_code(ErrorCode.SINK_FINALIZE_FAILED, str(exc))
            except Exception:  # pylint: disable=broad-except
                LOGGER.exception("Unexpected stream-end error")
                _abort(sink)
                self._metrics.record_session_closed("failed")
                self._metrics.record_error(ErrorCode.EXPORT_UNEXPECTED)
                return ExportOutcome.from_code(ErrorCode.EXPORT_UNEXPECTED)
        self._metrics.record_session_closed("finished")
        LOGGER.info("Export stream finished filename=%s", stored)
        return ExportOutcome.success(self._descriptor(stored or filename, True))


def _abort(sink: StreamSink) -> None:
    try:
        sink.close()
    except SINK_ERRORS:
        LOGGER.exception("Failed to abort export sink")


__all__ = ["LifecycleManager"]
