"""Application wiring for the export server."""

from __future__ import annotations

from typing import Any, Dict, Optional

from export_server.backend.application.frame_router import FrameRouter
from export_server.backend.application.lifecycle import LifecycleManager
from export_server.backend.component.ffmpeg_sink import open_ffmpeg_sink
from export_server.backend.component.stream_sink import SinkFactory
from export_server.backend.core.metrics import Metrics
from export_server.backend.core.session_state import ExportSession
from export_server.backend.runtime.config import ExportRuntimeConfig
from export_server.utils.logger import LOGGER


class ApplicationRuntime:
    """Builds and owns the export session and its handlers."""

    def __init__(
        self,
        config: ExportRuntimeConfig,
        sink_factory: Optional[SinkFactory] = None,
    ) -> None:
        self.config = config
        self.metrics = Metrics()
        self.session = ExportSession(streaming_enabled=config.stream.enabled)
        self.lifecycle = LifecycleManager(
            self.session,
            config.output,
            config.stream,
            sink_factory or open_ffmpeg_sink,
            self.metrics,
        )
        self.frames = FrameRouter(self.session, config.output, self.metrics)
        if not config.output.enabled:
            LOGGER.warning("Output is disabled; frames and exports will be rejected")

    def health_snapshot(self) -> Dict[str, Any]:
        return {
            "output_enabled": self.config.output.enabled,
            "outputDirectoryName": self.config.output.directory_name,
            "stream_format": self.config.stream.format,
            "stream_buffer": self.config.stream.buffer,
            "export_open": self.session.is_open,
            "export_filename": self.session.filename,
        }

    async def shutdown(self) -> None:
        """Finalize an export left open when the server stops."""
        if not self.session.is_open:
            return
        LOGGER.info("Finalizing open export %s on shutdown", self.session.filename)
        outcome = await self.lifecycle.end(self.session.filename)
        if not outcome.ok:
            LOGGER.warning("Open export could not be finalized on shutdown")
