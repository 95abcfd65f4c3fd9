"""Runtime configuration for the export server."""

from .config import ExportRuntimeConfig, OutputRuntimeConfig, StreamRuntimeConfig

__all__ = [
    "ExportRuntimeConfig",
    "OutputRuntimeConfig",
    "StreamRuntimeConfig",
]
