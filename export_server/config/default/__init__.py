"""Default configuration values."""

from .server import (
    DEFAULT_DEBUG,
    DEFAULT_HOST,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_OUTPUT_ENABLED,
    DEFAULT_PORT,
    DEFAULT_QUIET,
    DEFAULT_ROUTE_PREFIX,
    DEFAULT_STREAM_BUFFER,
    DEFAULT_STREAM_FORMAT,
    SERVER_SECTION_MAP,
    SUPPORTED_STREAM_FORMATS,
)
from .stream import (
    DEFAULT_FFMPEG_PATH,
    DEFAULT_FPS,
    DEFAULT_FRAME_ENCODING,
    DEFAULT_MP4_CRF,
    DEFAULT_MP4_PRESET,
    GIF_MAX_SMOOTH_FPS,
    STDERR_TAIL_BYTES,
    SUPPORTED_FRAME_ENCODINGS,
    UPLOAD_CHUNK_BYTES,
)

__all__ = [
    "DEFAULT_DEBUG",
    "DEFAULT_HOST",
    "DEFAULT_LOG_FILE",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_OUTPUT_DIR",
    "DEFAULT_OUTPUT_ENABLED",
    "DEFAULT_PORT",
    "DEFAULT_QUIET",
    "DEFAULT_ROUTE_PREFIX",
    "DEFAULT_STREAM_BUFFER",
    "DEFAULT_STREAM_FORMAT",
    "SERVER_SECTION_MAP",
    "SUPPORTED_STREAM_FORMATS",
    "DEFAULT_FFMPEG_PATH",
    "DEFAULT_FPS",
    "DEFAULT_FRAME_ENCODING",
    "DEFAULT_MP4_CRF",
    "DEFAULT_MP4_PRESET",
    "GIF_MAX_SMOOTH_FPS",
    "STDERR_TAIL_BYTES",
    "SUPPORTED_FRAME_ENCODINGS",
    "UPLOAD_CHUNK_BYTES",
]
