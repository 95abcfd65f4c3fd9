"""Default values for the encoding stream."""

from typing import Tuple

DEFAULT_FRAME_ENCODING = "image/png"
SUPPORTED_FRAME_ENCODINGS: Tuple[str, ...] = ("image/png", "image/jpeg")
DEFAULT_FPS = 24.0
# GIF frame delays are stored in centiseconds; browsers clamp fast delays.
GIF_MAX_SMOOTH_FPS = 50.0
DEFAULT_FFMPEG_PATH = "ffmpeg"
DEFAULT_MP4_CRF = 18
DEFAULT_MP4_PRESET = "slow"
STDERR_TAIL_BYTES = 4096
UPLOAD_CHUNK_BYTES = 64 * 1024

__all__ = [
    "DEFAULT_FRAME_ENCODING",
    "SUPPORTED_FRAME_ENCODINGS",
    "DEFAULT_FPS",
    "GIF_MAX_SMOOTH_FPS",
    "DEFAULT_FFMPEG_PATH",
    "DEFAULT_MP4_CRF",
    "DEFAULT_MP4_PRESET",
    "STDERR_TAIL_BYTES",
    "UPLOAD_CHUNK_BYTES",
]
