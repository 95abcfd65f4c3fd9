"""Default values for server/runtime configuration."""

from typing import Dict, Tuple

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9966
DEFAULT_ROUTE_PREFIX = "/canvas-sketch-cli"
DEFAULT_OUTPUT_ENABLED = True
DEFAULT_OUTPUT_DIR = "output"
DEFAULT_STREAM_FORMAT = None
DEFAULT_STREAM_BUFFER = False
DEFAULT_DEBUG = False
DEFAULT_QUIET = False
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = None

SUPPORTED_STREAM_FORMATS: Tuple[str, ...] = ("gif", "mp4")

SERVER_SECTION_MAP: Dict[str, Dict[str, str]] = {
    "server": {
        "host": "host",
        "port": "port",
        "route_prefix": "route_prefix",
    },
    "output": {
        "enabled": "output_enabled",
        "directory": "output_dir",
    },
    "stream": {
        "format": "stream_format",
        "buffer": "stream_buffer",
    },
    "logging": {
        "level": "log_level",
        "file": "log_file",
        "quiet": "quiet",
    },
}

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "DEFAULT_ROUTE_PREFIX",
    "DEFAULT_OUTPUT_ENABLED",
    "DEFAULT_OUTPUT_DIR",
    "DEFAULT_STREAM_FORMAT",
    "DEFAULT_STREAM_BUFFER",
    "DEFAULT_DEBUG",
    "DEFAULT_QUIET",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_LOG_FILE",
    "SUPPORTED_STREAM_FORMATS",
    "SERVER_SECTION_MAP",
]
