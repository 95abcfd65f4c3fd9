from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from export_server.config.default import (
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


@dataclass
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    route_prefix: str = DEFAULT_ROUTE_PREFIX
    output_enabled: bool = DEFAULT_OUTPUT_ENABLED
    output_dir: Optional[str] = DEFAULT_OUTPUT_DIR
    stream_format: Optional[str] = DEFAULT_STREAM_FORMAT
    stream_buffer: bool = DEFAULT_STREAM_BUFFER
    stream_options: Dict[str, Any] = field(default_factory=dict)
    debug: bool = DEFAULT_DEBUG
    quiet: bool = DEFAULT_QUIET
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = DEFAULT_LOG_FILE

    def output_path(self) -> Optional[Path]:
        """Return the output directory, or None when output is disabled."""
        if not self.output_enabled or not self.output_dir:
            return None
        return Path(self.output_dir).expanduser()


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "server.yaml"

SECTION_MAP: Dict[str, Dict[str, str]] = dict(SERVER_SECTION_MAP)


def load_config(server_path: Optional[Path] = None) -> ServerConfig:
    """Load server configuration from YAML, falling back to defaults."""
    cfg = ServerConfig()
    server_data = _read_yaml(server_path or DEFAULT_CONFIG_PATH)
    if server_data:
        _apply_sections(cfg, server_data)
    validate_config(cfg)
    return cfg


def validate_config(cfg: ServerConfig) -> ServerConfig:
    """Normalize the stream format and reject unsupported values."""
    fmt = cfg.stream_format
    if fmt in (None, False, "", "none", "false"):
        cfg.stream_format = None
        return cfg
    fmt = str(fmt).strip().lower()
    if fmt not in SUPPORTED_STREAM_FORMATS:
        raise ValueError(
            "stream format must be one of "
            f"{', '.join(SUPPORTED_STREAM_FORMATS)} or disabled (got {fmt!r})"
        )
    cfg.stream_format = fmt
    return cfg


def _read_yaml(path: Optional[Path]) -> Optional[Dict[str, Any]]:
    if not path or not path.exists():
        return None
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if isinstance(data, dict):
        return data
    return None


def _apply_sections(cfg: ServerConfig, raw: Dict[str, Any]) -> None:
    field_names = {f.name for f in fields(ServerConfig)}
    for section, mapping in SECTION_MAP.items():
        data = raw.get(section)
        if not isinstance(data, dict):
            continue
        for key, attr in mapping.items():
            if key in data and data[key] is not None:
                setattr(cfg, attr, data[key])
        if section == "output" and "directory" in data and data["directory"] is None:
            cfg.output_enabled = False
        if section == "stream":
            _apply_stream_options(cfg, data, mapping)

    for key, value in raw.items():
        if key in SECTION_MAP:
            continue
        if key in field_names and value is not None:
            setattr(cfg, key, value)


def _apply_stream_options(
    cfg: ServerConfig, data: Dict[str, Any], mapping: Dict[str, str]
) -> None:
    # Keys the server does not interpret are handed to the sink untouched.
    options = {
        key: value
        for key, value in data.items()
        if key not in mapping and value is not None
    }
    if options:
        cfg.stream_options = {**cfg.stream_options, **options}


__all__ = [
    "ServerConfig",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "validate_config",
]
