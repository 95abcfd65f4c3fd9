import sys
from pathlib import Path

import pytest

from export_server import main as main_module
from export_server.config import load_config, validate_config
from export_server.config.loader import ServerConfig
from export_server.utils import logger as logger_module


def _write_yaml(path: Path, text: str) -> Path:
    """Helper for writing a YAML config file."""
    path.write_text(text, encoding="utf-8")
    return path


def _stop_logging_listener() -> None:
    """Helper for  stop logging listener."""
    if logger_module.QUEUE_LISTENER:
        logger_module.QUEUE_LISTENER.stop()
        for handler in logger_module.QUEUE_LISTENER.handlers:
            handler.close()
        logger_module.QUEUE_LISTENER = None


def test_missing_config_uses_defaults(tmp_path):
    """Test missing config uses defaults."""
    cfg = load_config(tmp_path / "absent.yaml")
    assert cfg == ServerConfig()
    assert cfg.stream_format is None
    assert cfg.output_path() == Path("output")


def test_sections_map_onto_config_fields(tmp_path):
    """Test sections map onto config fields."""
    path = _write_yaml(
        tmp_path / "server.yaml",
        """
server:
  host: 0.0.0.0
  port: 8080
output:
  directory: renders
stream:
  format: MP4
  buffer: true
  crf: 23
  default_fps: 60
logging:
  level: DEBUG
  quiet: true
debug: true
""",
    )
    cfg = load_config(path)
    assert cfg.host == "0.0.0.0"
    assert cfg.port == 8080
    assert cfg.output_path() == Path("renders")
    assert cfg.stream_format == "mp4"
    assert cfg.stream_buffer is True
    assert cfg.stream_options == {"crf": 23, "default_fps": 60}
    assert cfg.log_level == "DEBUG"
    assert cfg.quiet is True
    assert cfg.debug is True


def test_null_output_directory_disables_output(tmp_path):
    """Test null output directory disables output."""
    path = _write_yaml(tmp_path / "server.yaml", "output:\n  directory: null\n")
    cfg = load_config(path)
    assert cfg.output_enabled is False
    assert cfg.output_path() is None


def test_unsupported_stream_format_is_rejected(tmp_path):
    """Test unsupported stream format is rejected."""
    path = _write_yaml(tmp_path / "server.yaml", "stream:\n  format: webm\n")
    with pytest.raises(ValueError, match="webm"):
        load_config(path)


@pytest.mark.parametrize("value", [None, False, "", "none", "false"])
def test_disabled_stream_format_normalizes_to_none(value):
    """Test disabled stream format normalizes to none."""
    cfg = ServerConfig(stream_format=value)
    assert validate_config(cfg).stream_format is None


def test_cli_overrides_config_file(tmp_path, monkeypatch):
    """Test cli overrides config file."""
    path = _write_yaml(
        tmp_path / "server.yaml",
        "stream:\n  format: gif\noutput:\n  directory: from-file\n",
    )
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "export-server",
            "--config",
            str(path),
            "--port",
            "9000",
            "--output",
            str(tmp_path / "cli-out"),
            "--stream",
            "mp4",
            "--stream-buffer",
            "--quiet",
        ],
    )
    try:
        cfg = main_module.configure_from_args(main_module.parse_args())
    finally:
        _stop_logging_listener()
    assert cfg.port == 9000
    assert cfg.output_path() == tmp_path / "cli-out"
    assert cfg.stream_format == "mp4"
    assert cfg.stream_buffer is True
    assert cfg.quiet is True
    assert cfg.debug is False


def test_cli_can_disable_stream_and_output(tmp_path, monkeypatch):
    """Test cli can disable stream and output."""
    path = _write_yaml(tmp_path / "server.yaml", "stream:\n  format: gif\n")
    monkeypatch.setattr(
        sys,
        "argv",
        ["export-server", "--config", str(path), "--no-stream", "--no-output"],
    )
    try:
        cfg = main_module.configure_from_args(main_module.parse_args())
    finally:
        _stop_logging_listener()
    assert cfg.stream_format is None
    assert cfg.output_path() is None


def test_runtime_config_reflects_server_config(tmp_path):
    """Test runtime config reflects server config."""
    cfg = ServerConfig(
        output_dir=str(tmp_path / "renders"),
        stream_format="gif",
        stream_buffer=True,
        stream_options={"ffmpeg_path": "/opt/ffmpeg"},
        debug=True,
    )
    runtime_config = main_module.build_runtime_config(cfg)
    assert runtime_config.output.directory == tmp_path / "renders"
    assert runtime_config.output.directory_name == "renders"
    assert runtime_config.stream.enabled
    assert runtime_config.stream.buffer is True
    assert runtime_config.stream.debug is True
    assert runtime_config.stream.options == {"ffmpeg_path": "/opt/ffmpeg"}
