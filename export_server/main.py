import argparse
from pathlib import Path

from export_server.backend.runtime import (
    ExportRuntimeConfig,
    OutputRuntimeConfig,
    StreamRuntimeConfig,
)
from export_server.backend.runtime.runtime import ApplicationRuntime
from export_server.backend.transport import run_http_server
from export_server.config import (
    DEFAULT_CONFIG_PATH,
    ServerConfig,
    load_config,
    validate_config,
)
from export_server.config.default import SUPPORTED_STREAM_FORMATS
from export_server.utils.logger import LOGGER, configure_logging


def build_runtime_config(config: ServerConfig) -> ExportRuntimeConfig:
    """Translate the loaded server config into runtime settings."""
    return ExportRuntimeConfig(
        output=OutputRuntimeConfig(directory=config.output_path()),
        stream=StreamRuntimeConfig(
            format=config.stream_format,
            buffer=bool(config.stream_buffer),
            debug=bool(config.debug),
            options=dict(config.stream_options),
        ),
    )


def serve(config: ServerConfig) -> None:
    """Launch the export HTTP server."""
    runtime = ApplicationRuntime(build_runtime_config(config))
    LOGGER.info(
        "Export server listening on http://%s:%s%s (output=%s, stream=%s)",
        config.host,
        config.port,
        config.route_prefix,
        config.output_path(),
        config.stream_format or "disabled",
    )
    run_http_server(
        runtime,
        host=config.host,
        port=config.port,
        route_prefix=config.route_prefix,
        quiet=config.quiet,
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sketch frame export server")
    parser.add_argument(
        "--config",
        type=str,
        help=f"Path to YAML config (default search: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--host", default=None, help="Interface to bind")
    parser.add_argument("--port", type=int, default=None, help="Port to bind")
    parser.add_argument(
        "--output",
        default=None,
        help="Directory that receives saved frames and encoded exports",
    )
    parser.add_argument(
        "--no-output",
        dest="output_enabled",
        action="store_false",
        help="Disable writing anything to disk",
    )
    parser.add_argument(
        "--stream",
        choices=SUPPORTED_STREAM_FORMATS,
        default=None,
        help="Encode animation exports to this format",
    )
    parser.add_argument(
        "--no-stream",
        dest="no_stream",
        action="store_true",
        help="Save animation frames as individual files (overrides config)",
    )
    parser.add_argument(
        "--stream-buffer",
        dest="stream_buffer",
        action="store_true",
        help="Buffer each frame in memory before handing it to the encoder",
    )
    parser.add_argument(
        "--debug",
        dest="debug",
        action="store_true",
        help="Show encoder output",
    )
    parser.add_argument(
        "--quiet",
        dest="quiet",
        action="store_true",
        help="Disable HTTP access logs",
    )
    parser.set_defaults(
        output_enabled=None, stream_buffer=None, debug=None, quiet=None
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, TRACE); overrides config",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional log file path; overrides config",
    )
    return parser.parse_args()


def configure_from_args(args: argparse.Namespace) -> ServerConfig:
    config_arg_path = Path(args.config).expanduser() if args.config else None
    effective_config_path = config_arg_path or DEFAULT_CONFIG_PATH
    config = load_config(effective_config_path)

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.output is not None:
        config.output_dir = args.output
        config.output_enabled = True
    if args.output_enabled is not None:
        config.output_enabled = args.output_enabled
    if args.stream is not None:
        config.stream_format = args.stream
    if args.no_stream:
        config.stream_format = None
    if args.stream_buffer is not None:
        config.stream_buffer = args.stream_buffer
    if args.debug is not None:
        config.debug = args.debug
    if args.quiet is not None:
        config.quiet = args.quiet
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_file is not None:
        config.log_file = args.log_file
    validate_config(config)

    configure_logging(config.log_level, config.log_file)
    if effective_config_path.exists():
        LOGGER.info("Loaded server config from %s", effective_config_path)
    else:
        LOGGER.info(
            "Server config file not found at %s; using defaults/CLI overrides",
            effective_config_path,
        )
    return config


def main() -> None:
    args = parse_args()
    config = configure_from_args(args)
    serve(config)


if __name__ == "__main__":
    main()
