"""Transport layer helpers for the export server."""

from .http_server import build_http_app, run_http_server

__all__ = ["build_http_app", "run_http_server"]
