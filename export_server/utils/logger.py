import logging
import logging.handlers
import queue
from contextvars import ContextVar
from pathlib import Path
from typing import List, Optional

# Custom TRACE level below DEBUG.
TRACE_LEVEL_NUM = 5
logging.addLevelName(TRACE_LEVEL_NUM, "TRACE")


def trace(self: logging.Logger, message: str, *args, **kwargs) -> None:
    """Logger helper for TRACE level."""
    if self.isEnabledFor(TRACE_LEVEL_NUM):
        self._log(TRACE_LEVEL_NUM, message, args, **kwargs)


logging.Logger.trace = trace  # type: ignore

LOG_QUEUE: "queue.Queue[logging.LogRecord]" = queue.Queue()
QUEUE_LISTENER: Optional[logging.handlers.QueueListener] = None

_EXPORT_NAME: ContextVar[str] = ContextVar("export_name", default="-")


def set_export_name(name: Optional[str]) -> None:
    """Tag log records emitted by the current task with an export name."""
    _EXPORT_NAME.set(name or "-")


def clear_export_name() -> None:
    _EXPORT_NAME.set("-")


class _ExportContextFilter(logging.Filter):
    """Stamp records with the export name before they cross the queue."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.export_name = _EXPORT_NAME.get()
        return True


def configure_logging(level: str, log_file: Optional[str]) -> None:
    """Configure root logging with queue-based handlers."""
    global QUEUE_LISTENER
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if level.upper() == "TRACE":
        numeric_level = TRACE_LEVEL_NUM

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s export=%(export_name)s: %(message)s"
    )

    handlers: List[logging.Handler] = []
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    queue_handler = logging.handlers.QueueHandler(LOG_QUEUE)
    queue_handler.addFilter(_ExportContextFilter())
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(queue_handler)

    if QUEUE_LISTENER:
        QUEUE_LISTENER.stop()
    QUEUE_LISTENER = logging.handlers.QueueListener(
        LOG_QUEUE, *handlers, respect_handler_level=True
    )
    QUEUE_LISTENER.start()


LOGGER = logging.getLogger("export_server")

__all__ = [
    "configure_logging",
    "clear_export_name",
    "set_export_name",
    "LOGGER",
    "TRACE_LEVEL_NUM",
]
