import threading
from collections import defaultdict
from typing import Dict, Union

from export_server.errors import ErrorCode


class Metrics:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions_started = 0
        self._sessions_finished = 0
        self._sessions_failed = 0
        self._sessions_superseded = 0
        self._open_sinks = 0
        self._frames_streamed = 0
        self._frames_saved = 0
        self._bytes_written = 0
        self._error_counts: Dict[str, int] = defaultdict(int)

    def record_session_started(self) -> None:
        with self._lock:
            self._sessions_started += 1
            self._open_sinks += 1

    def record_session_closed(self, outcome: str) -> None:
        """Record a sink leaving the session: finished, failed or superseded."""
        with self._lock:
            if self._open_sinks > 0:
                self._open_sinks -= 1
            if outcome == "finished":
                self._sessions_finished += 1
            elif outcome == "superseded":
                self._sessions_superseded += 1
            else:
                self._sessions_failed += 1

    def record_frame(self, streamed: bool, size: int) -> None:
        with self._lock:
            if streamed:
                self._frames_streamed += 1
            else:
                self._frames_saved += 1
            self._bytes_written += max(size, 0)

    def record_error(self, code: ErrorCode) -> None:
        with self._lock:
            self._error_counts[code.value] += 1

    def render(self) -> Dict[str, Union[int, Dict[str, int]]]:
        with self._lock:
            return {
                "sessions_started": self._sessions_started,
                "sessions_finished": self._sessions_finished,
                "sessions_failed": self._sessions_failed,
                "sessions_superseded": self._sessions_superseded,
                "open_sinks": self._open_sinks,
                "frames_streamed": self._frames_streamed,
                "frames_saved": self._frames_saved,
                "bytes_written": self._bytes_written,
                "error_count": dict(self._error_counts),
            }
