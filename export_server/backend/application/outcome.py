"""Single result value produced by each export handler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from export_server.errors import ErrorCode, ExportError, http_payload_for


@dataclass(frozen=True)
class ExportOutcome:
    """HTTP status and JSON body for exactly one response."""

    status_code: int
    payload: Dict[str, Any] = field(default_factory=dict)
    error: Optional[ExportError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, payload: Dict[str, Any]) -> "ExportOutcome":
        return cls(200, {**payload, "client": True})

    @classmethod
    def failure(cls, error: ExportError) -> "ExportOutcome":
        return cls(
            error.http_status,
            http_payload_for(error.code, error.detail),
            error,
        )

    @classmethod
    def from_code(
        cls, code: ErrorCode, detail: Optional[str] = None
    ) -> "ExportOutcome":
        return cls.failure(ExportError(code, detail))


__all__ = ["ExportOutcome"]
