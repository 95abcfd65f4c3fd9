"""Centralized error codes and status mappings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Optional


class ErrorCategory(str, Enum):
    """Broad failure classes used for logging and session recovery."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    RESOURCE = "resource"
    RACE = "race"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    """Stable error identifiers surfaced to clients and logs."""

    # configuration (ERR100x)
    STREAM_OUTPUT_DISABLED = "ERR1001"
    SAVE_OUTPUT_DISABLED = "ERR1002"

    # validation (ERR200x)
    ENCODING_UNSUPPORTED = "ERR2001"
    FRAME_ENCODING_MISMATCH = "ERR2002"
    UPLOAD_INVALID = "ERR2003"
    UPLOAD_FILE_MISSING = "ERR2004"
    REQUEST_INVALID = "ERR2005"

    # resource (ERR300x)
    DIRECTORY_CREATE_FAILED = "ERR3001"
    FILE_WRITE_FAILED = "ERR3002"
    SINK_OPEN_FAILED = "ERR3003"
    SINK_NOT_WRITABLE = "ERR3004"
    SINK_WRITE_FAILED = "ERR3005"
    SINK_FINALIZE_FAILED = "ERR3006"

    # race (ERR400x)
    STREAM_STOPPED_EARLY = "ERR4001"

    # internal (ERR500x)
    EXPORT_UNEXPECTED = "ERR5001"


@dataclass(frozen=True)
class ErrorSpec:
    """Maps an error code to its category, HTTP status and message."""

    code: ErrorCode
    category: ErrorCategory
    http_status: int
    message: str


ERROR_SPECS: Final[dict[ErrorCode, ErrorSpec]] = {
    ErrorCode.STREAM_OUTPUT_DISABLED: ErrorSpec(
        ErrorCode.STREAM_OUTPUT_DISABLED,
        ErrorCategory.CONFIGURATION,
        400,
        "Error trying to start stream, output has been disabled",
    ),
    ErrorCode.SAVE_OUTPUT_DISABLED: ErrorSpec(
        ErrorCode.SAVE_OUTPUT_DISABLED,
        ErrorCategory.CONFIGURATION,
        500,
        "Error trying to saveBlob, output has been disabled",
    ),
    ErrorCode.ENCODING_UNSUPPORTED: ErrorSpec(
        ErrorCode.ENCODING_UNSUPPORTED,
        ErrorCategory.VALIDATION,
        400,
        'Could not start stream, you must use "image/png" or "image/jpeg" encoding',
    ),
    ErrorCode.FRAME_ENCODING_MISMATCH: ErrorSpec(
        ErrorCode.FRAME_ENCODING_MISMATCH,
        ErrorCategory.VALIDATION,
        500,
        "Streaming export only accepts frames in the encoding the stream was "
        "started with",
    ),
    ErrorCode.UPLOAD_INVALID: ErrorSpec(
        ErrorCode.UPLOAD_INVALID,
        ErrorCategory.VALIDATION,
        400,
        "Malformed multipart upload",
    ),
    ErrorCode.UPLOAD_FILE_MISSING: ErrorSpec(
        ErrorCode.UPLOAD_FILE_MISSING,
        ErrorCategory.VALIDATION,
        400,
        "Upload did not contain a file part",
    ),
    ErrorCode.REQUEST_INVALID: ErrorSpec(
        ErrorCode.REQUEST_INVALID,
        ErrorCategory.VALIDATION,
        400,
        "Invalid request body",
    ),
    ErrorCode.DIRECTORY_CREATE_FAILED: ErrorSpec(
        ErrorCode.DIRECTORY_CREATE_FAILED,
        ErrorCategory.RESOURCE,
        500,
        "Could not create output directory",
    ),
    ErrorCode.FILE_WRITE_FAILED: ErrorSpec(
        ErrorCode.FILE_WRITE_FAILED,
        ErrorCategory.RESOURCE,
        500,
        "Could not write frame to disk",
    ),
    ErrorCode.SINK_OPEN_FAILED: ErrorSpec(
        ErrorCode.SINK_OPEN_FAILED,
        ErrorCategory.RESOURCE,
        500,
        "Could not open encoding stream",
    ),
    ErrorCode.SINK_NOT_WRITABLE: ErrorSpec(
        ErrorCode.SINK_NOT_WRITABLE,
        ErrorCategory.RESOURCE,
        500,
        "Encoding stream no longer writable",
    ),
    ErrorCode.SINK_WRITE_FAILED: ErrorSpec(
        ErrorCode.SINK_WRITE_FAILED,
        ErrorCategory.RESOURCE,
        500,
        "Could not write frame to encoding stream",
    ),
    ErrorCode.SINK_FINALIZE_FAILED: ErrorSpec(
        ErrorCode.SINK_FINALIZE_FAILED,
        ErrorCategory.RESOURCE,
        500,
        "Could not finalize encoding stream",
    ),
    ErrorCode.STREAM_STOPPED_EARLY: ErrorSpec(
        ErrorCode.STREAM_STOPPED_EARLY,
        ErrorCategory.RACE,
        500,
        "Export stream stopped early",
    ),
    ErrorCode.EXPORT_UNEXPECTED: ErrorSpec(
        ErrorCode.EXPORT_UNEXPECTED,
        ErrorCategory.INTERNAL,
        500,
        "Unexpected export error",
    ),
}


def category_for(code: ErrorCode) -> ErrorCategory:
    """Return the failure category associated with an error code."""
    return ERROR_SPECS[code].category


def http_status_for(code: ErrorCode) -> int:
    """Return the HTTP status associated with an error code."""
    return ERROR_SPECS[code].http_status


def format_error(code: ErrorCode, detail: Optional[str] = None) -> str:
    """Format an error code and optional detail into a message."""
    spec = ERROR_SPECS[code]
    message = detail if detail else spec.message
    return f"{spec.code.value} {message}"


def http_payload_for(code: ErrorCode, detail: Optional[str] = None) -> dict[str, str]:
    """Build an HTTP error payload for a given error code."""
    spec = ERROR_SPECS[code]
    message = detail if detail else spec.message
    return {"error": message, "code": spec.code.value}


class ExportError(RuntimeError):
    """Raised for application-defined errors with status metadata."""

    def __init__(self, code: ErrorCode, detail: Optional[str] = None) -> None:
        self.code = code
        self.category = category_for(code)
        self.http_status = http_status_for(code)
        self.detail = detail or ERROR_SPECS[code].message
        super().__init__(format_error(code, detail))


__all__ = [
    "ErrorCategory",
    "ErrorCode",
    "ErrorSpec",
    "ERROR_SPECS",
    "ExportError",
    "category_for",
    "format_error",
    "http_payload_for",
    "http_status_for",
]
