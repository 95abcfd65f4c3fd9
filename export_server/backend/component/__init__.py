"""Collaborators consumed by the export core: sinks and upload decoding."""

from .stream_sink import (
    SINK_ERRORS,
    BufferedFrameWriter,
    FrameWriter,
    SinkFactory,
    SinkOptions,
    StreamingFrameWriter,
    StreamSink,
    select_frame_writer,
)
from .upload import UploadPart, decode_upload, ensure_directory, write_file

__all__ = [
    "SINK_ERRORS",
    "BufferedFrameWriter",
    "FrameWriter",
    "SinkFactory",
    "SinkOptions",
    "StreamingFrameWriter",
    "StreamSink",
    "select_frame_writer",
    "UploadPart",
    "decode_upload",
    "ensure_directory",
    "write_file",
]
