"""ffmpeg-backed encoding sink reading image frames from stdin."""

from __future__ import annotations

import asyncio
import os
from typing import AsyncIterator, List, Optional

from export_server.backend.component.stream_sink import SinkOptions, StreamSink
from export_server.config.default import (
    DEFAULT_FFMPEG_PATH,
    DEFAULT_FPS,
    DEFAULT_MP4_CRF,
    DEFAULT_MP4_PRESET,
    STDERR_TAIL_BYTES,
)
from export_server.utils.logger import LOGGER

_INPUT_CODECS = {"image/png": "png", "image/jpeg": "mjpeg"}
_GIF_FILTER = "[0:v]split[a][b];[a]palettegen[p];[b][p]paletteuse"


def ffmpeg_debug_enabled(debug: bool) -> bool:
    return debug or os.getenv("DEBUG_FFMPEG", "").strip() == "1"


def build_ffmpeg_args(options: SinkOptions) -> List[str]:
    """Build the ffmpeg command line for a sink."""
    extra = options.extra
    codec = _INPUT_CODECS.get(options.encoding)
    if codec is None:
        raise ValueError(f"unsupported frame encoding {options.encoding!r}")
    fps = options.fps if options.fps and options.fps > 0 else DEFAULT_FPS
    args = [
        str(extra.get("ffmpeg_path") or DEFAULT_FFMPEG_PATH),
        "-y",
        "-hide_banner",
        "-loglevel",
        "info" if ffmpeg_debug_enabled(options.debug) else "error",
        "-f",
        "image2pipe",
        "-framerate",
        f"{fps:g}",
        "-c:v",
        codec,
        "-i",
        "-",
    ]
    if options.format == "mp4":
        args += [
            "-c:v",
            "libx264",
            "-preset",
            str(extra.get("preset", DEFAULT_MP4_PRESET)),
            "-crf",
            str(extra.get("crf", DEFAULT_MP4_CRF)),
            # libx264 with yuv420p needs even dimensions.
            "-vf",
            "pad=ceil(iw/2)*2:ceil(ih/2)*2",
            "-pix_fmt",
            "yuv420p",
            "-movflags",
            "+faststart",
        ]
    elif options.format == "gif":
        args += ["-filter_complex", _GIF_FILTER]
    else:
        raise ValueError(f"unsupported stream format {options.format!r}")
    args.append(str(options.output))
    return args


class FfmpegStreamSink(StreamSink):
    """Pipes encoded image frames into an ffmpeg child process."""

    def __init__(
        self, process: asyncio.subprocess.Process, options: SinkOptions
    ) -> None:
        self.encoding = options.encoding
        self.options = options
        self._process = process
        self._debug = ffmpeg_debug_enabled(options.debug)
        self._stderr_tail = bytearray()
        self._stderr_task: Optional[asyncio.Task] = None
        self._frames = 0
        self._closed = False

    @property
    def frames_written(self) -> int:
        return self._frames

    def start_stderr_drain(self) -> None:
        if self._stderr_task is None and self._process.stderr is not None:
            self._stderr_task = asyncio.create_task(self._drain_stderr())

    async def _drain_stderr(self) -> None:
        stderr = self._process.stderr
        assert stderr is not None
        while True:
            line = await stderr.readline()
            if not line:
                break
            self._stderr_tail.extend(line)
            if len(self._stderr_tail) > STDERR_TAIL_BYTES:
                del self._stderr_tail[:-STDERR_TAIL_BYTES]
            if self._debug:
                LOGGER.debug("ffmpeg: %s", line.decode(errors="replace").rstrip())

    def stderr_tail(self) -> str:
        return self._stderr_tail.decode(errors="replace").strip()

    def is_writable(self) -> bool:
        stdin = self._process.stdin
        return (
            not self._closed
            and self._process.returncode is None
            and stdin is not None
            and not stdin.is_closing()
        )

    async def _write(self, data: bytes) -> None:
        stdin = self._process.stdin
        if stdin is None or not self.is_writable():
            raise BrokenPipeError("ffmpeg stdin is closed")
        stdin.write(data)
        await stdin.drain()

    async def write_frame(self, chunks: AsyncIterator[bytes], name: str) -> None:
        LOGGER.trace("ffmpeg frame %d from %s", self._frames, name)
        async for chunk in chunks:
            if chunk:
                await self._write(chunk)
        self._frames += 1

    async def write_buffer_frame(self, data: bytes) -> None:
        LOGGER.trace("ffmpeg frame %d (%d bytes)", self._frames, len(data))
        await self._write(data)
        self._frames += 1

    async def end(self) -> None:
        if self._closed:
            return
        self._closed = True
        stdin = self._process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()
            try:
                await stdin.wait_closed()
            except (BrokenPipeError, ConnectionResetError):
                LOGGER.debug("ffmpeg stdin already closed by the encoder")
        returncode = await self._process.wait()
        if self._stderr_task is not None:
            await self._stderr_task
        if returncode != 0:
            tail = self.stderr_tail() or "no output"
            raise RuntimeError(f"ffmpeg exited with code {returncode}: {tail}")
        LOGGER.info(
            "Encoded %d frames to %s", self._frames, self.options.output
        )

    def close(self) -> None:
        self._closed = True
        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                LOGGER.debug("ffmpeg already exited")
        if self._stderr_task is not None and not self._stderr_task.done():
            self._stderr_task.cancel()


async def open_ffmpeg_sink(options: SinkOptions) -> FfmpegStreamSink:
    """Spawn ffmpeg for ``options`` and return a sink ready for frames."""
    args = build_ffmpeg_args(options)
    LOGGER.debug("Spawning %s", " ".join(args))
    process = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )
    sink = FfmpegStreamSink(process, options)
    sink.start_stderr_drain()
    return sink


__all__ = [
    "FfmpegStreamSink",
    "build_ffmpeg_args",
    "ffmpeg_debug_enabled",
    "open_ffmpeg_sink",
]
