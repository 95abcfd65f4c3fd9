import asyncio
from pathlib import Path

import pytest
from conftest import FakeProcess

from export_server.backend.component.ffmpeg_sink import (
    FfmpegStreamSink,
    build_ffmpeg_args,
    ffmpeg_debug_enabled,
)
from export_server.backend.component.stream_sink import SinkOptions


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


def _options(**overrides) -> SinkOptions:
    values = {"format": "mp4", "output": Path("/tmp/out/anim.mp4"), "fps": 30}
    values.update(overrides)
    return SinkOptions(**values)


def test_mp4_args_read_png_frames_from_stdin(monkeypatch):
    """Test mp4 args read png frames from stdin."""
    monkeypatch.delenv("DEBUG_FFMPEG", raising=False)
    args = build_ffmpeg_args(_options())
    assert args[0] == "ffmpeg"
    assert args[args.index("-f") + 1] == "image2pipe"
    assert args[args.index("-framerate") + 1] == "30"
    assert args[args.index("-i") - 1] == "png"
    assert args[args.index("-i") + 1] == "-"
    assert args[args.index("-loglevel") + 1] == "error"
    assert "libx264" in args
    assert args[args.index("-pix_fmt") + 1] == "yuv420p"
    assert args[-1] == "/tmp/out/anim.mp4"


def test_gif_args_use_palette_filter():
    """Test gif args use palette filter."""
    args = build_ffmpeg_args(
        _options(format="gif", output=Path("loop.gif"), encoding="image/jpeg", fps=12.5)
    )
    assert args[args.index("-i") - 1] == "mjpeg"
    assert args[args.index("-framerate") + 1] == "12.5"
    assert "palettegen" in args[args.index("-filter_complex") + 1]
    assert "libx264" not in args
    assert args[-1] == "loop.gif"


def test_encoder_options_pass_through():
    """Test encoder options pass through."""
    args = build_ffmpeg_args(
        _options(extra={"ffmpeg_path": "/opt/ffmpeg", "crf": 23, "preset": "fast"})
    )
    assert args[0] == "/opt/ffmpeg"
    assert args[args.index("-crf") + 1] == "23"
    assert args[args.index("-preset") + 1] == "fast"


def test_unsupported_encoding_or_format_raises():
    """Test unsupported encoding or format raises."""
    with pytest.raises(ValueError):
        build_ffmpeg_args(_options(encoding="image/webp"))
    with pytest.raises(ValueError):
        build_ffmpeg_args(_options(format="webm"))


def test_debug_env_raises_ffmpeg_loglevel(monkeypatch):
    """Test debug env raises ffmpeg loglevel."""
    monkeypatch.setenv("DEBUG_FFMPEG", "1")
    assert ffmpeg_debug_enabled(False) is True
    args = build_ffmpeg_args(_options())
    assert args[args.index("-loglevel") + 1] == "info"
    monkeypatch.setenv("DEBUG_FFMPEG", "0")
    assert ffmpeg_debug_enabled(False) is False
    assert ffmpeg_debug_enabled(True) is True


def test_frames_are_piped_and_end_waits_for_exit():
    """Test frames are piped and end waits for exit."""
    process = FakeProcess()
    sink = FfmpegStreamSink(process, _options())

    async def scenario():
        await sink.write_frame(_chunks(b"ab", b"", b"cd"), "frame0.png")
        await sink.write_buffer_frame(b"ef")
        assert sink.is_writable()
        await sink.end()

    asyncio.run(scenario())
    assert bytes(process.stdin.data) == b"abcdef"
    assert sink.frames_written == 2
    assert process.stdin.closing is True
    assert process.returncode == 0
    assert not sink.is_writable()


def test_end_raises_with_stderr_tail_on_failure():
    """Test end raises with stderr tail on failure."""

    async def scenario():
        stderr = asyncio.StreamReader()
        stderr.feed_data(b"Invalid data found when processing input\n")
        stderr.feed_eof()
        sink = FfmpegStreamSink(FakeProcess(exit_code=1, stderr=stderr), _options())
        sink.start_stderr_drain()
        await sink.end()

    with pytest.raises(RuntimeError, match="Invalid data found"):
        asyncio.run(scenario())


def test_write_after_close_is_rejected():
    """Test write after close is rejected."""
    process = FakeProcess()
    sink = FfmpegStreamSink(process, _options())
    sink.close()
    assert process.killed is True
    assert not sink.is_writable()
    with pytest.raises(BrokenPipeError):
        asyncio.run(sink.write_buffer_frame(b"late"))
    assert bytes(process.stdin.data) == b""
