import asyncio
from pathlib import Path
from typing import AsyncIterator, List, Optional, Set, Tuple

import pytest

from export_server.backend.component.stream_sink import SinkOptions, StreamSink
from export_server.backend.component.upload import UploadPart
from export_server.backend.runtime import (
    ExportRuntimeConfig,
    OutputRuntimeConfig,
    StreamRuntimeConfig,
)
from export_server.backend.runtime.runtime import ApplicationRuntime


class FakeSink(StreamSink):
    """Records every call, refuses frames once ``end`` starts, and fails on
    the steps named in ``fail_on``.
    """

    def __init__(self, options: SinkOptions, factory: "FakeSinkFactory") -> None:
        self.encoding = options.encoding
        self.options = options
        self.name = options.output.name
        self._factory = factory
        self.frames: List[bytes] = []
        self.frame_names: List[Optional[str]] = []
        self.ended = 0
        self.closed = 0
        self.writable = True
        self.ending = False
        self.end_gate: Optional[asyncio.Event] = None

    def is_writable(self) -> bool:
        if not self.writable or self.ending:
            return False
        return self.ended == 0 and self.closed == 0

    async def write_frame(self, chunks: AsyncIterator[bytes], name: str) -> None:
        data = b"".join([chunk async for chunk in chunks])
        if "write" in self._factory.fail_on:
            raise BrokenPipeError("encoder went away")
        self.frames.append(data)
        self.frame_names.append(name)

    async def write_buffer_frame(self, data: bytes) -> None:
        if "write" in self._factory.fail_on:
            raise BrokenPipeError("encoder went away")
        self.frames.append(data)
        self.frame_names.append(None)

    async def end(self) -> None:
        self.ending = True
        self._factory.events.append(("end", self.name))
        if self.end_gate is not None:
            await self.end_gate.wait()
        self.ended += 1
        if "end" in self._factory.fail_on:
            raise RuntimeError("encoder exited with code 1")

    def close(self) -> None:
        self._factory.events.append(("close", self.name))
        self.closed += 1


class FakeSinkFactory:
    def __init__(self) -> None:
        self.sinks: List[FakeSink] = []
        self.events: List[Tuple[str, str]] = []
        self.fail_on: Set[str] = set()
        self.max_open = 0

    def open_sinks(self) -> List[FakeSink]:
        return [s for s in self.sinks if s.ended == 0 and s.closed == 0]

    async def __call__(self, options: SinkOptions) -> FakeSink:
        if "open" in self.fail_on:
            raise FileNotFoundError("ffmpeg: command not found")
        sink = FakeSink(options, self)
        self.sinks.append(sink)
        self.events.append(("open", sink.name))
        self.max_open = max(self.max_open, len(self.open_sinks()))
        return sink


class FakeStdin:
    def __init__(self) -> None:
        self.data = bytearray()
        self.closing = False

    def write(self, data: bytes) -> None:
        self.data.extend(data)

    async def drain(self) -> None:
        return None

    def is_closing(self) -> bool:
        return self.closing

    def close(self) -> None:
        self.closing = True

    async def wait_closed(self) -> None:
        return None


class FakeProcess:
    """Stands in for an ffmpeg child; ``exit_gate`` holds ``wait`` open."""

    def __init__(
        self,
        exit_code: int = 0,
        stderr: Optional[asyncio.StreamReader] = None,
        exit_gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.stdin = FakeStdin()
        self.stderr = stderr
        self.returncode: Optional[int] = None
        self.killed = False
        self.exit_gate = exit_gate
        self._exit_code = exit_code

    async def wait(self) -> int:
        if self.exit_gate is not None:
            await self.exit_gate.wait()
        self.returncode = self._exit_code
        return self._exit_code

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9


async def chunked(data: bytes, size: int = 4) -> AsyncIterator[bytes]:
    for offset in range(0, len(data), size):
        yield data[offset : offset + size]


def make_part(
    filename: str, data: bytes, content_type: Optional[str] = "image/png"
) -> UploadPart:
    return UploadPart(
        field_name="file",
        filename=filename,
        content_type=content_type,
        stream=chunked(data),
    )


def make_runtime(
    output: Optional[Path],
    factory: FakeSinkFactory,
    stream_format: Optional[str] = "mp4",
    buffer: bool = False,
) -> ApplicationRuntime:
    config = ExportRuntimeConfig(
        output=OutputRuntimeConfig(directory=output),
        stream=StreamRuntimeConfig(format=stream_format, buffer=buffer),
    )
    return ApplicationRuntime(config, sink_factory=factory)


@pytest.fixture
def sink_factory() -> FakeSinkFactory:
    return FakeSinkFactory()


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "out"
