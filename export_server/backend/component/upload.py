"""Multipart upload decoding and direct-to-disk frame writes."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import AsyncIterator, List, Optional

from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request

from export_server.config.default import UPLOAD_CHUNK_BYTES
from export_server.errors import ErrorCode, ExportError


@dataclass
class UploadPart:
    """One file field of a multipart body."""

    field_name: str
    filename: str
    content_type: Optional[str]
    stream: AsyncIterator[bytes]


def safe_basename(name: Optional[str]) -> str:
    """Strip any directory components a client put in a filename."""
    if not name:
        return ""
    return PureWindowsPath(PurePosixPath(name).name).name


async def iter_upload_chunks(
    upload: UploadFile, chunk_size: int = UPLOAD_CHUNK_BYTES
) -> AsyncIterator[bytes]:
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        yield chunk


@asynccontextmanager
async def decode_upload(request: Request) -> AsyncIterator[List[UploadPart]]:
    """Yield the file parts of ``request``; spooled files close on exit."""
    try:
        form = await request.form()
    except MultiPartException as exc:
        raise ExportError(ErrorCode.UPLOAD_INVALID, exc.message) from exc
    except HTTPException as exc:
        raise ExportError(ErrorCode.UPLOAD_INVALID, str(exc.detail)) from exc
    try:
        parts = [
            UploadPart(
                field_name=field,
                filename=value.filename or "",
                content_type=value.content_type,
                stream=iter_upload_chunks(value),
            )
            for field, value in form.multi_items()
            if isinstance(value, UploadFile)
        ]
        yield parts
    finally:
        await form.close()


async def ensure_directory(path: Path) -> None:
    """Create ``path`` and its parents; a no-op when it already exists."""
    await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)


async def write_file(path: Path, chunks: AsyncIterator[bytes]) -> int:
    """Write ``chunks`` verbatim to ``path`` and return the byte count.

    A failed write removes the partial file.
    """
    fh = await asyncio.to_thread(path.open, "wb")
    written = 0
    try:
        async for chunk in chunks:
            await asyncio.to_thread(fh.write, chunk)
            written += len(chunk)
    except Exception:
        await asyncio.to_thread(fh.close)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        raise
    await asyncio.to_thread(fh.close)
    return written


__all__ = [
    "UploadPart",
    "decode_upload",
    "ensure_directory",
    "iter_upload_chunks",
    "safe_basename",
    "write_file",
]
