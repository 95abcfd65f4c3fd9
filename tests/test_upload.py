import asyncio

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from export_server.backend.component.upload import (
    decode_upload,
    ensure_directory,
    safe_basename,
    write_file,
)
from export_server.errors import ErrorCode, ExportError, http_payload_for


@pytest.mark.parametrize(
    "name, expected",
    [
        ("frame.png", "frame.png"),
        ("../../frame.png", "frame.png"),
        ("/abs/dir/frame.png", "frame.png"),
        ("..\\..\\frame.png", "frame.png"),
        ("", ""),
        (None, ""),
    ],
)
def test_safe_basename_strips_directories(name, expected):
    """Test safe basename strips directories."""
    assert safe_basename(name) == expected


def test_write_file_returns_byte_count(tmp_path):
    """Test write file returns byte count."""

    async def chunks():
        yield b"abc"
        yield b"de"

    async def scenario():
        await ensure_directory(tmp_path / "a" / "b")
        await ensure_directory(tmp_path / "a" / "b")
        return await write_file(tmp_path / "a" / "b" / "f.bin", chunks())

    assert asyncio.run(scenario()) == 5
    assert (tmp_path / "a" / "b" / "f.bin").read_bytes() == b"abcde"


def test_write_file_removes_partial_file_on_error(tmp_path):
    """Test write file removes partial file on error."""
    path = tmp_path / "frame.png"

    async def chunks():
        yield b"partial"
        raise OSError("client went away")

    with pytest.raises(OSError, match="client went away"):
        asyncio.run(write_file(path, chunks()))
    assert not path.exists()


def _echo_app() -> FastAPI:
    """Helper for an app that echoes decoded upload parts."""
    app = FastAPI()

    @app.exception_handler(ExportError)
    async def export_error_handler(_request: Request, exc: ExportError):
        return JSONResponse(
            http_payload_for(exc.code, exc.detail), status_code=exc.http_status
        )

    @app.post("/upload")
    async def upload(request: Request):
        async with decode_upload(request) as parts:
            body = []
            for part in parts:
                data = b"".join([chunk async for chunk in part.stream])
                body.append(
                    {
                        "field": part.field_name,
                        "filename": part.filename,
                        "content_type": part.content_type,
                        "size": len(data),
                    }
                )
        return body

    return app


def test_decode_upload_yields_file_parts_only():
    """Test decode upload yields file parts only."""
    with TestClient(_echo_app()) as client:
        response = client.post(
            "/upload",
            data={"note": "ignored"},
            files={"file": ("frame0.png", b"\x89PNG1234", "image/png")},
        )
    assert response.status_code == 200
    assert response.json() == [
        {
            "field": "file",
            "filename": "frame0.png",
            "content_type": "image/png",
            "size": 8,
        }
    ]


def test_decode_upload_rejects_malformed_body():
    """Test decode upload rejects malformed body."""
    with TestClient(_echo_app()) as client:
        response = client.post(
            "/upload",
            content=b"not multipart",
            headers={"Content-Type": "multipart/form-data"},
        )
    assert response.status_code == 400
    assert response.json()["code"] == ErrorCode.UPLOAD_INVALID.value
