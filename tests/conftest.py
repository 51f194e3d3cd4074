"""Pytest configuration and shared fixtures."""

import io

import pytest
from fastapi.testclient import TestClient

from chunkstitch.main import create_app
from chunkstitch.services.uploader import ChunkUploader


@pytest.fixture
def temp_dir(tmp_path):
    """Directory for temporary chunks."""
    return tmp_path / "temp_chunks"


@pytest.fixture
def uploads_dir(tmp_path):
    """Directory for assembled files."""
    return tmp_path / "uploads"


@pytest.fixture
def uploader(temp_dir, uploads_dir):
    """Uploader with automatic cleanup, isolated on tmp_path."""
    return ChunkUploader(temp_dir=str(temp_dir), uploads_dir=str(uploads_dir))


@pytest.fixture
def client(uploader):
    """Test client bound to the isolated uploader."""
    return TestClient(create_app(uploader=uploader))


def post_chunk(
    client,
    file_name,
    chunk_index,
    total_chunks,
    file_size,
    data,
    additional_params="",
):
    """Send one chunk the way a browser client would."""
    form = {
        "fileName": file_name,
        "chunkIndex": str(chunk_index),
        "totalChunks": str(total_chunks),
        "fileSize": str(file_size),
        "additionalParams": additional_params,
    }
    files = {"chunk": (f"chunk_{chunk_index}", io.BytesIO(data), "application/octet-stream")}
    return client.post("/api/v1/upload", data=form, files=files)
