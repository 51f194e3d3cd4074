"""Tests for the chunked upload API."""

import io
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from chunkstitch.main import create_app
from chunkstitch.services.exceptions import ChunkStorageError
from chunkstitch.services.uploader import ChunkUploader
from conftest import post_chunk


def test_single_chunk_upload(client, uploads_dir):
    """Test uploading a file in one chunk."""
    response = post_chunk(client, "test.txt", 0, 1, 13, b"Hello, World!")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "complete"
    assert data["fileName"] == "test.txt"
    assert data["message"]
    assert data["additionalParams"] == {}

    metadata = data["metadata"]
    assert metadata["originalName"] == "test.txt"
    assert metadata["fileSize"] == 13
    assert metadata["mimeType"] == "text/plain"
    assert (uploads_dir / metadata["storedName"]).read_bytes() == b"Hello, World!"
    assert Path(metadata["filePath"]) == uploads_dir / metadata["storedName"]


def test_multi_chunk_upload(client, uploads_dir):
    """Test uploading a file in two chunks, last chunk first."""
    first = post_chunk(client, "test.txt", 1, 2, 13, b"World!")

    assert first.status_code == 200
    assert first.json() == {
        "status": "chunk_received",
        "fileName": "test.txt",
        "chunkIndex": 1,
        "totalChunks": 2,
        "additionalParams": {},
    }

    second = post_chunk(client, "test.txt", 0, 2, 13, b"Hello, ")

    assert second.status_code == 200
    metadata = second.json()["metadata"]
    assert metadata["fileSize"] == 13
    assert (uploads_dir / metadata["storedName"]).read_bytes() == b"Hello, World!"


def test_additional_params_echoed(client):
    """Test that the JSON side channel is parsed and returned."""
    params = '{"userId":"123","metadata":{"type":"document","category":"test"}}'

    response = post_chunk(client, "test.txt", 0, 1, 13, b"Hello, World!", params)

    assert response.status_code == 200
    additional = response.json()["additionalParams"]
    assert additional["userId"] == "123"
    assert additional["metadata"] == {"type": "document", "category": "test"}


def test_additional_params_on_partial_upload(client):
    """Test that the side channel is echoed for accepted chunks too."""
    response = post_chunk(client, "test.txt", 0, 2, 13, b"Hello, ", '{"sessionId":"abc123"}')

    assert response.json()["status"] == "chunk_received"
    assert response.json()["additionalParams"] == {"sessionId": "abc123"}


def test_invalid_additional_params(client):
    """Test that malformed JSON becomes an empty map, not an error."""
    response = post_chunk(client, "test.txt", 0, 1, 13, b"Hello, World!", '{"invalid": json}')

    assert response.status_code == 200
    assert response.json()["additionalParams"] == {}


def test_missing_file_name(client):
    """Test upload without fileName."""
    response = client.post(
        "/api/v1/upload",
        data={"chunkIndex": "0", "totalChunks": "1", "fileSize": "100"},
        files={"chunk": ("chunk_0", io.BytesIO(b"x"), "application/octet-stream")},
    )

    assert response.status_code == 400
    assert "fileName is required" in response.json()["detail"]


def test_blank_file_name(client, temp_dir):
    """Test that a whitespace-only fileName is rejected on every route."""
    upload = post_chunk(client, "   ", 0, 1, 1, b"x")
    status = client.get("/api/v1/upload/status", params={"fileName": "   "})
    cleanup = client.delete("/api/v1/upload", params={"fileName": "   "})

    assert upload.status_code == 400
    assert "fileName is required" in upload.json()["detail"]
    assert status.status_code == 400
    assert cleanup.status_code == 400
    assert list(temp_dir.glob("*")) == []


def test_oversized_total_chunks(client, temp_dir):
    """Test that an absurd totalChunks is a client error and stores nothing."""
    response = post_chunk(client, "big.bin", 0, 10**13, 1, b"x")

    assert response.status_code == 400
    assert "exceeds the limit" in response.json()["detail"]
    assert list(temp_dir.glob("*")) == []


def test_invalid_chunk_index(client):
    """Test upload with a non-numeric chunkIndex."""
    response = client.post(
        "/api/v1/upload",
        data={"fileName": "test.txt", "chunkIndex": "invalid", "totalChunks": "1", "fileSize": "100"},
        files={"chunk": ("chunk_0", io.BytesIO(b"x"), "application/octet-stream")},
    )

    assert response.status_code == 400
    assert "invalid chunkIndex" in response.json()["detail"]


def test_zero_total_chunks(client):
    """Test upload declaring zero chunks."""
    response = post_chunk(client, "test.txt", 0, 0, 1, b"x")

    assert response.status_code == 400
    assert "invalid totalChunks" in response.json()["detail"]


def test_missing_chunk_part(client):
    """Test upload without the chunk file part."""
    response = client.post(
        "/api/v1/upload",
        data={"fileName": "test.txt", "chunkIndex": "0", "totalChunks": "1", "fileSize": "1"},
    )

    assert response.status_code == 400
    assert "chunk" in response.json()["detail"]


def test_out_of_range_index(client):
    """Test upload with an index past the declared chunk count."""
    response = post_chunk(client, "test.txt", 3, 2, 13, b"Hello")

    assert response.status_code == 400
    assert "out of range" in response.json()["detail"]


def test_size_mismatch(client, uploads_dir):
    """Test that a wrong fileSize is an integrity error with no artifact."""
    response = post_chunk(client, "test.txt", 0, 1, 100, b"Hello")

    assert response.status_code == 422
    assert "file size mismatch" in response.json()["detail"]
    assert list(uploads_dir.iterdir()) == []


def test_storage_failure_is_server_error(client, uploader):
    """Test that I/O failures map to a 5xx response."""
    with patch.object(uploader.chunk_store, "save", side_effect=ChunkStorageError("disk full")):
        response = post_chunk(client, "test.txt", 0, 1, 5, b"Hello")

    assert response.status_code == 500
    assert "disk full" in response.json()["detail"]


def test_status(client):
    """Test status while an upload is in progress."""
    post_chunk(client, "big.bin", 0, 3, 3, b"a")
    post_chunk(client, "big.bin", 1, 3, 3, b"b")

    response = client.get("/api/v1/upload/status", params={"fileName": "big.bin"})

    assert response.status_code == 200
    assert response.json() == {
        "fileName": "big.bin",
        "isComplete": False,
        "receivedChunks": 2,
        "totalChunks": 3,
    }


def test_status_after_completion(client):
    """Test that a purged upload reads like an unknown one."""
    post_chunk(client, "test.txt", 0, 1, 5, b"Hello")

    response = client.get("/api/v1/upload/status", params={"fileName": "test.txt"})

    assert response.json() == {
        "fileName": "test.txt",
        "isComplete": False,
        "receivedChunks": 0,
        "totalChunks": 0,
    }


def test_status_requires_file_name(client):
    """Test status without fileName."""
    response = client.get("/api/v1/upload/status")

    assert response.status_code == 400
    assert "fileName parameter is required" in response.json()["detail"]


def test_cleanup(client, temp_dir):
    """Test abandoning an upload over HTTP."""
    post_chunk(client, "big.bin", 0, 3, 3, b"a")

    response = client.delete("/api/v1/upload", params={"fileName": "big.bin"})

    assert response.status_code == 200
    assert response.json() == {"fileName": "big.bin", "status": "cleaned"}
    assert list(temp_dir.iterdir()) == []

    status = client.get("/api/v1/upload/status", params={"fileName": "big.bin"}).json()
    assert status["totalChunks"] == 0


def test_cors_preflight(client):
    """Test that browsers may post chunks cross-origin."""
    response = client.options(
        "/api/v1/upload",
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_apps_do_not_share_state(temp_dir, uploads_dir, tmp_path):
    """Test that each application owns its own upload index."""
    first = TestClient(create_app(uploader=ChunkUploader(str(temp_dir), str(uploads_dir))))
    second = TestClient(
        create_app(uploader=ChunkUploader(str(tmp_path / "other"), str(tmp_path / "other_out")))
    )

    post_chunk(first, "shared.bin", 0, 2, 2, b"a")

    assert second.get("/api/v1/upload/status", params={"fileName": "shared.bin"}).json()["receivedChunks"] == 0
    assert first.get("/api/v1/upload/status", params={"fileName": "shared.bin"}).json()["receivedChunks"] == 1
