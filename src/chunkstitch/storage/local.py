"""Local filesystem chunk store."""

import logging
import re
from pathlib import Path
from typing import BinaryIO
from uuid import uuid4

from chunkstitch.services.exceptions import ChunkNotFoundError, ChunkStorageError
from chunkstitch.storage.base import ChunkStore

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 65536  # 64KB


def sanitize_filename(filename: str) -> str:
    """Remove path traversal and dangerous characters."""
    safe = filename.replace("../", "").replace("..\\", "")
    safe = safe.replace("/", "_").replace("\\", "_")
    safe = re.sub(r"[^a-zA-Z0-9._-]", "_", safe)
    return safe[:255]


class LocalChunkStore(ChunkStore):
    """Stores each chunk as its own file under a temporary directory.

    File names follow ``{identity}_chunk_{index}.{token}``. The random token
    gives every write its own file, so a duplicate submission for an index
    never clobbers the chunk currently registered for it.
    """

    def __init__(self, base_path: str | Path = "./temp_chunks"):
        self.base_path = Path(base_path)

    def get_chunk_path(self, identity: str, index: int) -> Path:
        """Generate a fresh target path for a chunk."""
        safe_name = sanitize_filename(identity)[:200]
        return self.base_path / f"{safe_name}_chunk_{index}.{uuid4().hex}"

    def save(self, identity: str, index: int, file_data: BinaryIO) -> str:
        """Stream a chunk to disk and return its path."""
        target_path = self.get_chunk_path(identity, index)

        try:
            target_path.parent.mkdir(parents=True, exist_ok=True)
            with open(target_path, "wb") as f:
                while chunk := file_data.read(COPY_BUFFER_SIZE):
                    f.write(chunk)
        except OSError as e:
            target_path.unlink(missing_ok=True)
            raise ChunkStorageError(f"error saving chunk {index} of {identity}: {e}") from e

        logger.debug(
            "Chunk stored",
            extra={"identity": identity, "chunk_index": index, "location": str(target_path)},
        )
        return str(target_path)

    def open(self, location: str) -> BinaryIO:
        try:
            return open(location, "rb")
        except FileNotFoundError as e:
            raise ChunkNotFoundError(f"chunk not found: {location}") from e
        except OSError as e:
            raise ChunkStorageError(f"error opening chunk {location}: {e}") from e

    def delete(self, location: str) -> None:
        try:
            Path(location).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(
                "Failed to delete chunk",
                extra={"location": location, "error": str(e)},
            )
