"""Stitches the chunks of a completed upload into the final file."""

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence
from uuid import uuid4

from chunkstitch.services.exceptions import (
    AssemblyError,
    ChunkStorageError,
    MissingChunkError,
    SizeMismatchError,
)
from chunkstitch.storage.base import ChunkStore
from chunkstitch.storage.local import COPY_BUFFER_SIZE, sanitize_filename

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class FileMetadata:
    """Description of an assembled file."""

    original_name: str
    stored_name: str
    file_size: int
    mime_type: str
    storage_path: str


def guess_content_type(file_name: str) -> str:
    """Infer a MIME type from the file extension."""
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type or DEFAULT_CONTENT_TYPE


class Assembler:
    """Concatenates chunk files in index order and verifies the result size."""

    def __init__(self, uploads_dir: str | Path, chunk_store: ChunkStore):
        self.uploads_dir = Path(uploads_dir)
        self.chunk_store = chunk_store

    def stored_name_for(self, original_name: str) -> str:
        """Generate a collision-free on-disk name that keeps the extension."""
        suffix = Path(sanitize_filename(original_name)).suffix
        return f"{uuid4().hex}{suffix}"

    def assemble(
        self,
        identity: str,
        locations: Sequence[Optional[str]],
        expected_size: int,
        original_name: Optional[str] = None,
    ) -> FileMetadata:
        """Build the final file from chunk locations.

        Args:
            identity: Upload identity, used in errors and logs
            locations: Chunk locations ordered by chunk index
            expected_size: Declared total size in bytes
            original_name: Name reported in metadata; defaults to ``identity``

        Returns:
            FileMetadata for the assembled file

        Raises:
            MissingChunkError: If a slot is empty
            SizeMismatchError: If the byte count differs from ``expected_size``
            ChunkStorageError: If reading a chunk or writing the file fails

        No partial file is left behind when an error is raised.
        """
        original_name = original_name or identity
        stored_name = self.stored_name_for(original_name)
        final_path = self.uploads_dir / stored_name

        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ChunkStorageError(f"error creating uploads directory: {e}") from e

        total_written = 0
        try:
            with open(final_path, "wb") as final_file:
                for index, location in enumerate(locations):
                    if not location:
                        raise MissingChunkError(identity, index)
                    with self.chunk_store.open(location) as chunk_file:
                        while data := chunk_file.read(COPY_BUFFER_SIZE):
                            final_file.write(data)
                            total_written += len(data)

            if total_written != expected_size:
                raise SizeMismatchError(expected_size, total_written)
        except (AssemblyError, ChunkStorageError):
            self._discard(final_path)
            raise
        except OSError as e:
            self._discard(final_path)
            raise ChunkStorageError(f"error writing {final_path}: {e}") from e

        metadata = FileMetadata(
            original_name=original_name,
            stored_name=stored_name,
            file_size=total_written,
            mime_type=guess_content_type(original_name),
            storage_path=str(final_path),
        )
        logger.info(
            "File assembled",
            extra={
                "identity": identity,
                "chunks": len(locations),
                "size_bytes": total_written,
                "storage_path": metadata.storage_path,
            },
        )
        return metadata

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(
                "Failed to remove partial file",
                extra={"path": str(path), "error": str(e)},
            )
