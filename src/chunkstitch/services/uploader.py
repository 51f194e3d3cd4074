"""Chunked upload lifecycle: store, register, assemble, clean up."""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

from chunkstitch.core.config import Settings
from chunkstitch.services.assembler import Assembler, FileMetadata
from chunkstitch.services.exceptions import ChunkValidationError, UploadError
from chunkstitch.storage.base import ChunkStore
from chunkstitch.storage.local import LocalChunkStore
from chunkstitch.storage.upload_index import DEFAULT_MAX_TOTAL_CHUNKS, InsertResult, UploadIndex

logger = logging.getLogger(__name__)


@dataclass
class ChunkAccepted:
    """A chunk was stored and the upload still has empty slots."""

    identity: str
    index: int
    total_chunks: int


@dataclass
class UploadComplete:
    """The chunk completed the upload and the file was assembled."""

    identity: str
    metadata: FileMetadata


Outcome = Union[ChunkAccepted, UploadComplete]


@dataclass
class UploadStatus:
    """Progress of one upload identity.

    An unknown identity reports ``exists=False`` with zero counts, the same
    as one that was assembled and purged.
    """

    identity: str
    exists: bool
    complete: bool
    received_count: int
    total_chunks: int


class ChunkUploader:
    """Owns the upload index and drives each chunk through its lifecycle.

    Safe to call from many threads at once. Identity uniqueness across
    concurrent transfers is the caller's responsibility: two clients using
    the same identity share one entry.
    """

    def __init__(
        self,
        temp_dir: str = "./temp_chunks",
        uploads_dir: str = "./uploads",
        auto_cleanup: bool = True,
        chunk_store: Optional[ChunkStore] = None,
        index: Optional[UploadIndex] = None,
        assembler: Optional[Assembler] = None,
        max_total_chunks: int = DEFAULT_MAX_TOTAL_CHUNKS,
    ):
        self.auto_cleanup = auto_cleanup
        self.chunk_store = chunk_store or LocalChunkStore(temp_dir)
        self.index = index or UploadIndex(max_total_chunks=max_total_chunks)
        self.assembler = assembler or Assembler(uploads_dir, self.chunk_store)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChunkUploader":
        """Build an uploader from application settings."""
        return cls(
            temp_dir=settings.TEMP_CHUNK_DIR,
            uploads_dir=settings.UPLOADS_DIR,
            auto_cleanup=settings.AUTO_CLEANUP,
            max_total_chunks=settings.MAX_TOTAL_CHUNKS,
        )

    def submit_chunk(
        self,
        identity: str,
        index: int,
        total_chunks: int,
        expected_size: int,
        payload: BinaryIO,
    ) -> Outcome:
        """Store a chunk and assemble the file if it was the last one missing.

        Args:
            identity: Upload identity
            index: Zero-based chunk index
            total_chunks: Number of chunks in the upload
            expected_size: Total size of the file in bytes
            payload: Chunk content stream

        Returns:
            ChunkAccepted while slots remain empty, UploadComplete once the
            file has been assembled

        Raises:
            ChunkValidationError: If the declaration is invalid or contradicts
                the upload's first chunk
            ChunkStorageError: If the chunk cannot be written; nothing is
                recorded so the same chunk can be retried
            AssemblyError: If stitching fails; the chunks stay registered
        """
        if not identity or not identity.strip():
            raise ChunkValidationError("fileName is required")
        if expected_size < 0:
            raise ChunkValidationError("fileSize must not be negative")
        self.index.check_declaration(identity, index, total_chunks, expected_size)

        location = self.chunk_store.save(identity, index, payload)

        try:
            result = self.index.insert(identity, index, location, total_chunks, expected_size)
        except Exception:
            # A chunk the index does not reference must not stay on disk
            self.chunk_store.delete(location)
            raise

        if result.replaced:
            logger.info(
                "Duplicate chunk replaced",
                extra={"identity": identity, "chunk_index": index},
            )
            self.chunk_store.delete(result.replaced)

        if not result.completed:
            logger.debug(
                "Chunk accepted",
                extra={"identity": identity, "chunk_index": index, "total_chunks": total_chunks},
            )
            return ChunkAccepted(identity=identity, index=index, total_chunks=total_chunks)

        return UploadComplete(identity=identity, metadata=self._assemble(identity, result, expected_size))

    def _assemble(self, identity: str, result: InsertResult, expected_size: int) -> FileMetadata:
        if result.expected_size is not None:
            expected_size = result.expected_size

        try:
            metadata = self.assembler.assemble(identity, result.locations, expected_size)
        except UploadError as e:
            self.index.release(identity)
            logger.error(
                "Assembly failed",
                extra={"identity": identity, "error": str(e)},
            )
            raise

        if self.auto_cleanup:
            self.cleanup(identity)
        return metadata

    def status(self, identity: str) -> UploadStatus:
        """Report progress without changing anything."""
        progress = self.index.progress(identity)
        if progress is None:
            return UploadStatus(
                identity=identity, exists=False, complete=False, received_count=0, total_chunks=0
            )
        return UploadStatus(
            identity=identity,
            exists=True,
            complete=progress.is_complete,
            received_count=progress.received_count,
            total_chunks=progress.total_chunks,
        )

    def cleanup(self, identity: str) -> None:
        """Delete stored chunks and forget the upload.

        Safe at any point; mid-upload it abandons the transfer.
        """
        locations = self.index.remove(identity)
        self.chunk_store.delete_many(locations)
        if locations:
            logger.debug(
                "Upload cleaned up",
                extra={"identity": identity, "chunks_removed": len(locations)},
            )
