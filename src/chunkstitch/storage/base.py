"""Abstract chunk store interface."""

from abc import ABC, abstractmethod
from typing import BinaryIO, Iterable


class ChunkStore(ABC):
    """Abstract base class for temporary chunk storage."""

    @abstractmethod
    def save(self, identity: str, index: int, file_data: BinaryIO) -> str:
        """Persist one chunk payload.

        Args:
            identity: Upload identity the chunk belongs to
            index: Chunk index within the upload
            file_data: Chunk content stream

        Returns:
            Opaque location of the stored chunk

        Raises:
            ChunkStorageError: If the payload cannot be written
        """
        pass

    @abstractmethod
    def open(self, location: str) -> BinaryIO:
        """Open a stored chunk for reading.

        Args:
            location: Location returned by ``save``

        Returns:
            Binary stream positioned at the start of the chunk

        Raises:
            ChunkNotFoundError: If the chunk no longer exists
            ChunkStorageError: If the chunk cannot be opened
        """
        pass

    @abstractmethod
    def delete(self, location: str) -> None:
        """Delete a stored chunk. Failures are logged, never raised."""
        pass

    def delete_many(self, locations: Iterable[str | None]) -> None:
        """Delete every non-empty location, best effort."""
        for location in locations:
            if location:
                self.delete(location)
