"""In-memory index of uploads in progress.

Maps an upload identity to a fixed-length list of chunk locations. The first
chunk seen for an identity pins the slot count and the expected file size;
later chunks must agree with both. Only in-memory bookkeeping happens under
the lock.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from chunkstitch.services.exceptions import ChunkValidationError

DEFAULT_MAX_TOTAL_CHUNKS = 100_000


@dataclass
class UploadEntry:
    """Chunk slots for one upload identity."""

    slots: List[Optional[str]]
    expected_size: Optional[int] = None
    sealed: bool = False

    @property
    def received_count(self) -> int:
        return sum(1 for slot in self.slots if slot is not None)

    @property
    def is_complete(self) -> bool:
        return all(slot is not None for slot in self.slots)


@dataclass
class InsertResult:
    """Outcome of registering a chunk location."""

    replaced: Optional[str] = None  # Location previously held by the slot
    completed: bool = False  # True only for the insert that filled the last slot
    # Filled only when completed, taken under the same lock that sealed the entry
    locations: List[Optional[str]] = field(default_factory=list)
    expected_size: Optional[int] = None


@dataclass
class UploadProgress:
    """Consistent snapshot of one upload entry."""

    received_count: int
    total_chunks: int
    is_complete: bool
    expected_size: Optional[int] = None
    sealed: bool = False
    locations: List[Optional[str]] = field(default_factory=list)


class UploadIndex:
    """Thread-safe registry of in-progress uploads."""

    def __init__(self, max_total_chunks: int = DEFAULT_MAX_TOTAL_CHUNKS):
        self.max_total_chunks = max_total_chunks
        self._entries: Dict[str, UploadEntry] = {}
        self._lock = threading.Lock()

    def _validate(
        self,
        entry: Optional[UploadEntry],
        identity: str,
        index: int,
        total_chunks: int,
        expected_size: Optional[int],
    ) -> None:
        if total_chunks <= 0:
            raise ChunkValidationError("totalChunks must be positive")
        if total_chunks > self.max_total_chunks:
            raise ChunkValidationError(
                f"totalChunks {total_chunks} exceeds the limit of {self.max_total_chunks}"
            )
        if entry is None:
            if not 0 <= index < total_chunks:
                raise ChunkValidationError(
                    f"chunkIndex {index} out of range for {total_chunks} chunks"
                )
            return

        if entry.sealed:
            raise ChunkValidationError(f"upload {identity} is already being assembled")
        if total_chunks != len(entry.slots):
            raise ChunkValidationError(
                f"totalChunks mismatch for {identity}: "
                f"expected {len(entry.slots)}, got {total_chunks}"
            )
        if (
            expected_size is not None
            and entry.expected_size is not None
            and expected_size != entry.expected_size
        ):
            raise ChunkValidationError(
                f"fileSize mismatch for {identity}: "
                f"expected {entry.expected_size}, got {expected_size}"
            )
        if not 0 <= index < len(entry.slots):
            raise ChunkValidationError(
                f"chunkIndex {index} out of range for {len(entry.slots)} chunks"
            )

    def check_declaration(
        self,
        identity: str,
        index: int,
        total_chunks: int,
        expected_size: Optional[int] = None,
    ) -> None:
        """Validate a chunk declaration without registering anything.

        Raises:
            ChunkValidationError: If ``insert`` would reject the declaration
        """
        with self._lock:
            self._validate(self._entries.get(identity), identity, index, total_chunks, expected_size)

    def insert(
        self,
        identity: str,
        index: int,
        location: str,
        total_chunks: int,
        expected_size: Optional[int] = None,
    ) -> InsertResult:
        """Register a chunk location.

        Allocates ``total_chunks`` empty slots on the first insert for an
        identity. A second insert for the same index overwrites the slot.

        Args:
            identity: Upload identity
            index: Chunk index
            location: Where the chunk payload was stored
            total_chunks: Declared number of chunks
            expected_size: Declared total size in bytes

        Returns:
            InsertResult with the replaced location and whether this insert
            completed the upload. The completing insert also seals the entry
            and carries the slot snapshot to assemble from.

        Raises:
            ChunkValidationError: On out-of-range index, too many chunks,
                declaration mismatch or an entry that is sealed for assembly
        """
        with self._lock:
            entry = self._entries.get(identity)
            self._validate(entry, identity, index, total_chunks, expected_size)

            if entry is None:
                entry = UploadEntry(slots=[None] * total_chunks, expected_size=expected_size)
                self._entries[identity] = entry
            elif entry.expected_size is None:
                entry.expected_size = expected_size

            replaced = entry.slots[index]
            entry.slots[index] = location

            if not entry.is_complete:
                return InsertResult(replaced=replaced)

            entry.sealed = True
            return InsertResult(
                replaced=replaced,
                completed=True,
                locations=list(entry.slots),
                expected_size=entry.expected_size,
            )

    def is_complete(self, identity: str) -> bool:
        with self._lock:
            entry = self._entries.get(identity)
            return entry is not None and entry.is_complete

    def locations(self, identity: str) -> List[Optional[str]]:
        """Return a copy of the slot list; empty for an unknown identity."""
        with self._lock:
            entry = self._entries.get(identity)
            return list(entry.slots) if entry is not None else []

    def received_count(self, identity: str) -> int:
        with self._lock:
            entry = self._entries.get(identity)
            return entry.received_count if entry is not None else 0

    def total_chunks(self, identity: str) -> int:
        with self._lock:
            entry = self._entries.get(identity)
            return len(entry.slots) if entry is not None else 0

    def expected_size(self, identity: str) -> Optional[int]:
        with self._lock:
            entry = self._entries.get(identity)
            return entry.expected_size if entry is not None else None

    def progress(self, identity: str) -> Optional[UploadProgress]:
        """Snapshot an entry under a single lock acquisition."""
        with self._lock:
            entry = self._entries.get(identity)
            if entry is None:
                return None
            return UploadProgress(
                received_count=entry.received_count,
                total_chunks=len(entry.slots),
                is_complete=entry.is_complete,
                expected_size=entry.expected_size,
                sealed=entry.sealed,
                locations=list(entry.slots),
            )

    def release(self, identity: str) -> None:
        """Unseal an entry so its chunks can be resubmitted after a failed assembly."""
        with self._lock:
            entry = self._entries.get(identity)
            if entry is not None:
                entry.sealed = False

    def remove(self, identity: str) -> List[str]:
        """Drop an entry and return the locations it held.

        Removing an unknown identity is a no-op.
        """
        with self._lock:
            entry = self._entries.pop(identity, None)
        if entry is None:
            return []
        return [slot for slot in entry.slots if slot is not None]

    def identities(self) -> List[str]:
        """List identities currently tracked."""
        with self._lock:
            return list(self._entries)
