"""Custom exceptions for the chunked upload service."""


class UploadError(Exception):
    """Base exception for chunked uploads."""
    pass


class ChunkValidationError(UploadError):
    """Exception raised when a chunk's declared metadata is unusable.

    Covers missing or unparseable fields, out-of-range indices and
    declarations that contradict the ones pinned by the first chunk.
    """
    pass


class ChunkStorageError(UploadError):
    """Exception raised when reading or writing chunk or artifact files fails."""
    pass


class ChunkNotFoundError(ChunkStorageError):
    """Exception raised when a stored chunk no longer exists."""
    pass


class AssemblyError(UploadError):
    """Exception raised when chunks cannot be stitched into a final file."""
    pass


class SizeMismatchError(AssemblyError):
    """Exception raised when the assembled size differs from the declared size."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"file size mismatch: expected {expected}, got {actual}")


class MissingChunkError(AssemblyError):
    """Exception raised when a slot is empty at assembly time."""

    def __init__(self, identity: str, index: int):
        self.identity = identity
        self.index = index
        super().__init__(f"missing chunk {index} for file {identity}")
