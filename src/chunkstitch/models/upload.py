"""Upload data models."""

from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChunkInfo(BaseModel):
    """Chunk metadata declared by the client alongside each chunk."""

    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName", min_length=1)
    chunk_index: int = Field(..., alias="chunkIndex", ge=0)
    total_chunks: int = Field(..., alias="totalChunks", gt=0)
    file_size: int = Field(..., alias="fileSize", ge=0)

    @field_validator("file_name")
    @classmethod
    def file_name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("fileName must not be blank")
        return value


class FileMetadataResponse(BaseModel):
    """Metadata block of a completed upload."""

    model_config = ConfigDict(populate_by_name=True)

    stored_name: str = Field(..., alias="storedName")
    original_name: str = Field(..., alias="originalName")
    file_size: int = Field(..., alias="fileSize")
    mime_type: str = Field(..., alias="mimeType")
    file_path: str = Field(..., alias="filePath")


class ChunkReceivedResponse(BaseModel):
    """Response for a chunk that did not complete its upload."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["chunk_received"] = "chunk_received"
    file_name: str = Field(..., alias="fileName")
    chunk_index: int = Field(..., alias="chunkIndex")
    total_chunks: int = Field(..., alias="totalChunks")
    additional_params: Dict[str, Any] = Field(default_factory=dict, alias="additionalParams")


class UploadCompleteResponse(BaseModel):
    """Response for the chunk that completed its upload."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["complete"] = "complete"
    file_name: str = Field(..., alias="fileName")
    message: str = "File uploaded and stitched successfully"
    metadata: FileMetadataResponse
    additional_params: Dict[str, Any] = Field(default_factory=dict, alias="additionalParams")


class UploadStatusResponse(BaseModel):
    """Progress of an upload identity."""

    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName")
    is_complete: bool = Field(..., alias="isComplete")
    received_chunks: int = Field(..., alias="receivedChunks")
    total_chunks: int = Field(..., alias="totalChunks")


class CleanupResponse(BaseModel):
    """Response for a manual cleanup."""

    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName")
    status: Literal["cleaned"] = "cleaned"
