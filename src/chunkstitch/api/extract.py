"""Extraction of chunk metadata and payload from inbound HTTP requests."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Optional

from pydantic import ValidationError
from starlette.datastructures import FormData, UploadFile
from starlette.requests import Request

from chunkstitch.models.upload import ChunkInfo
from chunkstitch.services.exceptions import ChunkValidationError

logger = logging.getLogger(__name__)

CHUNK_FIELDS = ("fileName", "chunkIndex", "totalChunks", "fileSize")
CHUNK_PART = "chunk"
ADDITIONAL_PARAMS_FIELD = "additionalParams"


@dataclass
class ChunkSubmission:
    """Everything the uploader needs from one chunk request."""

    info: ChunkInfo
    payload: BinaryIO
    additional_params: Dict[str, Any] = field(default_factory=dict)
    form: Optional[FormData] = None

    async def close(self) -> None:
        """Release spooled upload files."""
        if self.form is not None:
            await self.form.close()


def parse_additional_params(raw: Optional[str]) -> Dict[str, Any]:
    """Parse the free-form JSON side channel; anything unusable becomes ``{}``."""
    if not raw:
        return {}
    try:
        params = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Ignoring malformed additionalParams")
        return {}
    return params if isinstance(params, dict) else {}


def validate_chunk_fields(fields: Dict[str, Any]) -> ChunkInfo:
    """Build ChunkInfo from raw field values.

    Raises:
        ChunkValidationError: Naming the first offending field
    """
    try:
        return ChunkInfo.model_validate(fields)
    except ValidationError as e:
        error = e.errors()[0]
        name = error["loc"][0] if error["loc"] else "request"
        if name == "fileName":
            raise ChunkValidationError("fileName is required") from e
        raise ChunkValidationError(f"invalid {name}") from e


class ChunkRequestExtractor(ABC):
    """Pulls declared chunk metadata and a byte stream out of a request."""

    @abstractmethod
    async def extract(self, request: Any) -> ChunkSubmission:
        """Extract a chunk submission.

        Args:
            request: Framework-specific request object

        Returns:
            ChunkSubmission; the caller must ``close`` it when done

        Raises:
            ChunkValidationError: If a required field is missing or malformed
        """
        pass


class FormChunkExtractor(ChunkRequestExtractor):
    """Extractor for multipart form requests served by Starlette/FastAPI."""

    def __init__(self, max_part_size: int = 32 * 1024 * 1024):
        self.max_part_size = max_part_size

    async def extract(self, request: Request) -> ChunkSubmission:
        form = await request.form(max_part_size=self.max_part_size)
        try:
            fields = {
                name: form.get(name)
                for name in CHUNK_FIELDS
                if isinstance(form.get(name), str)
            }
            info = validate_chunk_fields(fields)

            chunk = form.get(CHUNK_PART)
            if not isinstance(chunk, UploadFile):
                raise ChunkValidationError("chunk file is required")

            raw_params = form.get(ADDITIONAL_PARAMS_FIELD)
            additional_params = parse_additional_params(
                raw_params if isinstance(raw_params, str) else None
            )
        except ChunkValidationError:
            await form.close()
            raise

        return ChunkSubmission(
            info=info,
            payload=chunk.file,
            additional_params=additional_params,
            form=form,
        )
