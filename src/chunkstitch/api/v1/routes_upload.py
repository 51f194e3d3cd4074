"""Chunked upload API routes."""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.concurrency import run_in_threadpool

from chunkstitch.api.extract import ChunkRequestExtractor
from chunkstitch.core.logging import upload_id_context
from chunkstitch.models.upload import (
    ChunkReceivedResponse,
    CleanupResponse,
    FileMetadataResponse,
    UploadCompleteResponse,
    UploadStatusResponse,
)
from chunkstitch.services.exceptions import (
    ChunkStorageError,
    ChunkValidationError,
    MissingChunkError,
    SizeMismatchError,
    UploadError,
)
from chunkstitch.services.uploader import ChunkAccepted, ChunkUploader

router = APIRouter(prefix="/api/v1", tags=["upload"])
logger = logging.getLogger(__name__)


def get_uploader(request: Request) -> ChunkUploader:
    """Uploader owned by the running application."""
    return request.app.state.uploader


def get_extractor(request: Request) -> ChunkRequestExtractor:
    return request.app.state.extractor


def to_http_exception(error: UploadError) -> HTTPException:
    """Map an upload error onto a client or server error response."""
    if isinstance(error, ChunkValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, SizeMismatchError):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, MissingChunkError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ChunkStorageError):
        return HTTPException(status_code=500, detail=f"Storage error: {error}")
    return HTTPException(status_code=500, detail=str(error))


def _require_file_name(file_name: Optional[str]) -> str:
    if not file_name or not file_name.strip():
        raise HTTPException(status_code=400, detail="fileName parameter is required")
    return file_name


@router.post(
    "/upload",
    response_model=Union[UploadCompleteResponse, ChunkReceivedResponse],
)
async def upload_chunk(
    request: Request,
    uploader: ChunkUploader = Depends(get_uploader),
    extractor: ChunkRequestExtractor = Depends(get_extractor),
) -> Union[UploadCompleteResponse, ChunkReceivedResponse]:
    """Receive one chunk; assemble the file when it is the last one."""
    try:
        submission = await extractor.extract(request)
    except ChunkValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    info = submission.info
    token = upload_id_context.set(info.file_name)
    try:
        outcome = await run_in_threadpool(
            uploader.submit_chunk,
            info.file_name,
            info.chunk_index,
            info.total_chunks,
            info.file_size,
            submission.payload,
        )

        if isinstance(outcome, ChunkAccepted):
            return ChunkReceivedResponse(
                file_name=outcome.identity,
                chunk_index=outcome.index,
                total_chunks=outcome.total_chunks,
                additional_params=submission.additional_params,
            )

        metadata = outcome.metadata
        logger.info(
            f"Upload completed: fileName={info.file_name}, "
            f"storedName={metadata.stored_name}, size={metadata.file_size}"
        )
        return UploadCompleteResponse(
            file_name=outcome.identity,
            metadata=FileMetadataResponse(
                stored_name=metadata.stored_name,
                original_name=metadata.original_name,
                file_size=metadata.file_size,
                mime_type=metadata.mime_type,
                file_path=metadata.storage_path,
            ),
            additional_params=submission.additional_params,
        )

    except UploadError as e:
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during chunk upload: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
    finally:
        await submission.close()
        upload_id_context.reset(token)


@router.get("/upload/status", response_model=UploadStatusResponse)
async def upload_status(
    file_name: Optional[str] = Query(None, alias="fileName"),
    uploader: ChunkUploader = Depends(get_uploader),
) -> UploadStatusResponse:
    """Report how many chunks of an upload have arrived."""
    file_name = _require_file_name(file_name)
    status = uploader.status(file_name)
    return UploadStatusResponse(
        file_name=file_name,
        is_complete=status.complete,
        received_chunks=status.received_count,
        total_chunks=status.total_chunks,
    )


@router.delete("/upload", response_model=CleanupResponse)
async def cleanup_upload(
    file_name: Optional[str] = Query(None, alias="fileName"),
    uploader: ChunkUploader = Depends(get_uploader),
) -> CleanupResponse:
    """Drop an upload's stored chunks and progress."""
    file_name = _require_file_name(file_name)
    await run_in_threadpool(uploader.cleanup, file_name)
    logger.info(f"Upload cleaned up: fileName={file_name}")
    return CleanupResponse(file_name=file_name)
