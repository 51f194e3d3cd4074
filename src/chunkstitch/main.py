"""Main application entrypoint for chunkstitch."""

import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chunkstitch.api.extract import ChunkRequestExtractor, FormChunkExtractor
from chunkstitch.api.middleware import HTTPErrorLoggingMiddleware
from chunkstitch.api.v1 import routes_health
from chunkstitch.api.v1.routes_upload import router as upload_router
from chunkstitch.core.config import Settings, settings
from chunkstitch.core.logging import setup_logging
from chunkstitch.services.uploader import ChunkUploader


def create_app(
    uploader: Optional[ChunkUploader] = None,
    extractor: Optional[ChunkRequestExtractor] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        uploader: Uploader to serve; built from settings when omitted
        extractor: Request extractor; a multipart form extractor by default
        app_settings: Settings to use instead of the module singleton

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app_settings = app_settings or settings

    setup_logging(app_settings)

    app = FastAPI(
        title=app_settings.SERVICE_NAME,
        version=app_settings.SERVICE_VERSION,
    )

    app.state.settings = app_settings
    # One uploader per application; its index is the only shared upload state
    app.state.uploader = uploader or ChunkUploader.from_settings(app_settings)
    app.state.extractor = extractor or FormChunkExtractor(
        max_part_size=app_settings.max_memory_bytes
    )

    app.add_middleware(HTTPErrorLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["POST", "GET", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)

    return app


# Export app instance for ASGI servers
app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port)
