"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fileproc.api.v1 import files, queue
from fileproc.core.config import settings
from fileproc.core.logging import get_logger, setup_logging
from fileproc.pipeline.errors import FileProcessingError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging("DEBUG" if settings.is_development else settings.LOG_LEVEL)
    logger = get_logger("startup")
    logger.info("Application starting", env=settings.APP_ENV, storage=settings.STORAGE_BACKEND)
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="File Processing API",
    description="Asynchronous file upload, processing and download service",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FileProcessingError)
async def file_processing_error_handler(request: Request, exc: FileProcessingError) -> JSONResponse:
    """Map domain errors to their HTTP status."""
    logger = get_logger("api.errors")
    log = logger.warning if exc.status_code < 500 else logger.error
    log("Request failed", path=request.url.path, error=exc.error_code, detail=exc.message, file_id=exc.file_id)

    body = {"detail": exc.message, "error": exc.error_code}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


app.include_router(files.router, prefix=settings.API_PREFIX)
app.include_router(queue.router, prefix=settings.API_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Public health-check endpoint."""
    return {"status": "ok", "env": settings.APP_ENV}
