from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from studyforge.api.router import api_router
from studyforge.core.config import settings
from studyforge.core.errors import (
    CompletionTimeoutError,
    ExtractionError,
    ExtractionTimeoutError,
    GenerationError,
    NoSourcesError,
    NotFoundError,
    PersistenceError,
    QuotaError,
    StudyForgeError,
    UnsupportedFormatError,
    UploadError,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Checked in order; subclasses come before their bases
ERROR_STATUS_CODES = [
    (UnsupportedFormatError, 415),
    (ExtractionTimeoutError, 504),
    (CompletionTimeoutError, 504),
    (ExtractionError, 422),
    (NoSourcesError, 400),
    (QuotaError, 429),
    (NotFoundError, 404),
    (UploadError, 502),
    (GenerationError, 502),
    (PersistenceError, 500),
]


def status_code_for(error: StudyForgeError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Content ingestion and attributed study-item generation",
    version="0.1.0",
)

# Set up CORS
origins = (
    [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
    if "," in settings.CORS_ORIGINS
    else [settings.CORS_ORIGINS]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.exception_handler(StudyForgeError)
async def studyforge_error_handler(request: Request, exc: StudyForgeError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__, "context": exc.context},
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("studyforge.main:app", host="0.0.0.0", port=8000, reload=True)
