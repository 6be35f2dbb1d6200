import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .db.base import engine, init_db
from .errors import (
    InfrastructureError,
    InvalidState,
    MoodEntryPersistFailed,
    NotFound,
    PipelineError,
    UpstreamError,
    ValidationError,
    WellspringError,
)
from .services.activity import get_audit_logger

settings = get_settings()

# Configure logging

# Ensure logs directory exists
logs_dir = Path(settings.LOG_DIR)
if not logs_dir.is_absolute():
    logs_dir = Path(__file__).parent.parent / logs_dir
logs_dir.mkdir(parents=True, exist_ok=True)

# Configure both file and console logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler(logs_dir / "wellspring.log", encoding="utf-8"),
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    audit = get_audit_logger()
    await audit.start()
    logger.info("%s %s started (environment=%s)", settings.PROJECT_NAME, settings.VERSION, settings.ENVIRONMENT)
    try:
        yield
    finally:
        await audit.stop()
        # Ensure the engine is properly cleaned up to avoid ResourceWarning
        try:
            engine.dispose()
        except Exception as e:
            logger.warning("engine.dispose() failed: %s", e)
        # Close logging file handlers to avoid unclosed file warnings during tests
        root_logger = logging.getLogger()
        for h in list(root_logger.handlers):
            h.flush()
            h.close()
            root_logger.removeHandler(h)


# Initialize FastAPI app with lifespan
app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Backend API for Wellspring - a mental-wellness companion",
    version=settings.VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Set up CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "service": f"{settings.PROJECT_NAME} API",
        "environment": get_settings().ENVIRONMENT,
    }


# Import and include routers
from .api.v1.api import api_router  # noqa: E402

app.include_router(api_router, prefix=settings.API_PREFIX)


# Root endpoint
@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API", "docs": "/api/docs", "version": settings.VERSION}


# Domain error -> HTTP status; first matching entry wins
ERROR_STATUS = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidState, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
    (InfrastructureError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PipelineError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: WellspringError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# Error handlers
@app.exception_handler(WellspringError)
async def wellspring_exception_handler(request: Request, exc: WellspringError):
    code = status_for(exc)
    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, MoodEntryPersistFailed):
        content["journal"] = jsonable_encoder(exc.journal)
    if code >= 500:
        logger.error("%s %s failed with %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors()), "code": ValidationError.code},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": WellspringError.code},
    )


if __name__ == "__main__":
    uvicorn.run("backend.wellspring.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
