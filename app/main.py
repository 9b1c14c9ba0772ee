from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.v1.router import api_router
from app.database import init_db, async_session_factory
from app.core.exceptions import (
    DocumentNumberingError,
    UnknownEntityType,
    MissingSequenceScope,
    InvalidSequencePeriod,
    PersistenceUnavailable,
    CorruptSequenceState,
    SequenceContention,
)


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create tables that do not exist yet (migrations handle changes)
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    yield

    # Shutdown
    logger.info("Shutting down...")


# OpenAPI Tags with detailed descriptions
OPENAPI_TAGS = [
    {"name": "Document Numbers", "description": "Next-number previews and sequence maintenance"},
    {"name": "Documents", "description": "Create numbered business documents"},
]

FULL_API_DESCRIPTION = """
## Document Numbering API

Sequential document numbers for the sales, purchase and project modules.

| Document | Format | Resets |
|----------|--------|--------|
| Purchase Order | PO-2025-0001 | Calendar year |
| Bill | BILL-2025-0001 | Calendar year |
| Expense | EXP-2025-0001 | Calendar year |
| Credit Note | CN20250001 | Calendar year |
| Delivery Challan | DC20250001 | Calendar year |
| Project | PRJ-2025-0001 | Calendar year |
| Quotation | QTN-0001 | Never |
| Tax Invoice | GCS29/001/25-26 | Financial year (April) |
| Project Task | PRJ-2025-0001-T001 | Per project |

### Error Codes

| Code | Description |
|------|-------------|
| 400 | Bad Request - Missing project for task numbering, or a period the document type does not use |
| 409 | Conflict - Number reservation contended, please retry |
| 422 | Unprocessable Entity - Invalid document type or payload |
| 500 | Internal Server Error - Corrupt stored number or misconfiguration |
| 503 | Service Unavailable - Database unreachable, please retry |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=FULL_API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


# Document numbering errors → HTTP status
NUMBERING_ERROR_STATUS = {
    MissingSequenceScope: 400,
    InvalidSequencePeriod: 400,
    SequenceContention: 409,
    PersistenceUnavailable: 503,
    CorruptSequenceState: 500,
    UnknownEntityType: 500,
}


@app.exception_handler(DocumentNumberingError)
async def document_numbering_exception_handler(request: Request, exc: DocumentNumberingError):
    """Abort the request with a status matching the numbering failure."""
    status_code = NUMBERING_ERROR_STATUS.get(type(exc), 500)

    if status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
    else:
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")

    if isinstance(exc, PersistenceUnavailable):
        error_message = "Database temporarily unavailable, please try again"
    elif isinstance(exc, CorruptSequenceState):
        error_message = "Stored document numbers are inconsistent, contact an administrator"
    elif isinstance(exc, UnknownEntityType):
        error_message = "Document numbering is misconfigured"
    else:
        error_message = str(exc)

    response = JSONResponse(
        status_code=status_code,
        content={
            "error": error_message,
            "type": type(exc).__name__,
            "path": str(request.url.path),
            "method": request.method,
        },
    )
    if status_code in (409, 503):
        response.headers["Retry-After"] = "1"
    return response


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from datetime import datetime, timezone

    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    # Check database connectivity
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
