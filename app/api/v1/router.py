from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Document Numbering
    document_numbers,
    documents,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Document Numbering ====================
api_router.include_router(
    document_numbers.router,
    prefix="/document-numbers",
    tags=["Document Numbers"]
)

# ==================== Numbered Documents ====================
api_router.include_router(
    documents.router,
    prefix="/documents",
    tags=["Documents"]
)
