"""Pydantic schemas for document numbering and numbered documents."""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.core.document_formats import EntityType
from app.core.enum_utils import create_uppercase_validator, VALID_DOCUMENT_STATUSES
from app.models.documents import DocumentStatus
from app.schemas.base import BaseResponseSchema, BaseCreateSchema, Money


# ==================== Sequences ====================

class NextNumberResponse(BaseResponseSchema):
    """Preview of the next document number (nothing reserved)."""
    document_type: EntityType
    next_number: str
    prefix: str
    suffix: Optional[str] = None
    period: str


class CurrentNumberResponse(BaseResponseSchema):
    document_type: EntityType
    period: str
    current_number: int


class SequenceResponse(BaseResponseSchema):
    """Document sequence counter."""
    id: UUID
    document_type: str
    document_name: str
    period: str
    current_number: int
    prefix: str
    suffix: Optional[str] = None
    padding_length: int
    current_identifier: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SequenceListResponse(BaseResponseSchema):
    items: List[SequenceResponse]
    total: int


class SequenceInitializeRequest(BaseCreateSchema):
    """Reset a counter so the next issued number is starting_number + 1."""
    starting_number: int = Field(0, ge=0)
    period: Optional[str] = Field(None, max_length=50, description="Default: current period")
    scope: Optional[str] = Field(None, max_length=50, description="Project code for task numbering")


class SequenceVerifyResult(BaseResponseSchema):
    document_type: str
    period: str
    sequence_counter: int
    max_in_documents: int
    status: str
    repaired: bool


class SequenceVerifyResponse(BaseResponseSchema):
    status: str
    sequences: List[SequenceVerifyResult]
    message: str


# ==================== Documents ====================

class DocumentCreate(BaseCreateSchema):
    """Create a numbered document; the number is always assigned by the server."""
    description: Optional[str] = Field(None, max_length=255)
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    status: DocumentStatus = DocumentStatus.DRAFT
    reference_date: Optional[date] = Field(
        None, description="Date the number is issued for (default: today)"
    )
    project_id: Optional[UUID] = Field(None, description="Required for tasks")

    _normalize_status = create_uppercase_validator('status', VALID_DOCUMENT_STATUSES)


class DocumentResponse(BaseResponseSchema):
    id: UUID
    entity_type: EntityType
    document_number: str
    description: Optional[str] = None
    amount: Optional[Money] = None
    status: str
    project_id: Optional[UUID] = None
    created_at: datetime
