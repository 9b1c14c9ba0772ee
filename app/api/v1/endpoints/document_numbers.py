"""API endpoints for document number previews and sequence maintenance."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import DB, SequenceService
from app.core.document_formats import EntityType, resolve_entity_type
from app.core.exceptions import UnknownEntityType
from app.schemas.document_sequence import (
    NextNumberResponse, CurrentNumberResponse,
    SequenceResponse, SequenceListResponse, SequenceInitializeRequest,
    SequenceVerifyResult, SequenceVerifyResponse,
)


router = APIRouter()


async def entity_type_path(entity_type: str) -> EntityType:
    """Resolve the {entity_type} path segment (name or short code, any case)."""
    try:
        return resolve_entity_type(entity_type)
    except UnknownEntityType:
        valid_types = ", ".join(e.value for e in EntityType)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid document type '{entity_type}'. Valid types: {valid_types}",
        )


# ==================== Next Number Preview ====================

@router.get("/{entity_type}/next-number", response_model=NextNumberResponse)
async def get_next_number(
    service: SequenceService,
    entity_type: EntityType = Depends(entity_type_path),
    scope: Optional[str] = Query(None, max_length=50, description="Project code for tasks"),
):
    """Get the next available document number without reserving it.

    Returns e.g. PO-2025-0008 or GCS29/001/25-26.
    """
    layout = service.get_layout(entity_type, scope=scope)
    next_number = await service.preview_next_number(entity_type, scope=scope)

    return NextNumberResponse(
        document_type=entity_type,
        next_number=next_number,
        prefix=layout.prefix,
        suffix=layout.suffix,
        period=layout.period,
    )


@router.get("/{entity_type}/current", response_model=CurrentNumberResponse)
async def get_current_number(
    service: SequenceService,
    entity_type: EntityType = Depends(entity_type_path),
    period: Optional[str] = Query(None, max_length=50),
    scope: Optional[str] = Query(None, max_length=50),
):
    """Get the last issued sequence number of a period (0 if none)."""
    layout = service.get_layout(entity_type, scope=scope, period=period)
    current = await service.get_current_number(entity_type, period=layout.period)

    return CurrentNumberResponse(
        document_type=entity_type,
        period=layout.period,
        current_number=current,
    )


# ==================== Sequence Admin ====================

@router.get("/sequences", response_model=SequenceListResponse)
async def list_sequences(
    service: SequenceService,
    entity_type: Optional[str] = Query(None, description="Filter by document type"),
):
    """List document sequence counters."""
    if entity_type is not None:
        entity_type = await entity_type_path(entity_type)

    sequences = await service.list_sequences(entity_type)
    return SequenceListResponse(
        items=[SequenceResponse.model_validate(s) for s in sequences],
        total=len(sequences),
    )


@router.get("/verify", response_model=SequenceVerifyResponse)
async def verify_document_sequences(
    db: DB,
    service: SequenceService,
):
    """
    Verify all current-period sequences are in sync with actual documents.

    Returns status for each sequence and auto-repairs if out of sync.
    """
    results = await service.verify_all_sequences()
    await db.commit()

    return SequenceVerifyResponse(
        status="OK" if all(r["status"] == "OK" or r["repaired"] for r in results) else "ISSUES_FOUND",
        sequences=[SequenceVerifyResult(**r) for r in results],
        message="All sequences verified and repaired if needed",
    )


@router.post("/{entity_type}/initialize", response_model=SequenceResponse)
async def initialize_document_sequence(
    data: SequenceInitializeRequest,
    service: SequenceService,
    entity_type: EntityType = Depends(entity_type_path),
):
    """
    Initialize or reset a document sequence.

    The next document gets starting_number + 1.
    """
    sequence = await service.initialize_sequence(
        entity_type,
        starting_number=data.starting_number,
        period=data.period,
        scope=data.scope,
    )
    return SequenceResponse.model_validate(sequence)


@router.post("/{entity_type}/repair", response_model=SequenceResponse)
async def repair_document_sequence(
    service: SequenceService,
    entity_type: EntityType = Depends(entity_type_path),
    max_number: int = Query(..., ge=0, description="Highest sequence number that exists"),
    period: Optional[str] = Query(None, max_length=50),
    scope: Optional[str] = Query(None, max_length=50),
):
    """
    Manually repair a document sequence to a specific number.

    The sequence is raised to max_number so the next document gets
    max_number + 1. A sequence is never moved backwards.
    """
    sequence = await service.sync_sequence_from_max(
        entity_type, max_number, period=period, scope=scope
    )
    return SequenceResponse.model_validate(sequence)
