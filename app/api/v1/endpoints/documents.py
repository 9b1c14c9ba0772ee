"""API endpoints that create numbered documents."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select

from app.api.deps import DB, SequenceService
from app.api.v1.endpoints.document_numbers import entity_type_path
from app.core.document_formats import EntityType
from app.core.enum_utils import get_enum_value
from app.models.documents import NUMBERED_DOCUMENTS, Project
from app.schemas.document_sequence import DocumentCreate, DocumentResponse


router = APIRouter()


@router.post(
    "/{entity_type}",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_document(
    data: DocumentCreate,
    db: DB,
    service: SequenceService,
    entity_type: EntityType = Depends(entity_type_path),
):
    """
    Create a document with a freshly reserved number.

    The number is reserved and the document inserted in the same
    transaction; if anything fails neither is persisted.
    Tasks are numbered within their project (project_id required).
    """
    values = {
        "description": data.description,
        "amount": data.amount,
        "status": get_enum_value(data.status),
    }
    scope = None

    if entity_type == EntityType.TASK:
        if data.project_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="project_id is required for tasks",
            )
        result = await db.execute(select(Project).where(Project.id == data.project_id))
        project = result.scalar_one_or_none()
        if not project:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Project not found",
            )
        values["project_id"] = project.id
        scope = project.project_code
    elif data.project_id is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="project_id only applies to tasks",
        )

    document = await service.create_document(
        entity_type,
        values,
        reference=data.reference_date,
        scope=scope,
    )

    _, column_name = NUMBERED_DOCUMENTS[entity_type]
    return DocumentResponse(
        id=document.id,
        entity_type=entity_type,
        document_number=getattr(document, column_name),
        description=document.description,
        amount=document.amount,
        status=document.status,
        project_id=getattr(document, "project_id", None),
        created_at=document.created_at,
    )
