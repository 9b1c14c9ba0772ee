from typing import Annotated, Optional
import uuid
import logging

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services.document_sequence_service import DocumentSequenceService


logger = logging.getLogger(__name__)


DB = Annotated[AsyncSession, Depends(get_db)]


async def get_audit_user_id(
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> Optional[str]:
    """
    User id forwarded by the identity provider, for the audit trail only.

    Authentication itself happens upstream; a malformed id is rejected
    so it cannot break the audit insert later in the request.
    """
    if x_user_id is None:
        return None
    try:
        uuid.UUID(x_user_id)
    except ValueError:
        logger.warning(f"Invalid X-User-Id header: {x_user_id}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id must be a UUID",
        )
    return x_user_id


async def get_sequence_service(
    request: Request,
    db: DB,
    user_id: Annotated[Optional[str], Depends(get_audit_user_id)],
) -> DocumentSequenceService:
    """Document sequence service bound to the request's session."""
    return DocumentSequenceService(
        db,
        user_id=user_id,
        ip_address=request.client.host if request.client else None,
        source="API",
    )


SequenceService = Annotated[DocumentSequenceService, Depends(get_sequence_service)]
