"""
Document Sequence Model for Atomic Number Generation

One counter row per (document type, period):
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
• PURCHASE_ORDER / 2025   → PO-2025-0042
• INVOICE / 25-26         → GCS29/042/25-26
• QUOTATION / ALL         → QTN-0042
• TASK / PRJ-2025-0003    → PRJ-2025-0003-T042

current_number is the last issued sequence. The display string is
derived from it at read time; it is never parsed back.

USAGE:
━━━━━━
    from app.services.document_sequence_service import DocumentSequenceService

    async def create_po(db):
        service = DocumentSequenceService(db)
        po_number = await service.get_next_number(EntityType.PURCHASE_ORDER)
        # Returns: PO-2025-0001
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Integer, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.document_formats import EntityType
from app.core.enum_utils import enum_comment
from app.database import Base
from app.db_types import UUIDType
from app.services.document_numbering import format_identifier


class DocumentSequenceAudit(Base):
    """
    Audit log for document sequence operations.

    Tracks all sequence number generations, seeds and manual updates
    for compliance and debugging purposes.
    """
    __tablename__ = "document_sequence_audit"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    document_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        index=True
    )
    period: Mapped[str] = mapped_column(
        String(50),
        nullable=False
    )
    operation: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="GET_NEXT, SEED, INITIALIZE, MANUAL_SYNC"
    )
    old_number: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )
    new_number: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )
    document_number: Mapped[Optional[str]] = mapped_column(
        String(80),
        nullable=True
    )
    source: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="API, SCRIPT, MANUAL"
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        nullable=True
    )
    ip_address: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )


class DocumentSequence(Base):
    """
    Document sequence counter for atomic number generation.

    Each document type has one counter per period. The counter is
    advanced with a single UPDATE ... RETURNING, so concurrent
    transactions never observe the same value.

    Example:
        document_type = "PURCHASE_ORDER"
        period = "2025"
        current_number = 42
        → Next PO number: PO-2025-0043
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        UniqueConstraint(
            "document_type", "period",
            name="uq_document_type_period"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # Document Identification
    document_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        index=True,
        comment=enum_comment(EntityType)
    )
    document_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Human readable name"
    )

    # Period (calendar year, financial year, parent code or ALL)
    period: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="e.g., 2025, 25-26, PRJ-2025-0003, ALL"
    )

    # Sequence Counter
    current_number: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Last used sequence number"
    )

    # Formatting
    prefix: Mapped[str] = mapped_column(
        String(60),
        nullable=False,
        comment="Rendered prefix, e.g. PO-2025-"
    )
    suffix: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Rendered suffix, e.g. /25-26"
    )
    padding_length: Mapped[int] = mapped_column(
        Integer,
        default=4,
        nullable=False,
        comment="Zero padding for sequence (4 = 0001)"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def render(self, sequence: int) -> str:
        """Render a sequence number in this counter's format."""
        return format_identifier(self.prefix, sequence, self.padding_length, self.suffix)

    @property
    def current_identifier(self) -> Optional[str]:
        """Last issued document number, if any."""
        if self.current_number < 1:
            return None
        return self.render(self.current_number)

    def preview_next_number(self) -> str:
        """Preview next number without incrementing."""
        return self.render(self.current_number + 1)

    def __repr__(self) -> str:
        return f"<DocumentSequence({self.document_type}/{self.period}: {self.current_number})>"
