"""
Document Sequence Service for Atomic Number Generation

NUMBERING RULES:
- Calendar year numbering for PO, BILL, EXP, CN, DC, PRJ (reset every January)
- Indian financial year numbering for invoices (reset every April)
- Quotations never reset; project tasks are numbered per project
- Atomic increment of one counter row per (document type, period)
- Fresh counters are seeded from the documents already stored

USAGE:
    from app.services.document_sequence_service import DocumentSequenceService

    async def create_po(db: AsyncSession):
        service = DocumentSequenceService(db)
        po = await service.create_document(EntityType.PURCHASE_ORDER, {"amount": 1200})
        # po.po_number == "PO-2025-0001"

The service never commits. Reserved numbers and the documents carrying
them are flushed into the caller's transaction and commit (or roll back)
together.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select, update, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.document_formats import (
    DocumentFormat, EntityType, PeriodRule, get_document_format,
)
from app.core.exceptions import SequenceContention
from app.models.document_sequence import DocumentSequence, DocumentSequenceAudit
from app.models.documents import NUMBERED_DOCUMENTS
from app.services.document_lookup import LastNumberLookup, database_errors_as_unavailable
from app.services.document_numbering import (
    build_prefix, format_identifier, get_period_label, validate_period_label,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequenceLayout:
    """Everything needed to address and render one sequence."""
    fmt: DocumentFormat
    period: str
    prefix: str
    suffix: Optional[str]
    padding: int

    @property
    def document_type(self) -> str:
        return self.fmt.entity_type.value

    def render(self, sequence: int) -> str:
        return format_identifier(self.prefix, sequence, self.padding, self.suffix)


class DocumentSequenceService:
    """
    Service for generating atomic document numbers.

    Features:
    - Atomic increment with UPDATE ... RETURNING
    - Seeding of new counters from existing documents
    - Bounded retry on concurrent seeding and on duplicate document numbers
    - Audit logging for all counter operations
    """

    def __init__(
        self,
        db: AsyncSession,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        source: str = "API",
        series_code: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ):
        """
        Initialize the service.

        Args:
            db: Async database session (the caller's unit of work)
            user_id: Optional user ID for audit logging
            ip_address: Optional IP address for audit logging
            source: Audit source label (API, SCRIPT, MANUAL)
            series_code: Invoice series code (default: INVOICE_SERIES_CODE)
            max_attempts: Reservation attempts before SequenceContention
        """
        self.db = db
        self.user_id = user_id
        self.ip_address = ip_address
        self.source = source
        self.series_code = series_code or settings.INVOICE_SERIES_CODE
        self.max_attempts = max_attempts or settings.DOCUMENT_NUMBER_MAX_ATTEMPTS
        self.lookup = LastNumberLookup(db)

    # ==================== Layout ====================

    def get_layout(
        self,
        entity_type: Union[EntityType, str],
        reference: Optional[date] = None,
        scope: Optional[str] = None,
        period: Optional[str] = None,
    ) -> SequenceLayout:
        """
        Resolve period, prefix, suffix and padding for an entity type.

        An explicit period wins over the one derived from reference and
        must fit the type's period rule. Without either, the server-local
        current date is used.

        Raises:
            UnknownEntityType: If the entity type has no format
            MissingSequenceScope: If a per-parent type is given no scope
            InvalidSequencePeriod: If an explicit period does not fit the type
        """
        fmt = get_document_format(entity_type)

        if period is not None:
            period = validate_period_label(fmt.entity_type, period)
        else:
            if reference is None:
                reference = datetime.now()
            period = get_period_label(fmt.entity_type, reference, scope)

        prefix, suffix, padding = build_prefix(fmt.entity_type, period, self.series_code)
        return SequenceLayout(
            fmt=fmt,
            period=period,
            prefix=prefix,
            suffix=suffix,
            padding=padding,
        )

    # ==================== Audit ====================

    async def _log_audit(
        self,
        layout: SequenceLayout,
        operation: str,
        old_number: Optional[int] = None,
        new_number: Optional[int] = None,
        document_number: Optional[str] = None,
    ):
        """Log an audit record for sequence operations."""
        audit = DocumentSequenceAudit(
            document_type=layout.document_type,
            period=layout.period,
            operation=operation,
            old_number=old_number,
            new_number=new_number,
            document_number=document_number,
            source=self.source,
            user_id=uuid.UUID(self.user_id) if self.user_id else None,
            ip_address=self.ip_address,
        )
        self.db.add(audit)

    # ==================== Counter primitives ====================

    async def _get_sequence(
        self,
        layout: SequenceLayout,
        for_update: bool = False,
    ) -> Optional[DocumentSequence]:
        stmt = (
            select(DocumentSequence)
            .where(
                DocumentSequence.document_type == layout.document_type,
                DocumentSequence.period == layout.period,
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        with database_errors_as_unavailable(f"{layout.document_type} sequence read"):
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()

    async def _increment(self, layout: SequenceLayout) -> Optional[int]:
        """
        Atomically advance an existing counter.

        Returns:
            The new sequence number, or None if the counter does not exist
        """
        stmt = (
            update(DocumentSequence)
            .where(
                and_(
                    DocumentSequence.document_type == layout.document_type,
                    DocumentSequence.period == layout.period,
                )
            )
            .values(current_number=DocumentSequence.current_number + 1)
            .returning(DocumentSequence.current_number)
            .execution_options(synchronize_session=False)
        )

        with database_errors_as_unavailable(f"{layout.document_type} sequence increment"):
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()

    def _new_sequence(self, layout: SequenceLayout, current_number: int) -> DocumentSequence:
        return DocumentSequence(
            document_type=layout.document_type,
            document_name=layout.fmt.name,
            period=layout.period,
            current_number=current_number,
            prefix=layout.prefix,
            suffix=layout.suffix,
            padding_length=layout.padding,
        )

    async def _seed_sequence(self, layout: SequenceLayout) -> Optional[int]:
        """
        Create the counter for a new period, continuing from stored documents.

        Returns:
            The first sequence number issued from the new counter, or None
            if another transaction created the counter first

        Raises:
            CorruptSequenceState: If the last stored identifier cannot be parsed
        """
        base = await self.lookup.find_max_sequence(
            layout.fmt.entity_type, layout.prefix, layout.suffix
        )
        sequence = self._new_sequence(layout, base + 1)

        try:
            with database_errors_as_unavailable(f"{layout.document_type} sequence seed"):
                async with self.db.begin_nested():
                    self.db.add(sequence)
        except IntegrityError:
            logger.warning(
                f"Sequence {layout.document_type}/{layout.period} was created concurrently, retrying"
            )
            return None

        await self._log_audit(
            layout,
            operation="SEED",
            old_number=base,
            new_number=base + 1,
        )
        logger.info(
            f"Seeded sequence {layout.document_type}/{layout.period} from stored documents at {base}"
        )
        return base + 1

    # ==================== Number generation ====================

    async def get_next_number(
        self,
        entity_type: Union[EntityType, str],
        reference: Optional[date] = None,
        scope: Optional[str] = None,
    ) -> str:
        """
        Reserve and return the next document number.

        Args:
            entity_type: Entity type (enum, name or short code)
            reference: Date the document belongs to (default: now, server-local)
            scope: Parent code for per-parent types (project code for tasks)

        Returns:
            Formatted document number, e.g. PO-2025-0008, GCS29/001/25-26

        Raises:
            UnknownEntityType: If entity_type is invalid
            MissingSequenceScope: If a task number is requested without a project
            PersistenceUnavailable: If the database cannot be reached
            CorruptSequenceState: If a stored number cannot be parsed
            SequenceContention: If the counter could not be reserved
        """
        layout = self.get_layout(entity_type, reference, scope)

        sequence_number = None
        for _ in range(self.max_attempts):
            sequence_number = await self._increment(layout)
            if sequence_number is not None:
                break

            sequence_number = await self._seed_sequence(layout)
            if sequence_number is not None:
                break
        else:
            logger.error(
                f"Gave up reserving {layout.document_type}/{layout.period} after {self.max_attempts} attempts"
            )
            raise SequenceContention(layout.document_type, self.max_attempts)

        doc_number = layout.render(sequence_number)

        await self._log_audit(
            layout,
            operation="GET_NEXT",
            old_number=sequence_number - 1,
            new_number=sequence_number,
            document_number=doc_number,
        )

        with database_errors_as_unavailable(f"{layout.document_type} sequence flush"):
            await self.db.flush()

        logger.info(f"Reserved {layout.document_type} number {doc_number}")
        return doc_number

    async def preview_next_number(
        self,
        entity_type: Union[EntityType, str],
        reference: Optional[date] = None,
        scope: Optional[str] = None,
    ) -> str:
        """
        Preview what the next number would be without reserving it.

        Returns:
            What the next document number would be
        """
        layout = self.get_layout(entity_type, reference, scope)

        sequence = await self._get_sequence(layout)
        if sequence:
            return sequence.preview_next_number()

        # No counter yet - continue from stored documents
        base = await self.lookup.find_max_sequence(
            layout.fmt.entity_type, layout.prefix, layout.suffix
        )
        return layout.render(base + 1)

    async def get_current_number(
        self,
        entity_type: Union[EntityType, str],
        period: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> int:
        """
        Get the current (last used) sequence number.

        Returns:
            Current sequence number (0 if no counter exists)
        """
        layout = self.get_layout(entity_type, scope=scope, period=period)
        sequence = await self._get_sequence(layout)
        return sequence.current_number if sequence else 0

    async def list_sequences(
        self,
        entity_type: Optional[Union[EntityType, str]] = None,
    ) -> List[DocumentSequence]:
        """List counters, optionally for a single entity type."""
        stmt = select(DocumentSequence).order_by(
            DocumentSequence.document_type,
            DocumentSequence.period,
        )
        if entity_type is not None:
            fmt = get_document_format(entity_type)
            stmt = stmt.where(DocumentSequence.document_type == fmt.entity_type.value)

        with database_errors_as_unavailable("sequence listing"):
            result = await self.db.execute(stmt.execution_options(populate_existing=True))
            return list(result.scalars().all())

    # ==================== Maintenance ====================

    async def initialize_sequence(
        self,
        entity_type: Union[EntityType, str],
        starting_number: int = 0,
        period: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> DocumentSequence:
        """
        Initialize or reset a sequence to a specific number.

        Use this to migrate existing data or correct sequences.

        Args:
            entity_type: Entity type
            starting_number: Number to start from (next will be +1)
            period: Period label (default: current period)
            scope: Parent code for per-parent types

        Returns:
            The sequence record
        """
        if starting_number < 0:
            raise ValueError(f"starting_number must not be negative, got {starting_number}")

        layout = self.get_layout(entity_type, scope=scope, period=period)

        sequence = await self._get_sequence(layout, for_update=True)
        old_number = sequence.current_number if sequence else 0

        if sequence:
            sequence.current_number = starting_number
        else:
            sequence = self._new_sequence(layout, starting_number)
            self.db.add(sequence)

        await self._log_audit(
            layout,
            operation="INITIALIZE",
            old_number=old_number,
            new_number=starting_number,
        )

        with database_errors_as_unavailable(f"{layout.document_type} sequence initialize"):
            await self.db.flush()

        logger.warning(
            f"Sequence {layout.document_type}/{layout.period} initialized to {starting_number} (was {old_number})"
        )
        return sequence

    async def sync_sequence_from_max(
        self,
        entity_type: Union[EntityType, str],
        max_sequence_number: int,
        period: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> DocumentSequence:
        """
        Sync a sequence to match the maximum used number.

        Use this to repair sequences that are out of sync with actual
        documents. A counter is never moved backwards.

        Returns:
            Updated sequence record
        """
        layout = self.get_layout(entity_type, scope=scope, period=period)

        sequence = await self._get_sequence(layout, for_update=True)
        old_number = sequence.current_number if sequence else 0

        if sequence:
            if max_sequence_number > sequence.current_number:
                sequence.current_number = max_sequence_number
        else:
            sequence = self._new_sequence(layout, max_sequence_number)
            self.db.add(sequence)

        await self._log_audit(
            layout,
            operation="MANUAL_SYNC",
            old_number=old_number,
            new_number=sequence.current_number,
        )

        with database_errors_as_unavailable(f"{layout.document_type} sequence sync"):
            await self.db.flush()

        return sequence

    async def verify_and_repair_sequence(
        self,
        entity_type: Union[EntityType, str],
        period: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Verify a sequence is in sync with actual documents and repair if needed.

        Returns:
            Dict with verification results
        """
        layout = self.get_layout(entity_type, scope=scope, period=period)

        sequence = await self._get_sequence(layout)
        current = sequence.current_number if sequence else 0

        max_in_docs = await self.lookup.find_max_sequence(
            layout.fmt.entity_type, layout.prefix, layout.suffix
        )

        status = "OK" if current >= max_in_docs else "MISMATCH"
        repaired = False

        if current < max_in_docs:
            logger.warning(
                f"Sequence {layout.document_type}/{layout.period} is behind stored documents "
                f"({current} < {max_in_docs}), repairing"
            )
            await self.sync_sequence_from_max(
                layout.fmt.entity_type, max_in_docs, period=layout.period
            )
            repaired = True

        return {
            "document_type": layout.document_type,
            "period": layout.period,
            "sequence_counter": current,
            "max_in_documents": max_in_docs,
            "status": status,
            "repaired": repaired,
        }

    async def verify_all_sequences(self, reference: Optional[date] = None) -> List[Dict[str, Any]]:
        """Verify the current-period counters of every dated entity type."""
        results = []
        for entity_type in EntityType:
            if get_document_format(entity_type).period_rule == PeriodRule.PARENT:
                continue
            layout = self.get_layout(entity_type, reference)
            results.append(
                await self.verify_and_repair_sequence(entity_type, period=layout.period)
            )
        return results

    # ==================== Document creation ====================

    async def _number_exists(self, entity_type: EntityType, number: str) -> bool:
        model, column_name = NUMBERED_DOCUMENTS[entity_type]
        column = getattr(model, column_name)
        with database_errors_as_unavailable(f"{entity_type.value} number check"):
            result = await self.db.execute(select(column).where(column == number).limit(1))
            return result.scalar_one_or_none() is not None

    async def create_document(
        self,
        entity_type: Union[EntityType, str],
        values: Optional[Dict[str, Any]] = None,
        reference: Optional[date] = None,
        scope: Optional[str] = None,
    ):
        """
        Reserve a number and insert the document carrying it.

        If the number is already taken (counter behind data written
        outside this service) the counter is advanced again, up to
        max_attempts times.

        Returns:
            The flushed document instance

        Raises:
            SequenceContention: If no free number was found
            (and everything get_next_number raises)
        """
        fmt = get_document_format(entity_type)
        model, column_name = NUMBERED_DOCUMENTS[fmt.entity_type]
        values = dict(values or {})

        for attempt in range(1, self.max_attempts + 1):
            number = await self.get_next_number(fmt.entity_type, reference, scope)
            document = model(**values, **{column_name: number})

            try:
                with database_errors_as_unavailable(f"{fmt.entity_type.value} insert"):
                    async with self.db.begin_nested():
                        self.db.add(document)
            except IntegrityError:
                if not await self._number_exists(fmt.entity_type, number):
                    raise
                logger.warning(
                    f"{fmt.name} number {number} already taken "
                    f"(attempt {attempt}/{self.max_attempts}), retrying"
                )
                continue

            logger.info(f"Created {fmt.name} {number}")
            return document

        raise SequenceContention(fmt.entity_type.value, self.max_attempts)


# Convenience function for quick access
async def get_next_document_number(
    db: AsyncSession,
    entity_type: Union[EntityType, str],
    reference: Optional[date] = None,
    scope: Optional[str] = None,
) -> str:
    """
    Quick function to get next document number.

    Usage:
        po_number = await get_next_document_number(db, "po")
        invoice_number = await get_next_document_number(db, EntityType.INVOICE)
    """
    service = DocumentSequenceService(db)
    return await service.get_next_number(entity_type, reference, scope)
