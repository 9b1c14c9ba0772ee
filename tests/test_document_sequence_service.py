"""DocumentSequenceService against a real (SQLite) database."""
import asyncio
from datetime import date

import pytest
from sqlalchemy import select, func

from app.core.document_formats import EntityType
from app.core.exceptions import (
    CorruptSequenceState, InvalidSequencePeriod, MissingSequenceScope,
    PersistenceUnavailable, SequenceContention,
)
from app.database import create_engine_from_url, create_session_factory
from app.models.document_sequence import DocumentSequence, DocumentSequenceAudit
from app.models.documents import Invoice, PurchaseOrder, Quotation
from app.services.document_sequence_service import (
    DocumentSequenceService, get_next_document_number,
)


JULY_2025 = date(2025, 7, 10)


class TestNextNumber:

    async def test_first_number_of_period(self, db_session):
        service = DocumentSequenceService(db_session)
        assert await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025) == "PO-2025-0001"

    async def test_sequential_numbers_increase_by_one(self, db_session):
        service = DocumentSequenceService(db_session)
        numbers = [
            await service.get_next_number(EntityType.BILL, JULY_2025)
            for _ in range(5)
        ]
        assert numbers == [f"BILL-2025-{i:04d}" for i in range(1, 6)]

    async def test_entity_types_are_independent(self, db_session):
        service = DocumentSequenceService(db_session)
        po = await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025)
        cn = await service.get_next_number(EntityType.CREDIT_NOTE, JULY_2025)
        po2 = await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025)

        assert po == "PO-2025-0001"
        assert cn == "CN20250001"
        assert po2 == "PO-2025-0002"

    async def test_period_rollover_resets_sequence(self, db_session):
        service = DocumentSequenceService(db_session)
        for _ in range(3):
            await service.get_next_number(EntityType.EXPENSE, date(2025, 12, 31))

        assert await service.get_next_number(EntityType.EXPENSE, date(2026, 1, 1)) == "EXP-2026-0001"
        # The old period keeps its own counter
        assert await service.get_next_number(EntityType.EXPENSE, date(2025, 6, 1)) == "EXP-2025-0004"

    async def test_invoice_round_trip(self, db_session):
        service = DocumentSequenceService(db_session)
        first = await service.create_document(EntityType.INVOICE, reference=JULY_2025)
        second = await service.create_document(EntityType.INVOICE, reference=JULY_2025)

        assert first.invoice_number == "GCS29/001/25-26"
        assert second.invoice_number == "GCS29/002/25-26"

    async def test_invoice_financial_year_rollover(self, db_session):
        service = DocumentSequenceService(db_session)
        assert await service.get_next_number(EntityType.INVOICE, date(2026, 3, 31)) == "GCS29/001/25-26"
        assert await service.get_next_number(EntityType.INVOICE, date(2026, 3, 31)) == "GCS29/002/25-26"
        assert await service.get_next_number(EntityType.INVOICE, date(2026, 4, 1)) == "GCS29/001/26-27"

    async def test_quotation_does_not_reset(self, db_session):
        service = DocumentSequenceService(db_session)
        assert await service.get_next_number(EntityType.QUOTATION, date(2025, 12, 31)) == "QTN-0001"
        assert await service.get_next_number(EntityType.QUOTATION, date(2026, 1, 1)) == "QTN-0002"

    async def test_task_numbers_are_per_project(self, db_session):
        service = DocumentSequenceService(db_session)
        project_a = await service.create_document(EntityType.PROJECT, {"description": "Hull survey"}, JULY_2025)
        project_b = await service.create_document(EntityType.PROJECT, {"description": "Refit"}, JULY_2025)

        task_a1 = await service.create_document(
            EntityType.TASK, {"project_id": project_a.id}, scope=project_a.project_code
        )
        task_a2 = await service.create_document(
            EntityType.TASK, {"project_id": project_a.id}, scope=project_a.project_code
        )
        task_b1 = await service.create_document(
            EntityType.TASK, {"project_id": project_b.id}, scope=project_b.project_code
        )

        assert project_a.project_code == "PRJ-2025-0001"
        assert task_a1.task_number == "PRJ-2025-0001-T001"
        assert task_a2.task_number == "PRJ-2025-0001-T002"
        assert task_b1.task_number == "PRJ-2025-0002-T001"

    async def test_task_without_scope(self, db_session):
        service = DocumentSequenceService(db_session)
        with pytest.raises(MissingSequenceScope):
            await service.get_next_number(EntityType.TASK, JULY_2025)

    async def test_accepts_short_codes(self, db_session):
        assert await get_next_document_number(db_session, "po", JULY_2025) == "PO-2025-0001"
        assert await get_next_document_number(db_session, "PURCHASE_ORDER", JULY_2025) == "PO-2025-0002"

    async def test_audit_trail(self, db_session):
        service = DocumentSequenceService(db_session, ip_address="10.0.0.7")
        number = await service.get_next_number(EntityType.DELIVERY_CHALLAN, JULY_2025)

        result = await db_session.execute(
            select(DocumentSequenceAudit).where(DocumentSequenceAudit.operation == "GET_NEXT")
        )
        audit = result.scalar_one()
        assert audit.document_number == number == "DC20250001"
        assert audit.period == "2025"
        assert audit.old_number == 0
        assert audit.new_number == 1
        assert audit.ip_address == "10.0.0.7"


class TestSeedingFromStoredDocuments:

    async def test_continues_after_legacy_number(self, db_session):
        db_session.add(PurchaseOrder(po_number="PO-2025-0006"))
        db_session.add(PurchaseOrder(po_number="PO-2025-0007"))
        await db_session.flush()

        service = DocumentSequenceService(db_session)
        assert await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025) == "PO-2025-0008"
        assert await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025) == "PO-2025-0009"

    async def test_ignores_other_periods(self, db_session):
        db_session.add(PurchaseOrder(po_number="PO-2024-0099"))
        db_session.add(Invoice(invoice_number="GCS29/045/24-25"))
        await db_session.flush()

        service = DocumentSequenceService(db_session)
        assert await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025) == "PO-2025-0001"
        assert await service.get_next_number(EntityType.INVOICE, JULY_2025) == "GCS29/001/25-26"

    async def test_number_beyond_padding_width(self, db_session):
        db_session.add(Quotation(quotation_number="QTN-9999"))
        db_session.add(Quotation(quotation_number="QTN-10000"))
        await db_session.flush()

        service = DocumentSequenceService(db_session)
        assert await service.get_next_number(EntityType.QUOTATION) == "QTN-10001"

    async def test_corrupt_legacy_number(self, db_session):
        db_session.add(PurchaseOrder(po_number="PO-2025-ABCD"))
        await db_session.flush()

        service = DocumentSequenceService(db_session)
        with pytest.raises(CorruptSequenceState) as exc_info:
            await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025)
        assert exc_info.value.identifier == "PO-2025-ABCD"

        # No counter was created for the period
        count = await db_session.scalar(select(func.count(DocumentSequence.id)))
        assert count == 0


class TestCreateDocument:

    async def test_retries_past_numbers_taken_outside_the_service(self, db_session):
        service = DocumentSequenceService(db_session)
        await service.initialize_sequence(EntityType.PURCHASE_ORDER, 0, period="2025")
        db_session.add(PurchaseOrder(po_number="PO-2025-0001"))
        await db_session.flush()

        document = await service.create_document(
            EntityType.PURCHASE_ORDER, {"description": "Anchor chain"}, JULY_2025
        )
        assert document.po_number == "PO-2025-0002"
        assert document.description == "Anchor chain"

    async def test_gives_up_after_max_attempts(self, db_session):
        service = DocumentSequenceService(db_session, max_attempts=2)
        await service.initialize_sequence(EntityType.PURCHASE_ORDER, 0, period="2025")
        db_session.add_all([
            PurchaseOrder(po_number="PO-2025-0001"),
            PurchaseOrder(po_number="PO-2025-0002"),
        ])
        await db_session.flush()

        with pytest.raises(SequenceContention) as exc_info:
            await service.create_document(EntityType.PURCHASE_ORDER, reference=JULY_2025)
        assert exc_info.value.attempts == 2

    async def test_rolled_back_reservation_is_not_consumed(self, session_factory):
        async with session_factory() as session:
            service = DocumentSequenceService(session)
            await service.create_document(EntityType.PURCHASE_ORDER, reference=JULY_2025)
            await session.rollback()

        async with session_factory() as session:
            service = DocumentSequenceService(session)
            document = await service.create_document(EntityType.PURCHASE_ORDER, reference=JULY_2025)
            await session.commit()

        assert document.po_number == "PO-2025-0001"

    @pytest.mark.parametrize("entity_type, expected", [
        (EntityType.PURCHASE_ORDER, "PO-2025-{:04d}"),
        (EntityType.INVOICE, "GCS29/{:03d}/25-26"),
    ])
    async def test_concurrent_creation_yields_unique_numbers(self, session_factory, entity_type, expected):
        async def create_one():
            async with session_factory() as session:
                service = DocumentSequenceService(session)
                document = await service.create_document(entity_type, reference=JULY_2025)
                await session.commit()
                return document

        documents = await asyncio.gather(*(create_one() for _ in range(50)))
        column = "po_number" if entity_type == EntityType.PURCHASE_ORDER else "invoice_number"
        numbers = [getattr(d, column) for d in documents]

        assert len(set(numbers)) == 50
        assert sorted(numbers) == [expected.format(i) for i in range(1, 51)]


class TestMaintenance:

    async def test_preview_does_not_reserve(self, db_session):
        service = DocumentSequenceService(db_session)
        assert await service.preview_next_number(EntityType.PROJECT, JULY_2025) == "PRJ-2025-0001"
        assert await service.preview_next_number(EntityType.PROJECT, JULY_2025) == "PRJ-2025-0001"
        assert await service.get_next_number(EntityType.PROJECT, JULY_2025) == "PRJ-2025-0001"
        assert await service.preview_next_number(EntityType.PROJECT, JULY_2025) == "PRJ-2025-0002"

    async def test_preview_continues_from_stored_documents(self, db_session):
        db_session.add(Invoice(invoice_number="GCS29/041/25-26"))
        await db_session.flush()

        service = DocumentSequenceService(db_session)
        assert await service.preview_next_number(EntityType.INVOICE, JULY_2025) == "GCS29/042/25-26"

    async def test_initialize_sequence(self, db_session):
        service = DocumentSequenceService(db_session)
        sequence = await service.initialize_sequence(EntityType.BILL, 40, period="2025")

        assert sequence.current_number == 40
        assert sequence.prefix == "BILL-2025-"
        assert await service.get_current_number(EntityType.BILL, period="2025") == 40
        assert await service.get_next_number(EntityType.BILL, JULY_2025) == "BILL-2025-0041"

    async def test_initialize_rejects_negative(self, db_session):
        service = DocumentSequenceService(db_session)
        with pytest.raises(ValueError):
            await service.initialize_sequence(EntityType.BILL, -1, period="2025")

    async def test_layout_for_explicit_period(self, db_session):
        service = DocumentSequenceService(db_session)
        layout = service.get_layout("inv", period="25-26")

        assert layout.fmt.entity_type == EntityType.INVOICE
        assert layout.document_type == "INVOICE"
        assert (layout.prefix, layout.suffix, layout.padding) == ("GCS29/", "/25-26", 3)
        assert layout.render(7) == "GCS29/007/25-26"

    async def test_initialize_quotation_uses_single_counter(self, db_session):
        service = DocumentSequenceService(db_session)
        await service.initialize_sequence(EntityType.QUOTATION, 50, period="ALL")

        assert await service.get_next_number(EntityType.QUOTATION, JULY_2025) == "QTN-0051"

    @pytest.mark.parametrize("entity_type, period", [
        (EntityType.QUOTATION, "2025"),
        (EntityType.PURCHASE_ORDER, "25-26"),
        (EntityType.INVOICE, "2025"),
    ])
    async def test_maintenance_rejects_period_of_another_rule(self, db_session, entity_type, period):
        service = DocumentSequenceService(db_session)

        with pytest.raises(InvalidSequencePeriod):
            await service.initialize_sequence(entity_type, 50, period=period)
        with pytest.raises(InvalidSequencePeriod):
            await service.sync_sequence_from_max(entity_type, 50, period=period)
        with pytest.raises(InvalidSequencePeriod):
            await service.get_current_number(entity_type, period=period)

        count = await db_session.scalar(select(func.count(DocumentSequence.id)))
        assert count == 0

    async def test_sync_never_moves_backwards(self, db_session):
        service = DocumentSequenceService(db_session)
        await service.initialize_sequence(EntityType.BILL, 10, period="2025")

        sequence = await service.sync_sequence_from_max(EntityType.BILL, 4, period="2025")
        assert sequence.current_number == 10

        sequence = await service.sync_sequence_from_max(EntityType.BILL, 25, period="2025")
        assert sequence.current_number == 25

    async def test_verify_and_repair(self, db_session):
        service = DocumentSequenceService(db_session)
        await service.initialize_sequence(EntityType.PURCHASE_ORDER, 2, period="2025")
        db_session.add(PurchaseOrder(po_number="PO-2025-0005"))
        await db_session.flush()

        result = await service.verify_and_repair_sequence(EntityType.PURCHASE_ORDER, period="2025")
        assert result == {
            "document_type": "PURCHASE_ORDER",
            "period": "2025",
            "sequence_counter": 2,
            "max_in_documents": 5,
            "status": "MISMATCH",
            "repaired": True,
        }
        assert await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025) == "PO-2025-0006"

    async def test_verify_all_skips_per_project_sequences(self, db_session):
        service = DocumentSequenceService(db_session)
        results = await service.verify_all_sequences(JULY_2025)

        types = {r["document_type"] for r in results}
        assert "TASK" not in types
        assert len(results) == len(EntityType) - 1
        assert all(r["status"] == "OK" for r in results)

    async def test_list_sequences(self, db_session):
        service = DocumentSequenceService(db_session)
        await service.get_next_number(EntityType.INVOICE, JULY_2025)
        await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025)
        await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025)

        sequences = await service.list_sequences()
        assert [(s.document_type, s.period, s.current_number) for s in sequences] == [
            ("INVOICE", "25-26", 1),
            ("PURCHASE_ORDER", "2025", 2),
        ]
        assert sequences[1].current_identifier == "PO-2025-0002"

        only_invoices = await service.list_sequences("inv")
        assert len(only_invoices) == 1


async def test_unreachable_database(tmp_path):
    engine = create_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'documents.db'}")
    try:
        async with create_session_factory(engine)() as session:
            service = DocumentSequenceService(session)
            with pytest.raises(PersistenceUnavailable):
                await service.get_next_number(EntityType.PURCHASE_ORDER, JULY_2025)
    finally:
        await engine.dispose()
