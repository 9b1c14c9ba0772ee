"""
Create the numbering tables and show where every sequence will continue.

Usage:
    python scripts/init_db.py
"""
import asyncio
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.document_formats import EntityType, PeriodRule, get_document_format
from app.database import Base, get_db_session, init_db
from app.services.document_sequence_service import DocumentSequenceService


async def init():
    """Create all tables, then preview the next number of each dated type."""
    print("Creating database tables...")
    await init_db()
    print(f"Database tables ready ({len(Base.metadata.tables)} tables)")

    async with get_db_session() as db:
        service = DocumentSequenceService(db, source="SCRIPT")
        for entity_type in EntityType:
            fmt = get_document_format(entity_type)
            if fmt.period_rule == PeriodRule.PARENT:
                continue
            next_number = await service.preview_next_number(entity_type)
            print(f"  {fmt.name:<20} next: {next_number}")


if __name__ == "__main__":
    asyncio.run(init())
