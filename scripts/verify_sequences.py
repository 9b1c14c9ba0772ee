"""
Verify document sequences against stored documents and repair lagging ones.

Usage:
    python scripts/verify_sequences.py              # current period
    python scripts/verify_sequences.py 2025-03-31   # period containing that date
"""
import asyncio
import sys
from datetime import date
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.database import get_db_session
from app.services.document_sequence_service import DocumentSequenceService


async def main(reference: date = None):
    async with get_db_session() as db:
        service = DocumentSequenceService(db, source="SCRIPT")
        results = await service.verify_all_sequences(reference)

    print(f"{'TYPE':<18} {'PERIOD':<8} {'COUNTER':>8} {'MAX DOC':>8}  STATUS")
    for r in results:
        status = f"{r['status']} (repaired)" if r["repaired"] else r["status"]
        print(
            f"{r['document_type']:<18} {r['period']:<8} "
            f"{r['sequence_counter']:>8} {r['max_in_documents']:>8}  {status}"
        )


if __name__ == "__main__":
    ref = date.fromisoformat(sys.argv[1]) if len(sys.argv) > 1 else None
    asyncio.run(main(ref))
