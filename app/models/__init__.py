# Models module - importing registers every table on Base.metadata
from app.models.document_sequence import DocumentSequence, DocumentSequenceAudit
from app.models.documents import (
    DocumentStatus,
    PurchaseOrder,
    Bill,
    Expense,
    CreditNote,
    DeliveryChallan,
    Invoice,
    Quotation,
    Project,
    ProjectTask,
    NUMBERED_DOCUMENTS,
)

__all__ = [
    "DocumentSequence",
    "DocumentSequenceAudit",
    "DocumentStatus",
    "PurchaseOrder",
    "Bill",
    "Expense",
    "CreditNote",
    "DeliveryChallan",
    "Invoice",
    "Quotation",
    "Project",
    "ProjectTask",
    "NUMBERED_DOCUMENTS",
]
