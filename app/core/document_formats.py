"""
Document Number Formats

FORMATS:
━━━━━━━━
• PO:   PO-2025-0001           (Purchase Order, calendar year)
• BILL: BILL-2025-0001         (Vendor Bill, calendar year)
• EXP:  EXP-2025-0001          (Expense, calendar year)
• CN:   CN20250001             (Credit Note, calendar year)
• DC:   DC20250001             (Delivery Challan, calendar year)
• PRJ:  PRJ-2025-0001          (Project, calendar year)
• QTN:  QTN-0001               (Quotation, never resets)
• INV:  GCS29/001/25-26        (Tax Invoice, Indian financial year)
• TSK:  PRJ-2025-0001-T001     (Project Task, per project)

Each entity type maps to exactly one DocumentFormat; callers never
branch on entity type strings themselves.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from app.core.exceptions import UnknownEntityType


class PeriodRule(str, Enum):
    """How the period label of a sequence is derived."""
    CALENDAR_YEAR = "CALENDAR_YEAR"  # 2025
    FINANCIAL_YEAR = "FINANCIAL_YEAR"  # 25-26 (April-March)
    NONE = "NONE"  # Single sequence forever
    PARENT = "PARENT"  # Numbered within a parent record (caller supplies scope)


class EntityType(str, Enum):
    """Business documents that carry a sequential number."""
    PURCHASE_ORDER = "PURCHASE_ORDER"
    BILL = "BILL"
    EXPENSE = "EXPENSE"
    CREDIT_NOTE = "CREDIT_NOTE"
    DELIVERY_CHALLAN = "DELIVERY_CHALLAN"
    INVOICE = "INVOICE"
    QUOTATION = "QUOTATION"
    PROJECT = "PROJECT"
    TASK = "TASK"


# Counter key for sequences that never reset
NO_PERIOD = "ALL"


@dataclass(frozen=True)
class DocumentFormat:
    """Numbering configuration for one entity type."""
    entity_type: EntityType
    code: str
    name: str
    prefix_template: str
    padding: int
    period_rule: PeriodRule
    suffix_template: Optional[str] = None

    @property
    def has_period(self) -> bool:
        return self.period_rule != PeriodRule.NONE


DOCUMENT_FORMATS = {
    EntityType.PURCHASE_ORDER: DocumentFormat(
        EntityType.PURCHASE_ORDER, "PO", "Purchase Order",
        "PO-{period}-", 4, PeriodRule.CALENDAR_YEAR,
    ),
    EntityType.BILL: DocumentFormat(
        EntityType.BILL, "BILL", "Bill",
        "BILL-{period}-", 4, PeriodRule.CALENDAR_YEAR,
    ),
    EntityType.EXPENSE: DocumentFormat(
        EntityType.EXPENSE, "EXP", "Expense",
        "EXP-{period}-", 4, PeriodRule.CALENDAR_YEAR,
    ),
    EntityType.CREDIT_NOTE: DocumentFormat(
        EntityType.CREDIT_NOTE, "CN", "Credit Note",
        "CN{period}", 4, PeriodRule.CALENDAR_YEAR,
    ),
    EntityType.DELIVERY_CHALLAN: DocumentFormat(
        EntityType.DELIVERY_CHALLAN, "DC", "Delivery Challan",
        "DC{period}", 4, PeriodRule.CALENDAR_YEAR,
    ),
    EntityType.PROJECT: DocumentFormat(
        EntityType.PROJECT, "PRJ", "Project",
        "PRJ-{period}-", 4, PeriodRule.CALENDAR_YEAR,
    ),
    EntityType.QUOTATION: DocumentFormat(
        EntityType.QUOTATION, "QTN", "Quotation",
        "QTN-", 4, PeriodRule.NONE,
    ),
    EntityType.INVOICE: DocumentFormat(
        EntityType.INVOICE, "INV", "Tax Invoice",
        "{series}/", 3, PeriodRule.FINANCIAL_YEAR,
        suffix_template="/{period}",
    ),
    EntityType.TASK: DocumentFormat(
        EntityType.TASK, "TSK", "Project Task",
        "{period}-T", 3, PeriodRule.PARENT,
    ),
}

# Short names used by the web client ("po", "bill", "expense", ...)
ENTITY_TYPE_ALIASES = {
    **{fmt.code: entity_type for entity_type, fmt in DOCUMENT_FORMATS.items()},
    "CREDITNOTE": EntityType.CREDIT_NOTE,
    "DELIVERYCHALLAN": EntityType.DELIVERY_CHALLAN,
}


def resolve_entity_type(value: Union[EntityType, str]) -> EntityType:
    """
    Resolve an entity type from an enum, enum value or short code.

    Accepts "PURCHASE_ORDER", "purchase_order", "po", "creditnote", ...

    Raises:
        UnknownEntityType: If nothing matches
    """
    if isinstance(value, EntityType):
        return value
    if isinstance(value, str):
        key = value.strip().upper().replace("-", "_")
        if key in EntityType.__members__:
            return EntityType[key]
        if key in ENTITY_TYPE_ALIASES:
            return ENTITY_TYPE_ALIASES[key]
    raise UnknownEntityType(value)


def get_document_format(entity_type: Union[EntityType, str]) -> DocumentFormat:
    """
    Get the numbering format for an entity type.

    Raises:
        UnknownEntityType: If the entity type has no configured format
    """
    resolved = resolve_entity_type(entity_type)
    fmt = DOCUMENT_FORMATS.get(resolved)
    if fmt is None:
        raise UnknownEntityType(entity_type)
    return fmt
