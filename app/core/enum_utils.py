"""
Enum Utilities for VARCHAR-based Type and Status Fields

ARCHITECTURE STANDARD:
━━━━━━━━━━━━━━━━━━━━━━
• Database: VARCHAR - NOT PostgreSQL ENUM
• SQLAlchemy: String(n) with Mapped[str]
• Pydantic: Python Enum for API validation
• Case: All enum values stored in UPPERCASE

USAGE PATTERNS:
━━━━━━━━━━━━━━━
1. In SQLAlchemy Models:
   document_type: Mapped[str] = mapped_column(String(30), comment=enum_comment(EntityType))

2. In Pydantic Schemas (with case normalization):
   _normalize_status = create_uppercase_validator('status', VALID_DOCUMENT_STATUSES)

3. Anywhere an enum or its stored string may arrive:
   get_enum_value(entity_type)  # Safe for both
"""

from enum import Enum
from typing import Any, Optional, Type, Set


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(EntityType.INVOICE)
        'INVOICE'
        >>> get_enum_value("INVOICE")
        'INVOICE'
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def enum_comment(enum_class: Type[Enum]) -> str:
    """Column comment listing the allowed values, e.g. 'DRAFT, SENT, PAID, CANCELLED'."""
    return ", ".join(e.value for e in enum_class)


# =============================================================================
# CASE NORMALIZATION FOR PYDANTIC SCHEMAS
# =============================================================================

def normalize_to_uppercase(value: Any, valid_values: Set[str]) -> Any:
    """
    Upper-case a known value; anything else is left for Pydantic to reject.

    Examples:
        >>> normalize_to_uppercase(' paid', VALID_DOCUMENT_STATUSES)
        'PAID'
        >>> normalize_to_uppercase('void', VALID_DOCUMENT_STATUSES)
        'void'
    """
    if isinstance(value, str):
        upper_v = value.strip().upper()
        if upper_v in valid_values:
            return upper_v
    return value


def create_uppercase_validator(field_name: str, valid_values: Set[str]) -> classmethod:
    """
    Create a Pydantic field_validator that normalizes values to UPPERCASE.

    Usage:
        class DocumentCreate(BaseCreateSchema):
            status: DocumentStatus

            _normalize_status = create_uppercase_validator('status', VALID_DOCUMENT_STATUSES)
    """
    from pydantic import field_validator

    @field_validator(field_name, mode='before')
    @classmethod
    def validate(cls, v):
        return normalize_to_uppercase(v, valid_values)

    return validate


VALID_DOCUMENT_STATUSES = {"DRAFT", "SENT", "PAID", "CANCELLED"}
