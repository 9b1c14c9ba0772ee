"""
Document numbering errors.

Every failure aborts the document-creation operation: no document is
persisted without a reserved number, and no number is reserved without
its document (the caller's session is rolled back).
"""

from typing import Optional


class DocumentNumberingError(Exception):
    """Base exception for document number generation."""
    pass


class UnknownEntityType(DocumentNumberingError):
    """Entity type has no configured numbering format. Programming error."""

    def __init__(self, entity_type: object):
        self.entity_type = entity_type
        super().__init__(f"No document number format configured for entity type '{entity_type}'")


class MissingSequenceScope(DocumentNumberingError):
    """Entity type is numbered within a parent record, but no parent was given."""

    def __init__(self, entity_type: object):
        self.entity_type = entity_type
        super().__init__(f"Entity type '{entity_type}' requires a parent scope for numbering")


class PersistenceUnavailable(DocumentNumberingError):
    """The sequence lookup or increment could not reach the database."""
    pass


class CorruptSequenceState(DocumentNumberingError):
    """An existing identifier has a numeric segment that cannot be parsed."""

    def __init__(self, identifier: str, prefix: str, suffix: Optional[str] = None):
        self.identifier = identifier
        self.prefix = prefix
        self.suffix = suffix
        super().__init__(
            f"Cannot parse sequence from existing identifier '{identifier}' "
            f"(prefix '{prefix}', suffix '{suffix or ''}')"
        )


class SequenceContention(DocumentNumberingError):
    """Number reservation kept conflicting with concurrent writers."""

    def __init__(self, entity_type: object, attempts: int):
        self.entity_type = entity_type
        self.attempts = attempts
        super().__init__(
            f"Could not reserve a unique number for '{entity_type}' after {attempts} attempts, please retry"
        )


class InvalidSequencePeriod(DocumentNumberingError):
    """An explicit period label does not fit the entity type's period rule."""

    def __init__(self, entity_type: object, period: object, expected: str):
        self.entity_type = entity_type
        self.period = period
        super().__init__(
            f"Period '{period}' is not valid for entity type '{entity_type}' (expected {expected})"
        )
