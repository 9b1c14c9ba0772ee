"""
Pure helpers for document numbering.

No database access here: the period label, prefix and rendering of a
document number are functions of (entity type, reference date, scope).

    period = get_period_label(EntityType.INVOICE, date(2025, 7, 10))   # "25-26"
    prefix, suffix, padding = build_prefix(EntityType.INVOICE, period)  # "GCS29/", "/25-26", 3
    format_identifier(prefix, 1, padding, suffix)                        # "GCS29/001/25-26"
"""

import re
from datetime import date
from typing import Optional, Tuple, Union

from app.config import settings
from app.core.document_formats import (
    EntityType, PeriodRule, NO_PERIOD, get_document_format,
)
from app.core.exceptions import (
    CorruptSequenceState, InvalidSequencePeriod, MissingSequenceScope,
)


_DIGITS = re.compile(r"[0-9]+")
_CALENDAR_YEAR = re.compile(r"[0-9]{4}")
_FINANCIAL_YEAR = re.compile(r"([0-9]{2})-([0-9]{2})")


def calendar_year_label(reference: date) -> str:
    """Calendar year label, e.g. "2025"."""
    return f"{reference.year:04d}"


def financial_year_label(reference: date) -> str:
    """
    Indian financial year label: April to March.

    - Mar 31 2026 → FY 25-26
    - Apr 1 2026  → FY 26-27
    """
    year = reference.year

    if reference.month >= 4:  # April onwards
        fy_start = year
        fy_end = year + 1
    else:  # Jan-Mar
        fy_start = year - 1
        fy_end = year

    return f"{fy_start % 100:02d}-{fy_end % 100:02d}"


def get_period_label(
    entity_type: Union[EntityType, str],
    reference: date,
    scope: Optional[str] = None,
) -> str:
    """
    Period label of the sequence a new document falls into.

    The reference date is used as given; no timezone conversion happens
    here.

    Raises:
        UnknownEntityType: If entity_type has no format
        MissingSequenceScope: If the type is numbered per parent and no scope is given
    """
    fmt = get_document_format(entity_type)

    if fmt.period_rule == PeriodRule.CALENDAR_YEAR:
        return calendar_year_label(reference)
    if fmt.period_rule == PeriodRule.FINANCIAL_YEAR:
        return financial_year_label(reference)
    if fmt.period_rule == PeriodRule.PARENT:
        if not scope or not scope.strip():
            raise MissingSequenceScope(fmt.entity_type.value)
        return scope.strip()
    return NO_PERIOD


def validate_period_label(entity_type: Union[EntityType, str], period: str) -> str:
    """
    Check an explicitly supplied period label against the type's period rule.

    - CALENDAR_YEAR: four digits, e.g. "2025"
    - FINANCIAL_YEAR: consecutive two-digit years, e.g. "25-26", "99-00"
    - NONE: only "ALL"
    - PARENT: any non-blank parent code

    Returns:
        The label (stripped for parent codes)

    Raises:
        InvalidSequencePeriod: If the label cannot address a sequence of this type
    """
    fmt = get_document_format(entity_type)
    value = period if isinstance(period, str) else ""

    if fmt.period_rule == PeriodRule.CALENDAR_YEAR:
        if _CALENDAR_YEAR.fullmatch(value):
            return value
        expected = "a four-digit year such as 2025"
    elif fmt.period_rule == PeriodRule.FINANCIAL_YEAR:
        match = _FINANCIAL_YEAR.fullmatch(value)
        if match and (int(match.group(1)) + 1) % 100 == int(match.group(2)):
            return value
        expected = "a financial year such as 25-26"
    elif fmt.period_rule == PeriodRule.PARENT:
        if value.strip():
            return value.strip()
        expected = "a non-blank parent code"
    else:
        if value == NO_PERIOD:
            return value
        expected = f"'{NO_PERIOD}'"

    raise InvalidSequencePeriod(fmt.entity_type.value, period, expected)


def build_prefix(
    entity_type: Union[EntityType, str],
    period: str,
    series: Optional[str] = None,
) -> Tuple[str, Optional[str], int]:
    """
    Build the fixed parts of a document number.

    Returns:
        (prefix, suffix or None, padding)
    """
    fmt = get_document_format(entity_type)
    series = series or settings.INVOICE_SERIES_CODE

    prefix = fmt.prefix_template.format(period=period, series=series)
    suffix = None
    if fmt.suffix_template:
        suffix = fmt.suffix_template.format(period=period, series=series)

    return prefix, suffix, fmt.padding


def format_identifier(
    prefix: str,
    sequence: int,
    padding: int,
    suffix: Optional[str] = None,
) -> str:
    """Render prefix + zero-padded sequence + suffix."""
    if sequence < 1:
        raise ValueError(f"Sequence must be positive, got {sequence}")
    return f"{prefix}{str(sequence).zfill(padding)}{suffix or ''}"


def parse_sequence(identifier: str, prefix: str, suffix: Optional[str] = None) -> int:
    """
    Extract the numeric segment between prefix and suffix.

    GCS29/007/25-26 with prefix "GCS29/" and suffix "/25-26" → 7

    Raises:
        CorruptSequenceState: If the identifier does not have the expected
            shape or its numeric segment is not a number
    """
    if not identifier.startswith(prefix):
        raise CorruptSequenceState(identifier, prefix, suffix)

    end = len(identifier)
    if suffix:
        if not identifier.endswith(suffix) or len(identifier) < len(prefix) + len(suffix):
            raise CorruptSequenceState(identifier, prefix, suffix)
        end -= len(suffix)

    segment = identifier[len(prefix):end]
    if not _DIGITS.fullmatch(segment):
        raise CorruptSequenceState(identifier, prefix, suffix)

    return int(segment)
