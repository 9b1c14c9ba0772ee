"""
Last-number lookup over the stored documents.

Finds the highest identifier already issued for a prefix. Used to seed a
fresh counter from existing documents and to verify counters against
the data they describe.
"""

import logging
from contextlib import contextmanager
from typing import Optional, Union

from sqlalchemy import select, func, and_
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.document_formats import EntityType, resolve_entity_type
from app.core.enum_utils import get_enum_value
from app.core.exceptions import CorruptSequenceState, PersistenceUnavailable, UnknownEntityType
from app.models.documents import NUMBERED_DOCUMENTS
from app.services.document_numbering import parse_sequence


logger = logging.getLogger(__name__)


@contextmanager
def database_errors_as_unavailable(operation: str):
    """
    Re-raise driver/connection failures as PersistenceUnavailable.

    Integrity errors pass through unchanged; callers retry on those.
    """
    try:
        yield
    except IntegrityError:
        raise
    except (OperationalError, DBAPIError) as e:
        logger.error(f"Database unavailable during {operation}: {e}")
        raise PersistenceUnavailable(f"Database unavailable during {operation}") from e


class LastNumberLookup:
    """Query the document tables for the last issued number of a prefix."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _number_column(entity_type: EntityType):
        if entity_type not in NUMBERED_DOCUMENTS:
            raise UnknownEntityType(entity_type)
        model, column_name = NUMBERED_DOCUMENTS[entity_type]
        return model, getattr(model, column_name)

    async def find_last_identifier(
        self,
        entity_type: Union[EntityType, str],
        prefix: str,
        suffix: Optional[str] = None,
    ) -> Optional[str]:
        """
        Get the greatest identifier starting with prefix (and ending with suffix).

        Ordered by length first so that 10000 ranks above 9999 once a
        sequence outgrows its padding; ties go to the latest created.

        Returns:
            The identifier, or None if no document uses this prefix yet

        Raises:
            PersistenceUnavailable: If the query fails
        """
        entity_type = resolve_entity_type(entity_type)
        model, column = self._number_column(entity_type)

        conditions = [column.startswith(prefix, autoescape=True)]
        if suffix:
            conditions.append(column.endswith(suffix, autoescape=True))

        stmt = (
            select(column)
            .where(and_(*conditions))
            .order_by(
                func.length(column).desc(),
                column.desc(),
                model.created_at.desc(),
            )
            .limit(1)
        )

        with database_errors_as_unavailable(f"{entity_type.value} number lookup"):
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()

    async def find_max_sequence(
        self,
        entity_type: Union[EntityType, str],
        prefix: str,
        suffix: Optional[str] = None,
    ) -> int:
        """
        Highest sequence number stored for the prefix (0 if none).

        Raises:
            CorruptSequenceState: If the last identifier cannot be parsed
            PersistenceUnavailable: If the query fails
        """
        identifier = await self.find_last_identifier(entity_type, prefix, suffix)
        if identifier is None:
            return 0
        try:
            return parse_sequence(identifier, prefix, suffix)
        except CorruptSequenceState:
            logger.error(
                f"Corrupt sequence state for {get_enum_value(entity_type)}: "
                f"cannot parse number from '{identifier}' (prefix '{prefix}')"
            )
            raise
