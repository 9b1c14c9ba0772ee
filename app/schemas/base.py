"""
Base Schema Classes for Pydantic Models

Response schemas read straight from ORM rows (from_attributes) and emit
money as strings so amounts survive JSON without float rounding.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer


# Numeric(14, 2) column rendered as "1250.50" in JSON
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: f"{v:.2f}", return_type=str, when_used="json-unless-none"),
]


class BaseResponseSchema(BaseModel):
    """
    Base class for schemas built from ORM models or service results.

    Usage:
        class SequenceResponse(BaseResponseSchema):
            id: UUID
            document_type: str
    """
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    Unknown fields are ignored; in particular a client-supplied document
    number never reaches the service.
    """
    model_config = ConfigDict(
        extra='ignore',
        str_strip_whitespace=True,
    )
