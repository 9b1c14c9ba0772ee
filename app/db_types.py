"""Column types shared by the numbering models.

Kept backend neutral so the same models run on SQLite (tests, local) and
PostgreSQL (production).
"""
from sqlalchemy import Numeric, Uuid

# Native UUID on PostgreSQL, CHAR(32) on SQLite
UUIDType = Uuid

# Document amounts, two decimal places
MoneyType = Numeric(14, 2)
