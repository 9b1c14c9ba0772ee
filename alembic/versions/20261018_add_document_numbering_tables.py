"""Add document numbering tables.

Revision ID: add_document_numbering
Revises:
Create Date: 2026-10-18

- document_sequences: one counter per (document type, period)
- document_sequence_audit: trail of every counter operation
- numbered document tables with a unique number column each
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'add_document_numbering'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# table name → number column
NUMBERED_TABLES = [
    ('purchase_orders', 'po_number', 30, 'PO-YYYY-XXXX'),
    ('bills', 'bill_number', 30, 'BILL-YYYY-XXXX'),
    ('expenses', 'reference', 30, 'EXP-YYYY-XXXX'),
    ('credit_notes', 'credit_number', 30, 'CNYYYYXXXX'),
    ('delivery_challans', 'challan_number', 30, 'DCYYYYXXXX'),
    ('invoices', 'invoice_number', 30, 'GCS29/XXX/YY-YY'),
    ('quotations', 'quotation_number', 30, 'QTN-XXXX'),
    ('projects', 'project_code', 30, 'PRJ-YYYY-XXXX'),
]


def _document_columns():
    return [
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT',
                  comment='DRAFT, SENT, PAID, CANCELLED'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create document numbering tables."""

    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing = set(inspector.get_table_names())

    if 'document_sequences' not in existing:
        op.create_table(
            'document_sequences',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('document_type', sa.String(30), nullable=False),
            sa.Column('document_name', sa.String(100), nullable=False),
            sa.Column('period', sa.String(50), nullable=False),
            sa.Column('current_number', sa.Integer, nullable=False, server_default='0'),
            sa.Column('prefix', sa.String(60), nullable=False),
            sa.Column('suffix', sa.String(20), nullable=True),
            sa.Column('padding_length', sa.Integer, nullable=False, server_default='4'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.UniqueConstraint('document_type', 'period', name='uq_document_type_period'),
        )
        op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])
        print("Created document_sequences table")
    else:
        print("document_sequences table already exists, skipping...")

    if 'document_sequence_audit' not in existing:
        op.create_table(
            'document_sequence_audit',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('document_type', sa.String(30), nullable=False),
            sa.Column('period', sa.String(50), nullable=False),
            sa.Column('operation', sa.String(20), nullable=False),
            sa.Column('old_number', sa.Integer, nullable=True),
            sa.Column('new_number', sa.Integer, nullable=True),
            sa.Column('document_number', sa.String(80), nullable=True),
            sa.Column('source', sa.String(50), nullable=True),
            sa.Column('user_id', sa.Uuid(), nullable=True),
            sa.Column('ip_address', sa.String(50), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        )
        op.create_index('ix_document_sequence_audit_document_type', 'document_sequence_audit', ['document_type'])

    for table_name, number_column, length, comment in NUMBERED_TABLES:
        if table_name in existing:
            print(f"  {table_name} already exists, skipping...")
            continue
        op.create_table(
            table_name,
            *_document_columns(),
            sa.Column(number_column, sa.String(length), nullable=False, comment=comment),
        )
        op.create_index(f'ix_{table_name}_{number_column}', table_name, [number_column], unique=True)
        op.create_index(f'ix_{table_name}_created_at', table_name, ['created_at'])

    if 'project_tasks' not in existing:
        op.create_table(
            'project_tasks',
            *_document_columns(),
            sa.Column('task_number', sa.String(50), nullable=False, comment='PRJ-YYYY-XXXX-TXXX'),
            sa.Column('project_id', sa.Uuid(),
                      sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        )
        op.create_index('ix_project_tasks_task_number', 'project_tasks', ['task_number'], unique=True)
        op.create_index('ix_project_tasks_project_id', 'project_tasks', ['project_id'])
        op.create_index('ix_project_tasks_created_at', 'project_tasks', ['created_at'])


def downgrade() -> None:
    """Drop document numbering tables."""
    op.drop_table('project_tasks')
    for table_name, _, _, _ in reversed(NUMBERED_TABLES):
        op.drop_table(table_name)
    op.drop_table('document_sequence_audit')
    op.drop_table('document_sequences')
