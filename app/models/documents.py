"""
Numbered business documents.

Only the columns numbering depends on are modelled: the unique document
number, a short description, an amount and a status. The unique
constraint on each number column is the last line of defence against
duplicate numbers; DocumentSequenceService retries on it.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.document_formats import EntityType
from app.core.enum_utils import enum_comment
from app.database import Base
from app.db_types import UUIDType, MoneyType


class DocumentStatus(str, Enum):
    """Lifecycle status shared by numbered documents."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class NumberedDocumentMixin:
    """Columns shared by every numbered document."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    amount: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=DocumentStatus.DRAFT.value,
        nullable=False,
        comment=enum_comment(DocumentStatus)
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )


class PurchaseOrder(NumberedDocumentMixin, Base):
    """Purchase order placed with a vendor."""
    __tablename__ = "purchase_orders"

    po_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="PO-YYYY-XXXX"
    )


class Bill(NumberedDocumentMixin, Base):
    """Vendor bill."""
    __tablename__ = "bills"

    bill_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="BILL-YYYY-XXXX"
    )


class Expense(NumberedDocumentMixin, Base):
    __tablename__ = "expenses"

    reference: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="EXP-YYYY-XXXX"
    )


class CreditNote(NumberedDocumentMixin, Base):
    """Credit note issued to a customer."""
    __tablename__ = "credit_notes"

    credit_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="CNYYYYXXXX"
    )


class DeliveryChallan(NumberedDocumentMixin, Base):
    __tablename__ = "delivery_challans"

    challan_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="DCYYYYXXXX"
    )


class Invoice(NumberedDocumentMixin, Base):
    """Tax invoice, numbered per Indian financial year."""
    __tablename__ = "invoices"

    invoice_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="GCS29/XXX/YY-YY"
    )


class Quotation(NumberedDocumentMixin, Base):
    __tablename__ = "quotations"

    quotation_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="QTN-XXXX"
    )


class Project(NumberedDocumentMixin, Base):
    """Vessel/engineering project."""
    __tablename__ = "projects"

    project_code: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="PRJ-YYYY-XXXX"
    )

    tasks: Mapped[list["ProjectTask"]] = relationship(
        "ProjectTask",
        back_populates="project",
    )


class ProjectTask(NumberedDocumentMixin, Base):
    """Task within a project, numbered per project."""
    __tablename__ = "project_tasks"

    task_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        comment="PRJ-YYYY-XXXX-TXXX"
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="tasks",
    )


# Entity type → (model, number column name)
NUMBERED_DOCUMENTS = {
    EntityType.PURCHASE_ORDER: (PurchaseOrder, "po_number"),
    EntityType.BILL: (Bill, "bill_number"),
    EntityType.EXPENSE: (Expense, "reference"),
    EntityType.CREDIT_NOTE: (CreditNote, "credit_number"),
    EntityType.DELIVERY_CHALLAN: (DeliveryChallan, "challan_number"),
    EntityType.INVOICE: (Invoice, "invoice_number"),
    EntityType.QUOTATION: (Quotation, "quotation_number"),
    EntityType.PROJECT: (Project, "project_code"),
    EntityType.TASK: (ProjectTask, "task_number"),
}
