"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for the SLA module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from compliance_engine.config import SlaStatus, WorkItemStatus
from compliance_engine.infrastructure.database import Base


class WorkflowInstanceModel(Base):
    """
    Database model for a timed workflow instance.

    Maps to the 'workflow_instances' table.
    """
    __tablename__ = "workflow_instances"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Wrapped entity (case, investigation, ...)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # SLA policy key, normally the workflow template name
    work_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    current_stage: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=WorkItemStatus.ACTIVE.value)

    # Current owner, used for load counts
    assignee_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    # SLA tracking
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sla_status: Mapped[str] = mapped_column(String(20), nullable=False, default=SlaStatus.ON_TRACK.value)
    sla_breached_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_workflow_instances_status_due_date", "status", "due_date"),
    )
