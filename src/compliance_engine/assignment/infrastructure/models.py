"""
Assignment Infrastructure Models
=================================

SQLAlchemy ORM models for the tables the assignment strategies read.
The tables are owned by the user, audit and category modules; this engine
never writes them.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from compliance_engine.infrastructure.database import Base


class UserModel(Base):
    """
    Database model for a platform user.

    Maps to the 'users' table.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    team_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


class AssignmentAuditModel(Base):
    """
    Assignment entries of the audit trail.

    Maps to the 'assignment_audit_log' table.
    """
    __tablename__ = "assignment_audit_log"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    assignee_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_assignment_audit_tenant_entity_created", "tenant_id", "entity_type", "created_at"),
    )


class CategoryModel(Base):
    """
    Routing columns of a case category.

    Maps to the 'categories' table. ``routing_rule`` holds the
    ``{"type": ..., "config": {...}}`` blob.
    """
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_assignee_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    routing_rule: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
