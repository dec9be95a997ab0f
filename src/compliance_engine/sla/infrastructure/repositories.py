"""
SLA Infrastructure Repositories
=================================

Concrete implementation of the work item repository using SQLAlchemy.

Every call opens its own session so that each item's status write is an
independent unit of work; no transaction spans a whole sweep.
"""

from datetime import datetime, timezone
from typing import AsyncContextManager, Callable, List, Optional
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.config import SlaStatus, WorkItemStatus
from compliance_engine.core import RepositoryException, ResourceNotFoundException
from compliance_engine.infrastructure.database import get_session_context
from compliance_engine.sla.application import IWorkItemRepository
from compliance_engine.sla.domain import TimedWorkItem
from compliance_engine.sla.infrastructure.models import WorkflowInstanceModel

SessionContext = Callable[[], AsyncContextManager[AsyncSession]]


def _parse_id(item_id: str) -> Optional[UUID]:
    try:
        return UUID(str(item_id))
    except ValueError:
        return None


class SQLAlchemyWorkItemRepository(IWorkItemRepository):
    """
    SQLAlchemy implementation of the work item repository.

    Maps ``workflow_instances`` rows onto TimedWorkItem entities.
    """

    def __init__(self, session_context: SessionContext = get_session_context):
        self._session_context = session_context

    async def list_active_timed_items(self) -> List[TimedWorkItem]:
        """ACTIVE instances with a due date."""
        stmt = select(WorkflowInstanceModel).where(
            and_(
                WorkflowInstanceModel.status == WorkItemStatus.ACTIVE.value,
                WorkflowInstanceModel.due_date.is_not(None),
            )
        )

        try:
            async with self._session_context() as session:
                result = await session.execute(stmt)
                return [self._to_entity(model) for model in result.scalars().all()]
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to list active work items: {e}")

    async def get_by_id(self, item_id: str) -> Optional[TimedWorkItem]:
        """Get item by ID."""
        item_uuid = _parse_id(item_id)
        if item_uuid is None:
            return None

        stmt = select(WorkflowInstanceModel).where(WorkflowInstanceModel.id == item_uuid)
        try:
            async with self._session_context() as session:
                result = await session.execute(stmt)
                model = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to load work item {item_id}: {e}")

        return self._to_entity(model) if model else None

    async def update_item_sla_status(
        self,
        item_id: str,
        status: SlaStatus,
        breached_at: Optional[datetime] = None
    ) -> None:
        """Persist a status transition."""
        item_uuid = _parse_id(item_id)
        if item_uuid is None:
            raise RepositoryException(f"Invalid work item ID: {item_id}")

        values = {
            "sla_status": status.value,
            "updated_at": datetime.now(timezone.utc),
        }
        if breached_at is not None:
            values["sla_breached_at"] = breached_at

        stmt = (
            update(WorkflowInstanceModel)
            .where(WorkflowInstanceModel.id == item_uuid)
            .values(**values)
        )

        try:
            async with self._session_context() as session:
                result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to update SLA status of {item_id}: {e}")

        if result.rowcount == 0:
            raise ResourceNotFoundException("Work item", item_id)

    @staticmethod
    def _to_entity(model: WorkflowInstanceModel) -> TimedWorkItem:
        return TimedWorkItem(
            id=str(model.id),
            tenant_id=model.tenant_id,
            entity_type=model.entity_type,
            entity_id=model.entity_id,
            work_type=model.work_type,
            current_stage=model.current_stage,
            status=WorkItemStatus(model.status),
            due_date=model.due_date,
            sla_status=SlaStatus(model.sla_status),
            sla_breached_at=model.sla_breached_at,
            created_at=model.created_at,
        )
