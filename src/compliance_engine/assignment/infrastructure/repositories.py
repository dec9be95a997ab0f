"""
Assignment Infrastructure Repositories
=======================================

Read-only SQLAlchemy implementations of the assignment interfaces.
"""

from typing import AsyncContextManager, Callable, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.assignment.application import (
    IAssignmentHistory,
    ICategoryRoutingProvider,
    IUserDirectory,
)
from compliance_engine.assignment.domain import (
    CategoryRoutingConfig,
    EligibleUser,
    LastAssignmentRecord,
)
from compliance_engine.assignment.infrastructure.models import (
    AssignmentAuditModel,
    CategoryModel,
    UserModel,
)
from compliance_engine.config import OPEN_WORK_ITEM_STATUSES
from compliance_engine.core import RepositoryException
from compliance_engine.infrastructure.database import get_session_context
from compliance_engine.shared.infrastructure.logging import get_logger
from compliance_engine.sla.infrastructure.models import WorkflowInstanceModel

logger = get_logger(__name__)

SessionContext = Callable[[], AsyncContextManager[AsyncSession]]


class SQLAlchemyUserDirectory(IUserDirectory):
    """User lookups against the 'users' table."""

    def __init__(self, session_context: SessionContext = get_session_context):
        self._session_context = session_context

    async def list_eligible_users(
        self,
        tenant_id: str,
        roles: Optional[Sequence[str]] = None
    ) -> List[EligibleUser]:
        stmt = select(UserModel).where(
            and_(UserModel.tenant_id == tenant_id, UserModel.is_active.is_(True))
        )
        if roles:
            stmt = stmt.where(UserModel.role.in_(list(roles)))
        # Stable creation order; id breaks ties between equal timestamps
        stmt = stmt.order_by(UserModel.created_at.asc(), UserModel.id.asc())

        try:
            async with self._session_context() as session:
                result = await session.execute(stmt)
                return [self._to_entity(model) for model in result.scalars().all()]
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to list eligible users: {e}")

    async def get_active_user(self, tenant_id: str, user_id: str) -> Optional[EligibleUser]:
        stmt = select(UserModel).where(
            and_(
                UserModel.id == user_id,
                UserModel.tenant_id == tenant_id,
                UserModel.is_active.is_(True),
            )
        )
        try:
            async with self._session_context() as session:
                result = await session.execute(stmt)
                model = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to load user {user_id}: {e}")

        return self._to_entity(model) if model else None

    async def count_open_items_for_user(self, user_id: str) -> int:
        stmt = select(func.count(WorkflowInstanceModel.id)).where(
            and_(
                WorkflowInstanceModel.assignee_user_id == user_id,
                WorkflowInstanceModel.status.in_([s.value for s in OPEN_WORK_ITEM_STATUSES]),
            )
        )
        try:
            async with self._session_context() as session:
                result = await session.execute(stmt)
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to count open items for {user_id}: {e}")

    @staticmethod
    def _to_entity(model: UserModel) -> EligibleUser:
        return EligibleUser(
            id=model.id,
            tenant_id=model.tenant_id,
            role=model.role,
            team_id=model.team_id,
            is_active=model.is_active,
            created_at=model.created_at,
            display_name=model.display_name,
        )


class SQLAlchemyAssignmentHistory(IAssignmentHistory):
    """Latest-assignment lookups against the assignment audit log."""

    def __init__(self, session_context: SessionContext = get_session_context):
        self._session_context = session_context

    async def find_last_assignment_record(
        self,
        tenant_id: str,
        entity_type: str
    ) -> Optional[LastAssignmentRecord]:
        stmt = (
            select(AssignmentAuditModel)
            .where(
                and_(
                    AssignmentAuditModel.tenant_id == tenant_id,
                    AssignmentAuditModel.entity_type == entity_type,
                )
            )
            .order_by(AssignmentAuditModel.created_at.desc())
            .limit(1)
        )
        try:
            async with self._session_context() as session:
                result = await session.execute(stmt)
                model = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to read assignment history: {e}")

        if model is None:
            return None
        return LastAssignmentRecord(
            user_id=model.assignee_user_id,
            entity_id=model.entity_id,
            assigned_at=model.created_at,
        )


class SQLAlchemyCategoryRoutingProvider(ICategoryRoutingProvider):
    """
    Category routing lookups.

    The stored rule blob is decoded here; a malformed blob is logged and
    the category is treated as having no rule.
    """

    def __init__(self, session_context: SessionContext = get_session_context):
        self._session_context = session_context

    async def get_category_routing_config(self, category_id: str) -> Optional[CategoryRoutingConfig]:
        stmt = select(CategoryModel).where(CategoryModel.id == category_id)
        try:
            async with self._session_context() as session:
                result = await session.execute(stmt)
                model = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to load category {category_id}: {e}")

        if model is None:
            return None

        try:
            return CategoryRoutingConfig(
                category_id=model.id,
                default_assignee_id=model.default_assignee_id,
                rule=model.routing_rule,
            )
        except (ValidationError, ValueError) as e:
            logger.warning(
                f"Ignoring malformed routing rule on category {category_id}: {e}",
                extra={"category_id": category_id}
            )
            return CategoryRoutingConfig(
                category_id=model.id,
                default_assignee_id=model.default_assignee_id,
            )
