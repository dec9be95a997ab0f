"""
Assignment Repository Interfaces
=================================

Read-only views of data owned by other modules (users, audit trail,
category administration).
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from compliance_engine.assignment.domain import (
    CategoryRoutingConfig,
    EligibleUser,
    LastAssignmentRecord,
)


class IUserDirectory(ABC):
    """Interface for user lookups."""

    @abstractmethod
    async def list_eligible_users(
        self,
        tenant_id: str,
        roles: Optional[Sequence[str]] = None
    ) -> List[EligibleUser]:
        """Active users, optionally role-filtered, in stable creation order."""

    @abstractmethod
    async def get_active_user(self, tenant_id: str, user_id: str) -> Optional[EligibleUser]:
        """The user if it exists and is active in the tenant."""

    @abstractmethod
    async def count_open_items_for_user(self, user_id: str) -> int:
        """Number of open work items currently assigned to the user."""


class IAssignmentHistory(ABC):
    """Interface for the assignment audit trail."""

    @abstractmethod
    async def find_last_assignment_record(
        self,
        tenant_id: str,
        entity_type: str
    ) -> Optional[LastAssignmentRecord]:
        """Most recent assignment recorded for the entity type."""


class ICategoryRoutingProvider(ABC):
    """Interface for category routing configuration."""

    @abstractmethod
    async def get_category_routing_config(self, category_id: str) -> Optional[CategoryRoutingConfig]:
        """Routing config of the category, None if the category is unknown."""
