"""
Assignment Infrastructure Layer
================================

- Models: SQLAlchemy ORM models for users, audit log and categories
- Repositories: read-only implementations of the assignment interfaces
"""

from compliance_engine.assignment.infrastructure.models import (
    AssignmentAuditModel,
    CategoryModel,
    UserModel,
)
from compliance_engine.assignment.infrastructure.repositories import (
    SQLAlchemyAssignmentHistory,
    SQLAlchemyCategoryRoutingProvider,
    SQLAlchemyUserDirectory,
)

__all__ = [
    "AssignmentAuditModel",
    "CategoryModel",
    "UserModel",
    "SQLAlchemyAssignmentHistory",
    "SQLAlchemyCategoryRoutingProvider",
    "SQLAlchemyUserDirectory",
]
