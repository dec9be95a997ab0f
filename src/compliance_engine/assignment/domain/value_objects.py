"""
Assignment Value Objects
=========================

Immutable inputs and outputs of assignee resolution, plus the typed
configuration of each built-in strategy.

Routing rules arrive as a ``{type, config}`` JSON blob on category records.
The envelope is decoded into ``RoutingRule`` where it is read, and the
``config`` part is validated against the matching strategy's model before
the strategy runs.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class CategoryRef(BaseModel):
    """Category the work item was filed under."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None


class LocationRef(BaseModel):
    """Where the reported issue happened."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    timezone: Optional[str] = None


class AssignmentContext(BaseModel):
    """
    Everything a strategy may look at when picking an assignee.

    Built by the caller per request and never persisted by this engine.
    Tenant isolation is assumed to be enforced by the caller.
    """
    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1)
    entity_type: str = Field(..., min_length=1)
    entity_id: str = Field(..., min_length=1)
    category: Optional[CategoryRef] = None
    location: Optional[LocationRef] = None
    severity: Optional[str] = None
    reporter_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class AssignmentResult:
    """Chosen user and a human-readable justification."""
    user_id: str
    reason: str
    strategy: Optional[str] = None


@dataclass(frozen=True)
class LastAssignmentRecord:
    """Most recent assignment audit entry for an entity type."""
    user_id: str
    entity_id: Optional[str] = None
    assigned_at: Optional[datetime] = None


class RoutingRule(BaseModel):
    """Strategy reference stored on a category: type key plus raw config."""
    model_config = ConfigDict(frozen=True)

    type: str = Field(..., min_length=1)
    config: Dict[str, Any] = Field(default_factory=dict)


class CategoryRoutingConfig(BaseModel):
    """Routing configuration of one category, as read from its record."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    category_id: str
    default_assignee_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("default_assignee_id", "defaultAssigneeId")
    )
    rule: Optional[RoutingRule] = None

    @field_validator("rule", mode="before")
    @classmethod
    def decode_rule(cls, v: Any) -> Any:
        """Rules may be stored as serialized JSON text."""
        if isinstance(v, str):
            v = v.strip()
            return json.loads(v) if v else None
        return v


# ========== Strategy configs ==========

class StrategyConfig(BaseModel):
    """Base for strategy configs; unknown keys are rejected."""
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class RoundRobinConfig(StrategyConfig):
    role_filter: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("role_filter", "roleFilter", "roles")
    )


class LeastLoadedConfig(StrategyConfig):
    role_filter: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("role_filter", "roleFilter", "roles")
    )
    team_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("team_id", "teamId")
    )
    max_load: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("max_load", "maxLoad")
    )


class GeographicConfig(StrategyConfig):
    mapping: Dict[str, str] = Field(default_factory=dict)
    fallback_user_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("fallback_user_id", "fallbackUserId", "fallback")
    )
