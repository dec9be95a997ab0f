"""
Assignment Strategies
======================

Pluggable algorithms answering "who gets this work item", selected by a
type key through ``StrategyRegistry``.

Built-in strategies:
- round_robin: fairness rotation over an ordered user pool
- least_loaded: capacity-aware pick of the user with the fewest open items
- geographic: explicit location-to-user routing with a fallback user

New strategies (skill-based, manager-of, ...) subclass AssignmentStrategy
and are registered at startup; the resolver never changes.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, Union

from pydantic import ValidationError

from compliance_engine.assignment.application.interfaces import IAssignmentHistory, IUserDirectory
from compliance_engine.assignment.domain import (
    AssignmentContext,
    AssignmentResult,
    GeographicConfig,
    LeastLoadedConfig,
    RoundRobinConfig,
    StrategyConfig,
)
from compliance_engine.config import StrategyType
from compliance_engine.core import StrategyConfigurationException
from compliance_engine.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def strategy_key(strategy_type: Union[str, Enum]) -> str:
    """Normalize a strategy type (plain string or enum member) to its key."""
    if isinstance(strategy_type, Enum):
        return str(strategy_type.value)
    return str(strategy_type)


class AssignmentStrategy(ABC):
    """
    Base class for assignment strategies.

    Subclasses declare ``strategy_type`` (registry key) and ``config_model``
    (pydantic model the raw rule config is validated against).
    """

    strategy_type: ClassVar[str]
    config_model: ClassVar[Type[StrategyConfig]] = StrategyConfig

    def parse_config(self, raw: Optional[Mapping[str, Any]]) -> StrategyConfig:
        """
        Validate a raw config blob.

        Raises:
            StrategyConfigurationException: If the blob does not match
        """
        try:
            return self.config_model.model_validate(dict(raw or {}))
        except ValidationError as e:
            raise StrategyConfigurationException(
                self.strategy_type,
                str(e),
                {"strategy_type": self.strategy_type, "errors": e.errors(include_url=False)}
            )

    @abstractmethod
    async def resolve(
        self,
        context: AssignmentContext,
        config: Optional[StrategyConfig] = None
    ) -> Optional[AssignmentResult]:
        """Pick an assignee, or None when no candidate fits."""


class StrategyRegistry:
    """Registry of assignment strategies keyed by type name."""

    def __init__(self, strategies: Iterable[AssignmentStrategy] = ()):
        self._strategies: Dict[str, AssignmentStrategy] = {}
        for strategy in strategies:
            self.register(strategy)

    def register(self, strategy: AssignmentStrategy) -> None:
        """Bind a strategy to its type; an existing binding is replaced."""
        key = strategy_key(strategy.strategy_type)
        if key in self._strategies:
            logger.warning(
                f"Overwriting assignment strategy '{key}'",
                extra={
                    "strategy_type": key,
                    "previous": type(self._strategies[key]).__name__,
                    "replacement": type(strategy).__name__,
                }
            )
        self._strategies[key] = strategy
        logger.debug(f"Registered assignment strategy '{key}'")

    def unregister(self, strategy_type: Union[str, Enum]) -> bool:
        """Remove a binding. Returns False if the type was not registered."""
        return self._strategies.pop(strategy_key(strategy_type), None) is not None

    def get(self, strategy_type: Union[str, Enum]) -> Optional[AssignmentStrategy]:
        return self._strategies.get(strategy_key(strategy_type))

    def types(self) -> List[str]:
        return sorted(self._strategies)

    def __contains__(self, strategy_type: object) -> bool:
        if not isinstance(strategy_type, (str, Enum)):
            return False
        return strategy_key(strategy_type) in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)


@dataclass
class _RotationCursor:
    issued_user_id: str
    observed_user_id: Optional[str]


class RoundRobinStrategy(AssignmentStrategy):
    """
    Fairness rotation over active users in creation order.

    "Whose turn is next" comes from the latest assignment audit record for
    the entity type: the user after the last assignee (wrapping), or the
    first user when the last assignee is unknown or no longer eligible.

    The audit record only moves once the caller records an assignment, so
    two resolutions in between would pick the same user. An in-process
    cursor remembers the user this strategy last issued together with the
    audit record it saw; while the record is unchanged the cursor stands in
    for it. Processes do not share cursors.
    """

    strategy_type = StrategyType.ROUND_ROBIN.value
    config_model = RoundRobinConfig

    def __init__(
        self,
        user_directory: IUserDirectory,
        assignment_history: IAssignmentHistory,
        default_roles: Optional[Sequence[str]] = None,
        use_process_cursor: bool = True
    ):
        self._users = user_directory
        self._history = assignment_history
        self._default_roles = list(default_roles) if default_roles else None
        self._use_process_cursor = use_process_cursor
        self._cursors: Dict[Tuple[str, str], _RotationCursor] = {}
        self._lock = asyncio.Lock()

    async def resolve(
        self,
        context: AssignmentContext,
        config: Optional[StrategyConfig] = None
    ) -> Optional[AssignmentResult]:
        config = config if isinstance(config, RoundRobinConfig) else RoundRobinConfig()
        roles = config.role_filter if config.role_filter is not None else self._default_roles

        users = await self._users.list_eligible_users(context.tenant_id, roles)
        if not users:
            logger.debug(
                "No eligible users for round-robin",
                extra={"tenant_id": context.tenant_id, "roles": roles}
            )
            return None

        user_ids = [user.id for user in users]
        key = (context.tenant_id, context.entity_type)

        async with self._lock:
            record = await self._history.find_last_assignment_record(
                context.tenant_id, context.entity_type
            )
            observed = record.user_id if record else None
            last_user_id = observed

            cursor = self._cursors.get(key)
            if self._use_process_cursor and cursor and cursor.observed_user_id == observed:
                last_user_id = cursor.issued_user_id

            if last_user_id in user_ids:
                index = (user_ids.index(last_user_id) + 1) % len(users)
            else:
                index = 0

            chosen = users[index]
            self._cursors[key] = _RotationCursor(chosen.id, observed)

        return AssignmentResult(
            user_id=chosen.id,
            reason=f"Round-robin assignment (position {index + 1} of {len(users)})",
            strategy=self.strategy_type,
        )


class LeastLoadedStrategy(AssignmentStrategy):
    """
    Capacity-aware assignment: the eligible user with the fewest open items.

    Ties keep creation order. With ``max_load`` set, users at or above the
    cap are skipped, and None is returned when everyone is at capacity.
    """

    strategy_type = StrategyType.LEAST_LOADED.value
    config_model = LeastLoadedConfig

    def __init__(self, user_directory: IUserDirectory, default_roles: Optional[Sequence[str]] = None):
        self._users = user_directory
        self._default_roles = list(default_roles) if default_roles else None

    async def resolve(
        self,
        context: AssignmentContext,
        config: Optional[StrategyConfig] = None
    ) -> Optional[AssignmentResult]:
        config = config if isinstance(config, LeastLoadedConfig) else LeastLoadedConfig()
        roles = config.role_filter if config.role_filter is not None else self._default_roles

        users = await self._users.list_eligible_users(context.tenant_id, roles)
        if config.team_id:
            users = [user for user in users if user.team_id == config.team_id]
        if not users:
            return None

        loads = []
        for position, user in enumerate(users):
            count = await self._users.count_open_items_for_user(user.id)
            loads.append((count, position, user))
        loads.sort(key=lambda entry: (entry[0], entry[1]))

        for count, _, user in loads:
            if config.max_load is None or count < config.max_load:
                return AssignmentResult(
                    user_id=user.id,
                    reason=f"Least loaded ({count} open items)",
                    strategy=self.strategy_type,
                )

        logger.info(
            "All eligible users at capacity",
            extra={"tenant_id": context.tenant_id, "max_load": config.max_load, "candidates": len(users)}
        )
        return None


class GeographicStrategy(AssignmentStrategy):
    """
    Location-based routing through an explicit key-to-user mapping.

    Keys are tried in order: country code, region, location name, location
    id. Without a match the fallback user is used. The resolved user must be
    active; an inactive mapped user falls through to the fallback.
    """

    strategy_type = StrategyType.GEOGRAPHIC.value
    config_model = GeographicConfig

    def __init__(self, user_directory: IUserDirectory):
        self._users = user_directory

    async def resolve(
        self,
        context: AssignmentContext,
        config: Optional[StrategyConfig] = None
    ) -> Optional[AssignmentResult]:
        config = config if isinstance(config, GeographicConfig) else GeographicConfig()

        match = self._match_location(context, config)
        if match is not None:
            matched_on, user_id = match
            user = await self._users.get_active_user(context.tenant_id, user_id)
            if user is not None:
                return AssignmentResult(
                    user_id=user.id,
                    reason=f"Geographic routing by {matched_on}",
                    strategy=self.strategy_type,
                )
            logger.warning(
                "Mapped geographic assignee is not active",
                extra={"tenant_id": context.tenant_id, "user_id": user_id, "matched_on": matched_on}
            )

        if config.fallback_user_id and (match is None or match[1] != config.fallback_user_id):
            user = await self._users.get_active_user(context.tenant_id, config.fallback_user_id)
            if user is not None:
                return AssignmentResult(
                    user_id=user.id,
                    reason="Geographic fallback assignee",
                    strategy=self.strategy_type,
                )

        return None

    @staticmethod
    def _match_location(
        context: AssignmentContext,
        config: GeographicConfig
    ) -> Optional[Tuple[str, str]]:
        location = context.location
        if location is None:
            return None

        candidates = (
            ("country", location.country),
            ("region", location.region),
            ("location name", location.name),
            ("location id", location.id),
        )
        for label, key in candidates:
            if key and key in config.mapping:
                return label, config.mapping[key]
        return None


def build_default_registry(
    user_directory: IUserDirectory,
    assignment_history: IAssignmentHistory,
    default_roles: Optional[Sequence[str]] = None
) -> StrategyRegistry:
    """Registry holding the three built-in strategies."""
    return StrategyRegistry([
        RoundRobinStrategy(user_directory, assignment_history, default_roles),
        LeastLoadedStrategy(user_directory),
        GeographicStrategy(user_directory),
    ])
