"""
Assignment Application Services
================================

AssignmentResolver walks the ordered rule chain:

1. category default assignee
2. category routing rule (strategy from the registry)
3. fallback round-robin over the default role pool

A ``None`` result means "leave unassigned" and is not an error.
"""

from enum import Enum
from typing import Optional, Sequence, Union
from uuid import uuid4

from compliance_engine.assignment.application.interfaces import (
    ICategoryRoutingProvider,
    IUserDirectory,
)
from compliance_engine.assignment.application.strategies import (
    AssignmentStrategy,
    StrategyRegistry,
)
from compliance_engine.assignment.domain import (
    AssignmentContext,
    AssignmentResult,
    CategoryRoutingConfig,
    RoutingRule,
)
from compliance_engine.config import StrategyType, settings
from compliance_engine.core import StrategyConfigurationException
from compliance_engine.shared.infrastructure.logging import get_context_logger

CATEGORY_DEFAULT = "category_default"


class AssignmentResolver:
    """
    Resolves who should receive a work item.

    Holds the strategy registry; ``register_strategy`` and
    ``unregister_strategy`` extend it without touching this class.
    """

    def __init__(
        self,
        user_directory: IUserDirectory,
        category_routing: ICategoryRoutingProvider,
        registry: StrategyRegistry,
        fallback_roles: Optional[Sequence[str]] = None
    ):
        self._users = user_directory
        self._categories = category_routing
        self._registry = registry
        self._fallback_roles = list(
            fallback_roles if fallback_roles is not None else settings.default_rotation_roles
        )

    @property
    def registry(self) -> StrategyRegistry:
        return self._registry

    def register_strategy(self, strategy: AssignmentStrategy) -> None:
        self._registry.register(strategy)

    def unregister_strategy(self, strategy_type: Union[str, Enum]) -> bool:
        return self._registry.unregister(strategy_type)

    async def resolve(self, context: AssignmentContext) -> Optional[AssignmentResult]:
        """
        Resolve an assignee for the context.

        Returns:
            AssignmentResult, or None when nobody suitable was found
        """
        log = get_context_logger(__name__, uuid4().hex[:12])
        log_extra = {
            "tenant_id": context.tenant_id,
            "entity_type": context.entity_type,
            "entity_id": context.entity_id,
        }

        if context.category is not None:
            try:
                routing = await self._categories.get_category_routing_config(context.category.id)
                result = await self._resolve_from_category(context, routing, log) if routing else None
            except Exception as e:
                log.error(
                    f"Category routing lookup failed, using fallback: {e}",
                    extra={**log_extra, "category_id": context.category.id}
                )
                result = None
            if result is not None:
                log.info(f"Assigned via category: {result.reason}", extra={**log_extra, "user_id": result.user_id})
                return result

        result = await self._resolve_fallback(context, log)
        if result is not None:
            log.info(f"Assigned via fallback: {result.reason}", extra={**log_extra, "user_id": result.user_id})
            return result

        log.info("No assignee resolved, leaving unassigned", extra=log_extra)
        return None

    async def _resolve_from_category(
        self,
        context: AssignmentContext,
        routing: CategoryRoutingConfig,
        log
    ) -> Optional[AssignmentResult]:
        if routing.default_assignee_id:
            user = await self._users.get_active_user(context.tenant_id, routing.default_assignee_id)
            if user is not None:
                return AssignmentResult(
                    user_id=user.id,
                    reason="category default",
                    strategy=CATEGORY_DEFAULT,
                )
            log.warning(
                "Category default assignee is not active",
                extra={"category_id": routing.category_id, "user_id": routing.default_assignee_id}
            )

        if routing.rule is not None:
            return await self._run_rule(context, routing.rule, log)

        return None

    async def _run_rule(
        self,
        context: AssignmentContext,
        rule: RoutingRule,
        log
    ) -> Optional[AssignmentResult]:
        strategy = self._registry.get(rule.type)
        if strategy is None:
            log.warning(
                f"Unknown assignment strategy '{rule.type}'",
                extra={"strategy_type": rule.type, "registered": self._registry.types()}
            )
            return None

        try:
            config = strategy.parse_config(rule.config)
        except StrategyConfigurationException as e:
            log.warning(e.message, extra={"strategy_type": rule.type})
            return None

        return await self._invoke(strategy, context, config, log)

    async def _resolve_fallback(self, context: AssignmentContext, log) -> Optional[AssignmentResult]:
        strategy = self._registry.get(StrategyType.ROUND_ROBIN)
        if strategy is None:
            log.warning("No round-robin strategy registered for fallback")
            return None

        try:
            config = strategy.parse_config({"role_filter": self._fallback_roles})
        except StrategyConfigurationException as e:
            log.warning(e.message, extra={"strategy_type": strategy.strategy_type})
            return None

        return await self._invoke(strategy, context, config, log)

    @staticmethod
    async def _invoke(strategy, context, config, log) -> Optional[AssignmentResult]:
        try:
            return await strategy.resolve(context, config)
        except Exception as e:
            log.error(
                f"Assignment strategy '{strategy.strategy_type}' failed: {e}",
                extra={"strategy_type": strategy.strategy_type, "tenant_id": context.tenant_id}
            )
            return None
