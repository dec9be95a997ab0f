"""Tests for the assignment rule chain."""

import json
import logging
from typing import Optional

import pytest

from compliance_engine.assignment.application import (
    AssignmentResolver,
    AssignmentStrategy,
    build_default_registry,
)
from compliance_engine.assignment.domain import (
    AssignmentContext,
    AssignmentResult,
    CategoryRef,
    CategoryRoutingConfig,
    LocationRef,
    StrategyConfig,
)
from compliance_engine.core import RepositoryException

from fakes import InMemoryCategoryRouting, InMemoryUserDirectory, make_user

FALLBACK_ROLES = ["INVESTIGATOR", "TRIAGE_LEAD"]


class SkillBasedStrategy(AssignmentStrategy):
    strategy_type = "skill_based"

    def __init__(self, user_id: str = "C"):
        self.user_id = user_id
        self.contexts = []

    async def resolve(self, context, config: Optional[StrategyConfig] = None):
        self.contexts.append(context)
        return AssignmentResult(user_id=self.user_id, reason="Skill match", strategy=self.strategy_type)


class ExplodingStrategy(AssignmentStrategy):
    strategy_type = "exploding"

    async def resolve(self, context, config=None):
        raise RuntimeError("directory timeout")


def make_context(category_id: Optional[str] = "cat-1", country: Optional[str] = None) -> AssignmentContext:
    return AssignmentContext(
        tenant_id="tenant-1",
        entity_type="CASE",
        entity_id="case-42",
        category=CategoryRef(id=category_id, name="Fraud") if category_id else None,
        location=LocationRef(country=country) if country else None,
        severity="HIGH",
    )


def build_resolver(directory, history, *configs, fallback_roles=FALLBACK_ROLES) -> AssignmentResolver:
    return AssignmentResolver(
        directory,
        InMemoryCategoryRouting(configs),
        build_default_registry(directory, history, fallback_roles),
        fallback_roles=fallback_roles,
    )


@pytest.mark.asyncio
async def test_category_default_assignee_wins(directory, history):
    resolver = build_resolver(
        directory, history,
        CategoryRoutingConfig(
            category_id="cat-1",
            default_assignee_id="C",
            rule={"type": "geographic", "config": {"mapping": {"US": "A"}}},
        ),
    )

    result = await resolver.resolve(make_context(country="US"))

    assert result == AssignmentResult(user_id="C", reason="category default", strategy="category_default")


@pytest.mark.asyncio
async def test_inactive_default_assignee_falls_through_to_rule(history):
    directory = InMemoryUserDirectory([
        make_user("A", order=1),
        make_user("gone", order=2, is_active=False),
    ])
    resolver = build_resolver(
        directory, history,
        CategoryRoutingConfig(
            category_id="cat-1",
            default_assignee_id="gone",
            rule={"type": "geographic", "config": {"mapping": {"US": "A"}}},
        ),
    )

    result = await resolver.resolve(make_context(country="US"))

    assert result.user_id == "A"
    assert result.strategy == "geographic"


@pytest.mark.asyncio
async def test_category_rule_dispatches_to_strategy(directory, history):
    resolver = build_resolver(
        directory, history,
        CategoryRoutingConfig(
            category_id="cat-1",
            rule={"type": "least_loaded", "config": {"maxLoad": 5}},
        ),
    )
    directory.loads = {"A": 4, "B": 0, "C": 1, "E": 0}

    result = await resolver.resolve(make_context())

    # Employees are eligible for least-loaded when no role filter is configured
    assert result.user_id == "B"
    assert result.strategy == "least_loaded"


@pytest.mark.asyncio
async def test_rule_stored_as_json_text(directory, history):
    rule_text = json.dumps({"type": "geographic", "config": {"mapping": {"FR": "C"}}})
    resolver = build_resolver(directory, history, CategoryRoutingConfig(category_id="cat-1", rule=rule_text))

    result = await resolver.resolve(make_context(country="FR"))

    assert result.user_id == "C"


@pytest.mark.asyncio
async def test_rule_miss_falls_back_to_rotation(directory, history):
    resolver = build_resolver(
        directory, history,
        CategoryRoutingConfig(category_id="cat-1", rule={"type": "geographic", "config": {"mapping": {"US": "A"}}}),
    )

    result = await resolver.resolve(make_context(country="FR"))

    assert result.user_id == "A"
    assert result.strategy == "round_robin"


@pytest.mark.asyncio
async def test_unknown_strategy_type_falls_back(directory, history, caplog):
    resolver = build_resolver(
        directory, history,
        CategoryRoutingConfig(category_id="cat-1", rule={"type": "manager_of", "config": {}}),
    )

    with caplog.at_level(logging.WARNING):
        result = await resolver.resolve(make_context())

    assert result.strategy == "round_robin"
    assert "Unknown assignment strategy 'manager_of'" in caplog.text


@pytest.mark.asyncio
async def test_invalid_rule_config_falls_back(directory, history, caplog):
    resolver = build_resolver(
        directory, history,
        CategoryRoutingConfig(category_id="cat-1", rule={"type": "least_loaded", "config": {"max_load": 0}}),
    )

    with caplog.at_level(logging.WARNING):
        result = await resolver.resolve(make_context())

    assert result.strategy == "round_robin"
    assert "Invalid config for strategy 'least_loaded'" in caplog.text


@pytest.mark.asyncio
async def test_failing_strategy_falls_back(directory, history):
    resolver = build_resolver(
        directory, history,
        CategoryRoutingConfig(category_id="cat-1", rule={"type": "exploding"}),
    )
    resolver.register_strategy(ExplodingStrategy())

    result = await resolver.resolve(make_context())

    assert result.strategy == "round_robin"


class UnavailableCategoryRouting(InMemoryCategoryRouting):
    async def get_category_routing_config(self, category_id):
        raise RepositoryException("db blip")


@pytest.mark.asyncio
async def test_category_lookup_failure_falls_back(directory, history, caplog):
    resolver = AssignmentResolver(
        directory,
        UnavailableCategoryRouting(),
        build_default_registry(directory, history, FALLBACK_ROLES),
        fallback_roles=FALLBACK_ROLES,
    )

    with caplog.at_level(logging.ERROR):
        result = await resolver.resolve(make_context())

    assert result.user_id == "A"
    assert result.strategy == "round_robin"
    failure = next(r for r in caplog.records if r.levelno == logging.ERROR)
    assert "db blip" in failure.getMessage()
    assert failure.category_id == "cat-1"


@pytest.mark.asyncio
async def test_no_category_uses_fallback_role_pool(history):
    directory = InMemoryUserDirectory([
        make_user("emp", order=1, role="EMPLOYEE"),
        make_user("lead", order=2, role="TRIAGE_LEAD"),
    ])
    resolver = build_resolver(directory, history)

    result = await resolver.resolve(make_context(category_id=None))

    assert result.user_id == "lead"


@pytest.mark.asyncio
async def test_unconfigured_category_uses_fallback(directory, history):
    resolver = build_resolver(directory, history)

    result = await resolver.resolve(make_context(category_id="cat-unrouted"))

    assert result.strategy == "round_robin"


@pytest.mark.asyncio
async def test_nobody_available_returns_none(history):
    directory = InMemoryUserDirectory([make_user("emp", order=1, role="EMPLOYEE")])
    resolver = build_resolver(directory, history)

    assert await resolver.resolve(make_context(category_id=None)) is None


@pytest.mark.asyncio
async def test_registered_strategy_is_used_without_resolver_changes(directory, history):
    skill = SkillBasedStrategy()
    resolver = build_resolver(
        directory, history,
        CategoryRoutingConfig(category_id="cat-1", rule={"type": "skill_based"}),
    )

    resolver.register_strategy(skill)
    result = await resolver.resolve(make_context())

    assert result.reason == "Skill match"
    assert skill.contexts[0].severity == "HIGH"

    assert resolver.unregister_strategy("skill_based") is True
    result = await resolver.resolve(make_context())
    assert result.strategy == "round_robin"


def test_routing_config_accepts_stored_keys():
    config = CategoryRoutingConfig.model_validate({
        "category_id": "cat-1",
        "defaultAssigneeId": "C",
        "rule": "",
    })

    assert config.default_assignee_id == "C"
    assert config.rule is None
