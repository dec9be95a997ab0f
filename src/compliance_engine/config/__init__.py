"""
Configuration Module
====================

Engine settings and shared constants, managed with Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="compliance-engine", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/compliance",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Tracking ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to the per-work-type SLA policy YAML file"
    )
    sla_poll_interval_seconds: int = Field(
        default=300,
        description="Seconds between SLA sweeps",
        ge=10
    )
    sla_scheduler_enabled: bool = Field(
        default=True,
        description="Start the periodic SLA sweep on boot"
    )

    # ========== Auto-Assignment ==========
    default_rotation_roles: List[str] = Field(
        default=["INVESTIGATOR", "TRIAGE_LEAD"],
        description="Roles in the fallback round-robin pool"
    )

    # ========== Event Forwarding ==========
    event_webhook_url: Optional[str] = Field(
        default=None,
        description="Notification dispatcher URL receiving SLA events"
    )
    event_webhook_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for event webhook calls",
        ge=0.1,
        le=30
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class WorkItemStatus(str, Enum):
    """Lifecycle statuses of a tracked workflow instance."""
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    PAUSED = "PAUSED"


class SlaStatus(str, Enum):
    """Persisted SLA status of a work item."""
    ON_TRACK = "ON_TRACK"
    WARNING = "WARNING"
    OVERDUE = "OVERDUE"


class SlaLevel(str, Enum):
    """Calculated (non-persisted) SLA level."""
    ON_TRACK = "on_track"
    WARNING = "warning"
    BREACHED = "breached"
    CRITICAL = "critical"


class BreachLevel(str, Enum):
    """Severity carried by breach events."""
    BREACHED = "breached"
    CRITICAL = "critical"


class ActorType(str, Enum):
    """Who caused a domain event."""
    SYSTEM = "SYSTEM"
    USER = "USER"


class StrategyType(str, Enum):
    """Built-in assignment strategy keys."""
    ROUND_ROBIN = "round_robin"
    LEAST_LOADED = "least_loaded"
    GEOGRAPHIC = "geographic"


class UserRole(str, Enum):
    """User roles relevant to routing."""
    SYSTEM_ADMIN = "SYSTEM_ADMIN"
    COMPLIANCE_OFFICER = "COMPLIANCE_OFFICER"
    TRIAGE_LEAD = "TRIAGE_LEAD"
    INVESTIGATOR = "INVESTIGATOR"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


# ========== Query filters ==========

OPEN_WORK_ITEM_STATUSES = [WorkItemStatus.ACTIVE, WorkItemStatus.PAUSED]
