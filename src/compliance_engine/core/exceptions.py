"""
Core Exceptions
================

Error types raised by the engine.

Per-item errors are caught at the sweep loop and per-strategy errors at the
resolver chain; both log and carry on. Configuration errors surface at
startup.
"""

from typing import Any, Optional


class ApplicationException(Exception):
    """Root of the engine's error hierarchy; ``details`` feeds log extras."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """A domain rule could not be applied to the given data."""


class RepositoryException(ApplicationException):
    """Reading or writing work items, users or categories failed."""


class ValidationException(ApplicationException):
    """Input did not match the expected shape."""


class ResourceNotFoundException(RepositoryException):
    """A referenced row (work item, user, category) does not exist."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        label = f"{resource_type} '{resource_id}'" if resource_id else resource_type
        super().__init__(f"{label} not found", details or {"resource_type": resource_type})


class ConfigurationException(ApplicationException):
    """SLA policy file or settings are unusable."""


class ExternalServiceException(ApplicationException):
    """A collaborator outside the engine failed."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class EventPublishException(ExternalServiceException):
    """An SLA event could not be handed to the notification dispatcher."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Event Publisher", message, details)


class SlaCalculationException(DomainException):
    """SLA inputs (dates or thresholds) cannot be evaluated."""

    def __init__(
        self,
        message: str,
        due_date: Any = None,
        details: Optional[dict] = None
    ):
        self.due_date = due_date
        super().__init__(message, details or {"due_date": str(due_date)})


class StrategyConfigurationException(ValidationException):
    """A routing rule's config does not match its strategy."""

    def __init__(
        self,
        strategy_type: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.strategy_type = strategy_type
        super().__init__(
            f"Invalid config for strategy '{strategy_type}': {message}",
            details or {"strategy_type": strategy_type}
        )
