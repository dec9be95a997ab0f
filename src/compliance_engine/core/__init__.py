"""
Core Module
============

Error hierarchy shared by the SLA and assignment modules.
"""

from compliance_engine.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    EventPublishException,
    SlaCalculationException,
    StrategyConfigurationException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "EventPublishException",
    "SlaCalculationException",
    "StrategyConfigurationException",
]
