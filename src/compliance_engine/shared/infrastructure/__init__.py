"""
Infrastructure Layer
=====================

Low-level technical concerns shared by every module:
- Structured logging setup
"""

from compliance_engine.shared.infrastructure.logging import (
    get_context_logger,
    get_logger,
    log_latency,
    setup_logging,
)

__all__ = ["get_context_logger", "get_logger", "log_latency", "setup_logging"]
