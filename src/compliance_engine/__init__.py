"""
Compliance Engine
=================

SLA tracking and auto-assignment engine for the compliance case-management
platform.

Modules:
- sla: time-decay SLA evaluation, sweeps, and the periodic scheduler
- assignment: rule-chain assignee resolution with pluggable strategies
"""

__version__ = "1.0.0"
