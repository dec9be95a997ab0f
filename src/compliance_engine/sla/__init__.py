"""
SLA Tracking Module
===================

Bounded context for deadline tracking of compliance work items.

Responsibilities:
- Calculate time-decay SLA status against due dates
- Sweep active work items, persisting status transitions only
- Raise warning / breach / critical escalation events
- Run sweeps on a fixed cadence without overlapping passes
"""
