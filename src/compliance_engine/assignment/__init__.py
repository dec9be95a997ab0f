"""
Auto-Assignment Module
======================

Bounded context resolving who a new work item should be assigned to.

Responsibilities:
- Honour category default assignees and category routing rules
- Dispatch to pluggable strategies by type key
- Fall back to a fairness rotation over the default role pool
"""
