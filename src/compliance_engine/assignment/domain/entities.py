"""
Assignment Domain Entities
===========================
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class EligibleUser:
    """A user who can receive work, as seen by the routing strategies."""

    id: str
    tenant_id: str
    role: str
    created_at: datetime
    team_id: Optional[str] = None
    is_active: bool = True
    display_name: Optional[str] = None
