"""Immutable audit record model. Domain-level immutability."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AuditRecord:
    """
    Immutable audit record: who acted, on whom, what changed, when (UTC).
    """

    id: str
    actor_id: Optional[str]
    target_user_id: Optional[str]
    action: str
    before: Optional[Dict[str, Any]]
    after: Optional[Dict[str, Any]]
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for API responses and JSON logging."""
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "target_user_id": self.target_user_id,
            "action": self.action,
            "before": self.before,
            "after": self.after,
            "created_at": self.created_at.isoformat(),
        }
