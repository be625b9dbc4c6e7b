"""Notification record. One per recipient; never merged."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Notification(BaseModel):
    id: str
    recipient_id: str
    actor_id: Optional[str] = None
    type: str
    title: str
    message: str
    link: Optional[str] = None
    created_at: datetime
    read_at: Optional[datetime] = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
