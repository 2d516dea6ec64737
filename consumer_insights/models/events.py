from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from consumer_insights.models.records import DocumentStatus


class EventType(str, Enum):
    STATUS_CHANGED = "status_changed"
    ERROR = "error"


@dataclass
class StatusChangeEvent:
    document_id: str
    keyword: str
    status: DocumentStatus
    previous_status: DocumentStatus | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    detail: str | None = None

    @property
    def event(self) -> EventType:
        return EventType.STATUS_CHANGED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "document_id": self.document_id,
            "keyword": self.keyword,
            "status": self.status.value,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "occurred_at": self.occurred_at.isoformat(),
        }
        if self.detail:
            data["detail"] = self.detail
        return data
