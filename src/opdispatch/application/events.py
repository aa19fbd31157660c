from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_event_id() -> str:
    return uuid.uuid4().hex


@dataclass
class DispatchEvent:
    """
    Envelope describing one step of one dispatch (started/completed/failed).

    Kept framework-agnostic so any EventLogPort backend can store it.
    """

    operation: str
    type: str  # started/completed/failed
    category: str = ""
    invocation_id: str = ""
    event_id: str = field(default_factory=new_event_id)
    duration_ms: Optional[float] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    ts: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "invocation_id": self.invocation_id,
            "operation": self.operation,
            "category": self.category,
            "type": self.type,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "error_kind": self.error_kind,
            "payload": self.payload,
            "ts": self.ts.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)
