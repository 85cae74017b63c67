"""Task change notifications and their wire envelope."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

TASK_UPDATED = "taskUpdated"

# Carried separately as taskId / updatedAt.
_HIDDEN_FIELDS = {"id", "updated_at"}

# snake_case storage names -> camelCase wire names
_WIRE_NAMES = {
    "event_id": "eventId",
    "assignee_id": "assigneeId",
    "created_at": "createdAt",
}


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class TaskChangeEvent:
    """New state of one task after a committed mutation."""

    task_id: str
    fields: Mapping[str, Any]
    originator: str | None = None
    occurred_at: str = field(default_factory=_utcnow_iso)

    def __post_init__(self) -> None:
        if not self.task_id:
            raise ValueError("task_id is required")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @classmethod
    def from_task(cls, task: Mapping[str, Any], *, originator: str | None = None) -> "TaskChangeEvent":
        return cls(
            task_id=str(task["id"]),
            fields={k: v for k, v in task.items() if k not in _HIDDEN_FIELDS},
            originator=originator,
            occurred_at=str(task.get("updated_at") or _utcnow_iso()),
        )

    @property
    def status(self) -> str | None:
        value = self.fields.get("status")
        return None if value is None else str(value)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"taskId": self.task_id}
        for key, value in self.fields.items():
            payload[_WIRE_NAMES.get(key, key)] = value
        payload["updatedBy"] = self.originator
        payload["updatedAt"] = self.occurred_at
        return payload

    def to_message(self) -> dict[str, Any]:
        return {"type": TASK_UPDATED, "payload": self.to_payload()}
