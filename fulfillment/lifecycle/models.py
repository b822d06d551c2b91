"""
Data models for status transitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class StatusTransitionRecord:
    """One append-only audit entry of a status change."""

    entity_id: str
    entity_type: str
    from_status: str
    to_status: str
    actor: str
    comment: str | None = None
    id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> StatusTransitionRecord:
        return cls(
            id=row.get("id"),
            entity_id=str(row["entity_id"]),
            entity_type=row["entity_type"],
            from_status=row["from_status"],
            to_status=row["to_status"],
            actor=row["actor"],
            comment=row.get("comment"),
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "entity_id": self.entity_id,
            "entity_type": self.entity_type,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor": self.actor,
            "comment": self.comment,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a transition call.

    ``record`` is None when the entity was already in the target status.
    """

    entity_id: str
    entity_type: str
    status: str
    record: StatusTransitionRecord | None = None

    @property
    def changed(self) -> bool:
        return self.record is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "entity_type": self.entity_type,
            "status": self.status,
            "changed": self.changed,
            "record": self.record.to_dict() if self.record else None,
        }
