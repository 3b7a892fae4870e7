# amo_notes/models/events.py

import json
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ChangeKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


class FieldChange(BaseModel):
    kind: ChangeKind
    field_label: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None

    def render(self) -> str:
        if self.kind == ChangeKind.ADDED:
            return f"Added {self.field_label}: {self.new_value}"
        if self.kind == ChangeKind.REMOVED:
            return f"Removed {self.field_label}: {self.old_value}"
        return f"{self.field_label}: was {self.old_value} → now {self.new_value}"


class Note(BaseModel):
    entity_type: Literal["leads", "contacts"]
    entity_id: int
    text: str

    def to_payload(self) -> str:
        """JSON body for POST {entity_type}/{entity_id}/notes."""
        return json.dumps(
            [{"note_type": "common", "params": {"text": self.text}}],
            ensure_ascii=False,
        )


class DispatchResult(BaseModel):
    notes_sent: List[int] = Field(default_factory=list)
    skipped: List[int] = Field(default_factory=list)
    failed: List[int] = Field(default_factory=list)
    unsupported: List[str] = Field(default_factory=list)
