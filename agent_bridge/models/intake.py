"""
Shadow intake record kept alongside each conversation.

The record is a best-effort, non-authoritative view of what the caller has
said so far. Fields are filled by the extractors in
agent_bridge.handlers.intake_handlers and, once set, are never overwritten.
"""

from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, PrivateAttr

from agent_bridge.config.constants import INTAKE_RECENT_WINDOW

INTAKE_FIELDS = (
    "client_type",
    "full_name",
    "phone",
    "email",
    "incident",
    "date",
    "location",
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ShadowIntakeRecord(BaseModel):
    """Per-connection intake fields extracted from user utterances."""

    session_started_at: str = Field(default_factory=_utc_now)
    client_type: Optional[Literal["existing", "new"]] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    incident: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    transcripts: List[str] = Field(default_factory=list)
    complete_logged: bool = False

    _recent: Deque[str] = PrivateAttr(
        default_factory=lambda: deque(maxlen=INTAKE_RECENT_WINDOW)
    )

    def seen_recently(self, utterance: str) -> bool:
        return utterance in self._recent

    def remember(self, utterance: str) -> None:
        self._recent.append(utterance)

    def is_complete(self) -> bool:
        """Classification, name, a contact, incident, date and location are all known."""
        return bool(
            self.client_type
            and self.full_name
            and (self.phone or self.email)
            and self.incident
            and self.date
            and self.location
        )

    def snapshot(self) -> Dict[str, Any]:
        """Field values plus completion state, without the raw transcript."""
        data = {name: getattr(self, name) for name in INTAKE_FIELDS}
        data["complete"] = self.is_complete()
        data["utterances"] = len(self.transcripts)
        return data
