from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from app.models.enums import IgnoreReason, MessageStatus


@dataclass(frozen=True)
class TeamRef:
    uuid: str
    name: str


@dataclass(frozen=True)
class ConversationOpened:
    source: str | None
    conversation_href: str
    team: TeamRef
    assigned_agent: str | None
    payload_created_at: datetime | None


@dataclass(frozen=True)
class MessageCreated:
    message_uuid: str
    status: MessageStatus
    channel: str
    contact_source: str | None
    conversation_href: str
    created_at: datetime | None
    team: TeamRef | None
    assigned_agent: str | None


@dataclass(frozen=True)
class ConversationClosed:
    source: str | None
    conversation_href: str
    payload_closed_at: datetime | None


@dataclass(frozen=True)
class IngestResult:
    inserted: bool = False
    deduped: bool = False
    ignored: bool = False
    reason: IgnoreReason | None = None

    @classmethod
    def accepted(cls) -> IngestResult:
        return cls(inserted=True)

    @classmethod
    def duplicate(cls) -> IngestResult:
        return cls(deduped=True)

    @classmethod
    def skipped(cls, reason: IgnoreReason) -> IngestResult:
        return cls(ignored=True, reason=reason)

    @property
    def outcome(self) -> str:
        if self.inserted:
            return "inserted"
        if self.deduped:
            return "deduped"
        return "ignored"

    def as_dict(self) -> dict:
        if self.inserted:
            return {"inserted": True}
        if self.deduped:
            return {"deduped": True}
        return {"ignored": True, "reason": self.reason.value if self.reason else None}
