from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class _Passthrough(BaseModel):
    # Upstream adds fields freely; only the ones below are read by the core.
    model_config = ConfigDict(extra="allow")


class TeamIn(_Passthrough):
    uuid: str | None = None
    name: str | None = None


class ContactIn(_Passthrough):
    conversationHref: str | None = None
    href: str | None = None
    uuid: str | None = None
    source: str | None = None
    team: TeamIn | None = None
    assignedUser: str | None = None


class ConversationOpenedIn(_Passthrough):
    source: str | None = None
    href: str | None = None
    createdAt: str | None = None
    contact: ContactIn | None = None


class MessageCreatedIn(_Passthrough):
    uuid: str | None = None
    status: str | None = None
    channel: str | None = None
    createdAt: str | None = None
    contact: ContactIn | None = None


class ConversationClosedIn(_Passthrough):
    source: str | None = None
    href: str | None = None
    closedAt: str | None = None


class WebhookEnvelope(_Passthrough):
    event: str | None = None
    data: Any = None
    payload: Any = None

    def event_body(self) -> Any:
        if self.payload is not None:
            return self.payload
        if self.data is not None:
            return self.data
        return self.model_dump(mode="json", exclude={"event", "data", "payload"})


class WebhookAck(BaseModel):
    status: str
    result: dict[str, Any] | None = None
    reason: str | None = None
