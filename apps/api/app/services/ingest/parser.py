from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from app.models.enums import MessageStatus
from app.schemas.webhooks import (
    ContactIn,
    ConversationClosedIn,
    ConversationOpenedIn,
    MessageCreatedIn,
)
from app.services.ingest.errors import IngestValidationError, MissingRequiredField
from app.services.ingest.normalize import (
    first_present,
    parse_advisory_timestamp,
    parse_utc_timestamp,
)
from app.services.ingest.types import (
    ConversationClosed,
    ConversationOpened,
    MessageCreated,
    TeamRef,
)

_M = TypeVar("_M", bound=BaseModel)


def load_conversation_opened(body: Any) -> ConversationOpenedIn:
    return _validate(ConversationOpenedIn, body)


def load_message_created(body: Any) -> MessageCreatedIn:
    return _validate(MessageCreatedIn, body)


def load_conversation_closed(body: Any) -> ConversationClosedIn:
    return _validate(ConversationClosedIn, body)


def parse_conversation_opened(body: Any) -> ConversationOpened:
    model = load_conversation_opened(body)
    href = _require(model.href, field="href")
    contact = model.contact or ContactIn()
    team = contact.team
    team_uuid = _require(team.uuid if team else None, field="contact.team.uuid")
    team_name = _require(team.name if team else None, field="contact.team.name")
    return ConversationOpened(
        source=model.source,
        conversation_href=href,
        team=TeamRef(uuid=team_uuid, name=team_name),
        assigned_agent=first_present(contact.assignedUser),
        payload_created_at=parse_advisory_timestamp(model.createdAt),
    )


def parse_message_created(body: Any) -> MessageCreated:
    model = load_message_created(body)
    message_uuid = _require(model.uuid, field="uuid")
    raw_status = _require(model.status, field="status")
    try:
        status = MessageStatus(raw_status)
    except ValueError as e:
        raise IngestValidationError(
            field="status", message=f"Unsupported message status: {raw_status!r}"
        ) from e
    channel = _require(model.channel, field="channel")

    contact = model.contact or ContactIn()
    conversation_href = (
        first_present(contact.conversationHref, contact.href, contact.uuid) or message_uuid
    )

    team: TeamRef | None = None
    if contact.team is not None:
        team_uuid = first_present(contact.team.uuid)
        team_name = first_present(contact.team.name)
        if team_uuid and team_name:
            team = TeamRef(uuid=team_uuid, name=team_name)

    return MessageCreated(
        message_uuid=message_uuid,
        status=status,
        channel=channel,
        contact_source=contact.source,
        conversation_href=conversation_href,
        created_at=parse_utc_timestamp(model.createdAt, field="createdAt"),
        team=team,
        assigned_agent=first_present(contact.assignedUser),
    )


def parse_conversation_closed(body: Any) -> ConversationClosed:
    model = load_conversation_closed(body)
    return ConversationClosed(
        source=model.source,
        conversation_href=_require(model.href, field="href"),
        payload_closed_at=parse_advisory_timestamp(model.closedAt),
    )


def _validate(model_cls: type[_M], body: Any) -> _M:
    if isinstance(body, model_cls):
        return body
    if not isinstance(body, dict):
        raise IngestValidationError(field="payload", message="Event payload must be a JSON object")
    try:
        return model_cls.model_validate(body)
    except ValidationError as e:
        loc = ".".join(str(p) for p in e.errors()[0]["loc"]) if e.errors() else "payload"
        raise IngestValidationError(field=loc, message=f"Malformed event payload: {loc}") from e


def _require(value: str | None, *, field: str) -> str:
    present = first_present(value)
    if present is None:
        raise MissingRequiredField(field=field)
    return present
