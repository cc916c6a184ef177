from __future__ import annotations

import uuid
from datetime import UTC, datetime


def iso(ts: datetime) -> str:
    return ts.astimezone(UTC).isoformat().replace("+00:00", "Z")


def opened_payload(
    *,
    href: str,
    team: dict[str, str] | None,
    source: str = "whatsapp",
    assigned_user: str | None = None,
    created_at: datetime | None = None,
) -> dict:
    contact: dict = {"name": "Jane Customer", "phoneNumber": "+5493810000000"}
    if team is not None:
        contact["team"] = dict(team)
    if assigned_user is not None:
        contact["assignedUser"] = assigned_user
    payload: dict = {"source": source, "href": href, "contact": contact}
    if created_at is not None:
        payload["createdAt"] = iso(created_at)
    return payload


def message_payload(
    *,
    href: str,
    status: str,
    at: datetime | None,
    team: dict[str, str] | None = None,
    message_uuid: str | None = None,
    channel: str = "whatsapp",
    assigned_user: str | None = None,
) -> dict:
    contact: dict = {"conversationHref": href, "source": "whatsapp", "name": "Jane Customer"}
    if team is not None:
        contact["team"] = dict(team)
    if assigned_user is not None:
        contact["assignedUser"] = assigned_user
    payload: dict = {
        "uuid": message_uuid or uuid.uuid4().hex,
        "status": status,
        "channel": channel,
        "text": "hola",
        "contact": contact,
    }
    if at is not None:
        payload["createdAt"] = iso(at)
    return payload


def closed_payload(*, href: str, source: str = "whatsapp", closed_at: datetime | None = None) -> dict:
    payload: dict = {"source": source, "href": href}
    if closed_at is not None:
        payload["closedAt"] = iso(closed_at)
    return payload
