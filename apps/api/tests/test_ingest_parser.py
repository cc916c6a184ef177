from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from app.models.enums import MessageStatus
from app.services.ingest.errors import (
    IngestValidationError,
    InvalidTimestamp,
    MissingRequiredField,
)
from app.services.ingest.normalize import (
    build_case_id,
    compute_local_date,
    parse_advisory_timestamp,
    parse_utc_timestamp,
)
from app.services.ingest.parser import (
    parse_conversation_closed,
    parse_conversation_opened,
    parse_message_created,
)

TZ = "America/Argentina/Tucuman"


def test_parse_utc_timestamp_accepts_zulu_offset_and_naive() -> None:
    assert parse_utc_timestamp("2024-03-01T10:00:00Z", field="createdAt") == datetime(
        2024, 3, 1, 10, 0, tzinfo=UTC
    )
    assert parse_utc_timestamp("2024-03-01T07:00:00-03:00", field="createdAt") == datetime(
        2024, 3, 1, 10, 0, tzinfo=UTC
    )
    naive = parse_utc_timestamp("2024-03-01T10:00:00", field="createdAt")
    assert naive is not None
    assert naive.tzinfo is not None
    assert naive == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)


def test_parse_utc_timestamp_blank_is_absent() -> None:
    assert parse_utc_timestamp(None, field="createdAt") is None
    assert parse_utc_timestamp("   ", field="createdAt") is None


def test_parse_utc_timestamp_rejects_garbage() -> None:
    with pytest.raises(InvalidTimestamp) as exc:
        parse_utc_timestamp("yesterday-ish", field="createdAt")
    assert exc.value.field == "createdAt"
    assert isinstance(exc.value, IngestValidationError)


def test_advisory_timestamp_swallows_invalid_values() -> None:
    assert parse_advisory_timestamp("not a date") is None
    assert parse_advisory_timestamp("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, tzinfo=UTC)


def test_compute_local_date_uses_fixed_timezone() -> None:
    # UTC-3: 02:00Z on Jan 1st is still Dec 31st locally.
    assert compute_local_date(datetime(2024, 1, 1, 2, 0, tzinfo=UTC), tz_name=TZ) == date(2023, 12, 31)
    assert compute_local_date(datetime(2024, 1, 1, 3, 0, tzinfo=UTC), tz_name=TZ) == date(2024, 1, 1)


def test_build_case_id_is_href_plus_millisecond_utc_instant() -> None:
    opened = datetime(2024, 3, 1, 10, 0, 0, 123456, tzinfo=UTC)
    case_id = build_case_id(conversation_href="https://chat/abc", opened_at=opened)
    assert case_id == "https://chat/abc::2024-03-01T10:00:00.123Z"


def test_parse_conversation_opened_requires_team() -> None:
    body = {"source": "whatsapp", "href": "https://chat/abc", "contact": {"team": {"uuid": "t-1"}}}
    with pytest.raises(MissingRequiredField) as exc:
        parse_conversation_opened(body)
    assert exc.value.field == "contact.team.name"

    with pytest.raises(MissingRequiredField) as exc:
        parse_conversation_opened({"source": "whatsapp", "href": "https://chat/abc"})
    assert exc.value.field == "contact.team.uuid"

    with pytest.raises(MissingRequiredField) as exc:
        parse_conversation_opened({"source": "whatsapp", "contact": {"team": {"uuid": "t", "name": "n"}}})
    assert exc.value.field == "href"


def test_parse_conversation_opened_keeps_advisory_fields() -> None:
    opened = parse_conversation_opened(
        {
            "source": "whatsapp",
            "href": "https://chat/abc",
            "createdAt": "garbage",
            "contact": {"team": {"uuid": "t-1", "name": "Sales"}, "assignedUser": "ana@example.com"},
        }
    )
    assert opened.conversation_href == "https://chat/abc"
    assert opened.team.uuid == "t-1"
    assert opened.team.name == "Sales"
    assert opened.assigned_agent == "ana@example.com"
    assert opened.payload_created_at is None


def test_parse_message_created_resolves_conversation_href_in_order() -> None:
    base = {"uuid": "m-1", "status": "received", "channel": "whatsapp"}

    full = parse_message_created(
        {**base, "contact": {"conversationHref": "conv", "href": "contact-href", "uuid": "c-1"}}
    )
    assert full.conversation_href == "conv"

    no_conv = parse_message_created({**base, "contact": {"href": "contact-href", "uuid": "c-1"}})
    assert no_conv.conversation_href == "contact-href"

    only_uuid = parse_message_created({**base, "contact": {"uuid": "c-1"}})
    assert only_uuid.conversation_href == "c-1"

    bare = parse_message_created(base)
    assert bare.conversation_href == "m-1"
    assert bare.status == MessageStatus.received
    assert bare.created_at is None
    assert bare.team is None


def test_parse_message_created_rejects_missing_and_unknown_fields() -> None:
    with pytest.raises(MissingRequiredField) as exc:
        parse_message_created({"status": "sent", "channel": "whatsapp"})
    assert exc.value.field == "uuid"

    with pytest.raises(MissingRequiredField) as exc:
        parse_message_created({"uuid": "m-1", "channel": "whatsapp"})
    assert exc.value.field == "status"

    with pytest.raises(MissingRequiredField) as exc:
        parse_message_created({"uuid": "m-1", "status": "sent"})
    assert exc.value.field == "channel"

    with pytest.raises(IngestValidationError) as exc:
        parse_message_created({"uuid": "m-1", "status": "deleted", "channel": "whatsapp"})
    assert exc.value.field == "status"

    with pytest.raises(InvalidTimestamp):
        parse_message_created(
            {"uuid": "m-1", "status": "sent", "channel": "whatsapp", "createdAt": "soon"}
        )


def test_parse_message_created_drops_partial_team() -> None:
    msg = parse_message_created(
        {
            "uuid": "m-1",
            "status": "sent",
            "channel": "whatsapp",
            "contact": {"team": {"uuid": "t-1"}, "source": "whatsapp"},
        }
    )
    assert msg.team is None
    assert msg.contact_source == "whatsapp"


def test_parse_rejects_non_object_payload() -> None:
    with pytest.raises(IngestValidationError) as exc:
        parse_conversation_closed(["not", "an", "object"])
    assert exc.value.field == "payload"


def test_parse_conversation_closed() -> None:
    closed = parse_conversation_closed(
        {"source": "whatsapp", "href": "https://chat/abc", "closedAt": "2024-03-01T10:10:00Z"}
    )
    assert closed.conversation_href == "https://chat/abc"
    assert closed.payload_closed_at == datetime(2024, 3, 1, 10, 10, tzinfo=UTC)

    with pytest.raises(MissingRequiredField):
        parse_conversation_closed({"source": "whatsapp"})
