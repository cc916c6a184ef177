from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models import MessageRaw, MessageStatus
from app.services.cases import open_case
from app.services.ingest.ledger import LedgerOutcome, has_recent_open, record_message_if_new

TZ = "America/Argentina/Tucuman"


def test_ledger_accepts_once_then_deduplicates(db_session: Session, conversation_href: str) -> None:
    message_uuid = f"msg-{uuid.uuid4().hex}"
    at = datetime(2024, 3, 1, 10, 0, 5, tzinfo=UTC)
    payload = {"uuid": message_uuid, "status": "received", "text": "hola", "nested": {"a": [1, 2]}}

    first = record_message_if_new(
        session=db_session,
        message_uuid=message_uuid,
        conversation_href=conversation_href,
        status=MessageStatus.received,
        channel="whatsapp",
        created_at=at,
        received_at=at,
        raw_payload=payload,
    )
    second = record_message_if_new(
        session=db_session,
        message_uuid=message_uuid,
        conversation_href=conversation_href,
        status=MessageStatus.received,
        channel="whatsapp",
        created_at=at,
        received_at=datetime(2024, 3, 1, 10, 5, tzinfo=UTC),
        raw_payload={"uuid": message_uuid, "text": "changed"},
    )
    db_session.commit()

    assert first == LedgerOutcome.accepted
    assert second == LedgerOutcome.deduplicated

    count = db_session.execute(
        select(func.count()).select_from(MessageRaw).where(MessageRaw.message_uuid == message_uuid)
    ).scalar_one()
    assert count == 1

    row = db_session.get(MessageRaw, message_uuid)
    assert row is not None
    assert row.conversation_href == conversation_href
    assert row.status == MessageStatus.received
    assert row.created_at_utc == at
    assert row.received_at == at
    # First write wins; redelivered payloads never overwrite the ledger.
    assert row.payload == payload


def test_recent_open_window_is_inclusive_on_both_sides(
    db_session: Session, conversation_href: str, team: dict[str, str]
) -> None:
    opened_at = datetime(2024, 3, 1, 10, 0, 0, tzinfo=UTC)
    opened = open_case(
        session=db_session,
        conversation_href=conversation_href,
        team_uuid=team["uuid"],
        team_name=team["name"],
        assigned_agent=None,
        opened_at=opened_at,
        payload_created_at=None,
        tz_name=TZ,
    )
    db_session.commit()
    assert opened is not None

    def recent(ts: datetime) -> bool:
        return has_recent_open(
            session=db_session,
            conversation_href=conversation_href,
            opened_at=ts,
            window_seconds=60,
        )

    assert recent(datetime(2024, 3, 1, 10, 0, 30, tzinfo=UTC))
    assert recent(datetime(2024, 3, 1, 10, 1, 0, tzinfo=UTC))
    assert recent(datetime(2024, 3, 1, 9, 59, 0, tzinfo=UTC))
    assert not recent(datetime(2024, 3, 1, 10, 1, 1, tzinfo=UTC))
    assert not recent(datetime(2024, 3, 1, 9, 58, 59, tzinfo=UTC))
    assert not has_recent_open(
        session=db_session,
        conversation_href=f"{conversation_href}-other",
        opened_at=opened_at,
        window_seconds=60,
    )
