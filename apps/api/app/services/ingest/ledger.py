from __future__ import annotations

import enum
from datetime import datetime, timedelta

import orjson
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.models.enums import MessageStatus


class LedgerOutcome(enum.StrEnum):
    accepted = "accepted"
    deduplicated = "deduplicated"


def record_message_if_new(
    *,
    session: Session,
    message_uuid: str,
    conversation_href: str,
    status: MessageStatus,
    channel: str,
    created_at: datetime,
    received_at: datetime,
    raw_payload: object,
) -> LedgerOutcome:
    row = session.execute(
        text(
            """
            INSERT INTO messages_raw (
              message_uuid,
              conversation_href,
              status,
              channel,
              created_at_utc,
              received_at,
              payload
            )
            VALUES (
              :message_uuid,
              :conversation_href,
              CAST(:status AS message_status),
              :channel,
              :created_at,
              :received_at,
              CAST(:payload AS jsonb)
            )
            ON CONFLICT (message_uuid) DO NOTHING
            RETURNING message_uuid
            """
        ),
        {
            "message_uuid": message_uuid,
            "conversation_href": conversation_href,
            "status": status.value,
            "channel": channel,
            "created_at": created_at,
            "received_at": received_at,
            "payload": _payload_json(raw_payload),
        },
    ).fetchone()
    if row is None:
        return LedgerOutcome.deduplicated
    return LedgerOutcome.accepted


def lock_conversation(*, session: Session, conversation_href: str) -> None:
    # Transaction-scoped; released on commit/rollback. Serializes opens of one conversation
    # across processes so the windowed check and the insert cannot interleave.
    session.execute(
        text("SELECT pg_advisory_xact_lock(hashtextextended(:key, 0))"),
        {"key": f"conversation_open:{conversation_href}"},
    )


def has_recent_open(
    *,
    session: Session,
    conversation_href: str,
    opened_at: datetime,
    window_seconds: int,
) -> bool:
    row = session.execute(
        text(
            """
            SELECT case_id
            FROM conversation_cases
            WHERE conversation_href = :conversation_href
              AND opened_received_at >= :window_start
              AND opened_received_at <= :window_end
            ORDER BY opened_received_at DESC
            LIMIT 1
            """
        ),
        {
            "conversation_href": conversation_href,
            "window_start": opened_at - timedelta(seconds=window_seconds),
            "window_end": opened_at + timedelta(seconds=window_seconds),
        },
    ).fetchone()
    return row is not None


def _payload_json(raw_payload: object) -> str:
    return orjson.dumps(raw_payload, default=str).decode("utf-8")
