from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.orm import Session

from app.models.cases import ConversationCase
from app.models.enums import CaseCloseReason, CaseState, IgnoreReason
from app.services.ingest.errors import MissingRequiredField
from app.services.ingest.normalize import build_case_id, compute_local_date
from app.services.ingest.types import IngestResult

# Elapsed whole seconds between a bound instant and the case's opening receipt.
_ELAPSED_SQL = "GREATEST(0, FLOOR(EXTRACT(EPOCH FROM (CAST({param} AS timestamptz) - c.opened_received_at))))::integer"


@dataclass(frozen=True)
class OpenedCase:
    case_id: str
    superseded_case_ids: list[str]


@dataclass(frozen=True)
class AnsweredCase:
    case_id: str
    first_response_seconds: int


def case_state(case: ConversationCase) -> CaseState:
    if case.is_closed:
        return CaseState.closed_answered if case.answered else CaseState.closed_unanswered
    return CaseState.open_answered if case.answered else CaseState.open_unanswered


def open_case(
    *,
    session: Session,
    conversation_href: str | None,
    team_uuid: str | None,
    team_name: str | None,
    assigned_agent: str | None,
    opened_at: datetime,
    payload_created_at: datetime | None,
    tz_name: str,
) -> OpenedCase | None:
    """Insert a new open case for the conversation.

    Team ownership is mandatory: an open without it is rejected rather than stored
    unattributed. A case of the same conversation that is still open is closed as
    ``superseded`` first, so a conversation never has two open cases. Returns None
    when a case with the same id already exists (same conversation, same instant).
    """
    if not conversation_href:
        raise MissingRequiredField(field="href")
    if not team_uuid:
        raise MissingRequiredField(field="contact.team.uuid")
    if not team_name:
        raise MissingRequiredField(field="contact.team.name")

    case_id = build_case_id(conversation_href=conversation_href, opened_at=opened_at)
    superseded = (
        session.execute(
            text(
                f"""
                UPDATE conversation_cases AS c
                SET is_closed = true,
                    closed_received_at = :opened_at,
                    duration_seconds = {_ELAPSED_SQL.format(param=":opened_at")},
                    close_reason = 'superseded',
                    updated_at = now()
                WHERE c.conversation_href = :conversation_href
                  AND c.is_closed = false
                  AND c.case_id <> :case_id
                RETURNING c.case_id
                """
            ),
            {"conversation_href": conversation_href, "opened_at": opened_at, "case_id": case_id},
        )
        .scalars()
        .all()
    )

    row = session.execute(
        text(
            """
            INSERT INTO conversation_cases (
              case_id,
              conversation_href,
              team_uuid,
              team_name,
              assigned_agent,
              opened_received_at,
              opened_payload_created_at,
              local_date,
              created_at,
              updated_at
            )
            VALUES (
              :case_id,
              :conversation_href,
              :team_uuid,
              :team_name,
              :assigned_agent,
              :opened_at,
              :payload_created_at,
              :local_date,
              now(),
              now()
            )
            ON CONFLICT (case_id) DO NOTHING
            RETURNING case_id
            """
        ),
        {
            "case_id": case_id,
            "conversation_href": conversation_href,
            "team_uuid": team_uuid,
            "team_name": team_name,
            "assigned_agent": assigned_agent,
            "opened_at": opened_at,
            "payload_created_at": payload_created_at,
            "local_date": compute_local_date(opened_at, tz_name=tz_name),
        },
    ).fetchone()
    if row is None:
        return None
    return OpenedCase(case_id=str(row[0]), superseded_case_ids=[str(v) for v in superseded])


def record_outbound_and_maybe_answer(
    *,
    session: Session,
    conversation_href: str,
    sent_at: datetime,
) -> AnsweredCase | None:
    # Candidate selection and update run as one statement; the outer predicates are
    # re-checked against the locked row so two concurrent outbounds answer at most once.
    row = (
        session.execute(
            text(
                f"""
                UPDATE conversation_cases AS c
                SET answered = true,
                    first_response_at = :sent_at,
                    first_response_seconds = {_ELAPSED_SQL.format(param=":sent_at")},
                    updated_at = now()
                FROM (
                  SELECT case_id
                  FROM conversation_cases
                  WHERE conversation_href = :conversation_href
                    AND is_closed = false
                    AND answered = false
                    AND opened_received_at <= :sent_at
                  ORDER BY opened_received_at DESC, case_id DESC
                  LIMIT 1
                  FOR UPDATE
                ) AS candidate
                WHERE c.case_id = candidate.case_id
                  AND c.is_closed = false
                  AND c.answered = false
                RETURNING c.case_id, c.first_response_seconds
                """
            ),
            {"conversation_href": conversation_href, "sent_at": sent_at},
        )
        .mappings()
        .fetchone()
    )
    if row is None:
        return None
    return AnsweredCase(
        case_id=str(row["case_id"]),
        first_response_seconds=int(row["first_response_seconds"]),
    )


def close_case(
    *,
    session: Session,
    conversation_href: str,
    closed_at: datetime,
    payload_closed_at: datetime | None,
) -> IngestResult:
    row = (
        session.execute(
            text(
                f"""
                UPDATE conversation_cases AS c
                SET is_closed = true,
                    closed_received_at = :closed_at,
                    closed_payload_closed_at = :payload_closed_at,
                    duration_seconds = {_ELAPSED_SQL.format(param=":closed_at")},
                    close_reason = CAST(:close_reason AS case_close_reason),
                    updated_at = now()
                FROM (
                  SELECT case_id
                  FROM conversation_cases
                  WHERE conversation_href = :conversation_href
                    AND is_closed = false
                  ORDER BY opened_received_at DESC, case_id DESC
                  LIMIT 1
                  FOR UPDATE
                ) AS candidate
                WHERE c.case_id = candidate.case_id
                  AND c.is_closed = false
                RETURNING c.case_id
                """
            ),
            {
                "conversation_href": conversation_href,
                "closed_at": closed_at,
                "payload_closed_at": payload_closed_at,
                "close_reason": CaseCloseReason.closed_event.value,
            },
        )
        .mappings()
        .fetchone()
    )
    if row is None:
        return IngestResult.skipped(IgnoreReason.no_open_case)
    return IngestResult.accepted()
