from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import text
from sqlalchemy.orm import Session


@dataclass(frozen=True)
class InboundRollup:
    first_inbound_of_day: bool


@dataclass(frozen=True)
class OutboundRollup:
    newly_answered_same_day: bool


def apply_inbound(
    *,
    session: Session,
    conversation_href: str,
    local_date: date,
    received_at: datetime,
    team_uuid: str | None,
    team_name: str | None,
    agent: str | None = None,
) -> InboundRollup:
    row = (
        session.execute(
            text(
                """
                INSERT INTO conversation_day_metrics (
                  conversation_href,
                  local_date,
                  team_uuid,
                  team_name,
                  inbound_count_day,
                  first_inbound_at,
                  created_at,
                  updated_at
                )
                VALUES (
                  :conversation_href,
                  :local_date,
                  :team_uuid,
                  :team_name,
                  1,
                  :received_at,
                  now(),
                  now()
                )
                ON CONFLICT (conversation_href, local_date) DO UPDATE SET
                  inbound_count_day = conversation_day_metrics.inbound_count_day + 1,
                  first_inbound_at = LEAST(
                    conversation_day_metrics.first_inbound_at,
                    EXCLUDED.first_inbound_at
                  ),
                  team_uuid = COALESCE(conversation_day_metrics.team_uuid, EXCLUDED.team_uuid),
                  team_name = COALESCE(conversation_day_metrics.team_name, EXCLUDED.team_name),
                  updated_at = now()
                RETURNING inbound_count_day
                """
            ),
            {
                "conversation_href": conversation_href,
                "local_date": local_date,
                "team_uuid": team_uuid,
                "team_name": team_name,
                "received_at": received_at,
            },
        )
        .mappings()
        .one()
    )
    first_inbound = int(row["inbound_count_day"]) == 1

    if team_uuid and team_name:
        # The conversation counts once per local day, on the first inbound that names a team.
        team_inc = _claim_conversation_credit(
            session=session,
            conversation_href=conversation_href,
            local_date=local_date,
            column="team_conversation_credited",
        )
        session.execute(
            text(
                """
                INSERT INTO team_day_metrics (
                  team_uuid,
                  local_date,
                  team_name,
                  inbound_count,
                  conversations,
                  created_at,
                  updated_at
                )
                VALUES (:team_uuid, :local_date, :team_name, 1, :conversation_inc, now(), now())
                ON CONFLICT (team_uuid, local_date) DO UPDATE SET
                  inbound_count = team_day_metrics.inbound_count + 1,
                  conversations = team_day_metrics.conversations + EXCLUDED.conversations,
                  team_name = EXCLUDED.team_name,
                  updated_at = now()
                """
            ),
            {
                "team_uuid": team_uuid,
                "local_date": local_date,
                "team_name": team_name,
                "conversation_inc": 1 if team_inc else 0,
            },
        )

    if agent:
        agent_inc = _claim_conversation_credit(
            session=session,
            conversation_href=conversation_href,
            local_date=local_date,
            column="agent_conversation_credited",
        )
        session.execute(
            text(
                """
                INSERT INTO agent_day_metrics (
                  agent,
                  local_date,
                  inbound_count,
                  conversations,
                  created_at,
                  updated_at
                )
                VALUES (:agent, :local_date, 1, :conversation_inc, now(), now())
                ON CONFLICT (agent, local_date) DO UPDATE SET
                  inbound_count = agent_day_metrics.inbound_count + 1,
                  conversations = agent_day_metrics.conversations + EXCLUDED.conversations,
                  updated_at = now()
                """
            ),
            {"agent": agent, "local_date": local_date, "conversation_inc": 1 if agent_inc else 0},
        )

    return InboundRollup(first_inbound_of_day=first_inbound)


def apply_outbound(
    *,
    session: Session,
    conversation_href: str,
    local_date: date,
    sent_at: datetime,
    team_uuid: str | None,
    team_name: str | None,
    agent: str | None = None,
) -> OutboundRollup:
    # Lock the day row (if any) so the answered transition is observed exactly once.
    prev = (
        session.execute(
            text(
                """
                SELECT answered_same_day
                FROM conversation_day_metrics
                WHERE conversation_href = :conversation_href
                  AND local_date = :local_date
                FOR UPDATE
                """
            ),
            {"conversation_href": conversation_href, "local_date": local_date},
        )
        .mappings()
        .fetchone()
    )
    was_answered = bool(prev["answered_same_day"]) if prev is not None else False

    row = (
        session.execute(
            text(
                """
                INSERT INTO conversation_day_metrics (
                  conversation_href,
                  local_date,
                  team_uuid,
                  team_name,
                  outbound_count_day,
                  created_at,
                  updated_at
                )
                VALUES (:conversation_href, :local_date, :team_uuid, :team_name, 1, now(), now())
                ON CONFLICT (conversation_href, local_date) DO UPDATE SET
                  outbound_count_day = conversation_day_metrics.outbound_count_day + 1,
                  first_outbound_after_inbound_at = CASE
                    WHEN conversation_day_metrics.first_outbound_after_inbound_at IS NULL
                     AND conversation_day_metrics.first_inbound_at IS NOT NULL
                     AND CAST(:sent_at AS timestamptz) > conversation_day_metrics.first_inbound_at
                    THEN CAST(:sent_at AS timestamptz)
                    ELSE conversation_day_metrics.first_outbound_after_inbound_at
                  END,
                  answered_same_day = CASE
                    WHEN conversation_day_metrics.first_outbound_after_inbound_at IS NULL
                     AND conversation_day_metrics.first_inbound_at IS NOT NULL
                     AND CAST(:sent_at AS timestamptz) > conversation_day_metrics.first_inbound_at
                    THEN true
                    ELSE conversation_day_metrics.answered_same_day
                  END,
                  team_uuid = COALESCE(conversation_day_metrics.team_uuid, EXCLUDED.team_uuid),
                  team_name = COALESCE(conversation_day_metrics.team_name, EXCLUDED.team_name),
                  updated_at = now()
                RETURNING answered_same_day
                """
            ),
            {
                "conversation_href": conversation_href,
                "local_date": local_date,
                "team_uuid": team_uuid,
                "team_name": team_name,
                "sent_at": sent_at,
            },
        )
        .mappings()
        .one()
    )
    newly_answered = bool(row["answered_same_day"]) and not was_answered

    if team_uuid and team_name:
        # Answers are only credited to a team that already tracked a conversation that day.
        session.execute(
            text(
                """
                INSERT INTO team_day_metrics (
                  team_uuid,
                  local_date,
                  team_name,
                  outbound_count,
                  created_at,
                  updated_at
                )
                VALUES (:team_uuid, :local_date, :team_name, 1, now(), now())
                ON CONFLICT (team_uuid, local_date) DO UPDATE SET
                  outbound_count = team_day_metrics.outbound_count + 1,
                  answered_count = CASE
                    WHEN CAST(:newly_answered AS boolean) AND team_day_metrics.conversations > 0
                    THEN team_day_metrics.answered_count + 1
                    ELSE team_day_metrics.answered_count
                  END,
                  team_name = EXCLUDED.team_name,
                  updated_at = now()
                """
            ),
            {
                "team_uuid": team_uuid,
                "local_date": local_date,
                "team_name": team_name,
                "newly_answered": newly_answered,
            },
        )

    if agent:
        session.execute(
            text(
                """
                INSERT INTO agent_day_metrics (
                  agent,
                  local_date,
                  outbound_count,
                  created_at,
                  updated_at
                )
                VALUES (:agent, :local_date, 1, now(), now())
                ON CONFLICT (agent, local_date) DO UPDATE SET
                  outbound_count = agent_day_metrics.outbound_count + 1,
                  answered_count = CASE
                    WHEN CAST(:newly_answered AS boolean) AND agent_day_metrics.conversations > 0
                    THEN agent_day_metrics.answered_count + 1
                    ELSE agent_day_metrics.answered_count
                  END,
                  updated_at = now()
                """
            ),
            {"agent": agent, "local_date": local_date, "newly_answered": newly_answered},
        )

    return OutboundRollup(newly_answered_same_day=newly_answered)


_CREDIT_COLUMNS = frozenset({"team_conversation_credited", "agent_conversation_credited"})


def _claim_conversation_credit(
    *,
    session: Session,
    conversation_href: str,
    local_date: date,
    column: str,
) -> bool:
    # The day row is already locked by this transaction's upsert.
    if column not in _CREDIT_COLUMNS:
        raise ValueError(f"Unknown credit column: {column}")
    row = session.execute(
        text(
            f"""
            UPDATE conversation_day_metrics
            SET {column} = true,
                updated_at = now()
            WHERE conversation_href = :conversation_href
              AND local_date = :local_date
              AND {column} = false
            RETURNING conversation_href
            """
        ),
        {"conversation_href": conversation_href, "local_date": local_date},
    ).fetchone()
    return row is not None
