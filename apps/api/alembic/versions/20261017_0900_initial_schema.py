"""Initial schema (cases, day rollups, message ledger)

Revision ID: 20261017_0900
Revises:
Create Date: 2026-10-17

"""

from __future__ import annotations

from alembic import op

revision = "20261017_0900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
DO $$ BEGIN
  CREATE TYPE message_status AS ENUM ('received','sent');
EXCEPTION WHEN duplicate_object THEN NULL; END $$;
"""
    )
    op.execute(
        """
DO $$ BEGIN
  CREATE TYPE case_close_reason AS ENUM ('closed_event','superseded');
EXCEPTION WHEN duplicate_object THEN NULL; END $$;
"""
    )

    op.execute(
        """
CREATE TABLE IF NOT EXISTS messages_raw (
  message_uuid text PRIMARY KEY,
  conversation_href text NOT NULL,
  status message_status NOT NULL,
  channel text NOT NULL,
  created_at_utc timestamptz NOT NULL,
  received_at timestamptz NOT NULL DEFAULT now(),
  payload jsonb NOT NULL DEFAULT '{}'::jsonb
);
"""
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS messages_raw_conversation_idx "
        "ON messages_raw (conversation_href, created_at_utc);"
    )

    op.execute(
        """
CREATE TABLE IF NOT EXISTS conversation_cases (
  case_id text PRIMARY KEY,
  conversation_href text NOT NULL,
  team_uuid text,
  team_name text,
  assigned_agent text,
  opened_received_at timestamptz NOT NULL,
  opened_payload_created_at timestamptz,
  local_date date NOT NULL,
  answered boolean NOT NULL DEFAULT false,
  first_response_at timestamptz,
  first_response_seconds integer CHECK (first_response_seconds IS NULL OR first_response_seconds >= 0),
  is_closed boolean NOT NULL DEFAULT false,
  closed_received_at timestamptz,
  closed_payload_closed_at timestamptz,
  duration_seconds integer CHECK (duration_seconds IS NULL OR duration_seconds >= 0),
  close_reason case_close_reason,
  created_at timestamptz NOT NULL DEFAULT now(),
  updated_at timestamptz NOT NULL DEFAULT now()
);
"""
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS conversation_cases_href_opened_idx "
        "ON conversation_cases (conversation_href, opened_received_at DESC);"
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS conversation_cases_open_idx "
        "ON conversation_cases (conversation_href, opened_received_at DESC) "
        "WHERE is_closed = false;"
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS conversation_cases_local_date_idx "
        "ON conversation_cases (local_date, team_uuid);"
    )

    op.execute(
        """
CREATE TABLE IF NOT EXISTS conversation_day_metrics (
  conversation_href text NOT NULL,
  local_date date NOT NULL,
  team_uuid text,
  team_name text,
  inbound_count_day integer NOT NULL DEFAULT 0,
  outbound_count_day integer NOT NULL DEFAULT 0,
  first_inbound_at timestamptz,
  first_outbound_after_inbound_at timestamptz,
  answered_same_day boolean NOT NULL DEFAULT false,
  team_conversation_credited boolean NOT NULL DEFAULT false,
  agent_conversation_credited boolean NOT NULL DEFAULT false,
  created_at timestamptz NOT NULL DEFAULT now(),
  updated_at timestamptz NOT NULL DEFAULT now(),
  PRIMARY KEY (conversation_href, local_date)
);
"""
    )

    op.execute(
        """
CREATE TABLE IF NOT EXISTS team_day_metrics (
  team_uuid text NOT NULL,
  local_date date NOT NULL,
  team_name text NOT NULL,
  inbound_count integer NOT NULL DEFAULT 0,
  outbound_count integer NOT NULL DEFAULT 0,
  conversations integer NOT NULL DEFAULT 0,
  answered_count integer NOT NULL DEFAULT 0,
  created_at timestamptz NOT NULL DEFAULT now(),
  updated_at timestamptz NOT NULL DEFAULT now(),
  PRIMARY KEY (team_uuid, local_date)
);
"""
    )

    op.execute(
        """
CREATE TABLE IF NOT EXISTS agent_day_metrics (
  agent text NOT NULL,
  local_date date NOT NULL,
  inbound_count integer NOT NULL DEFAULT 0,
  outbound_count integer NOT NULL DEFAULT 0,
  conversations integer NOT NULL DEFAULT 0,
  answered_count integer NOT NULL DEFAULT 0,
  created_at timestamptz NOT NULL DEFAULT now(),
  updated_at timestamptz NOT NULL DEFAULT now(),
  PRIMARY KEY (agent, local_date)
);
"""
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS agent_day_metrics CASCADE;")
    op.execute("DROP TABLE IF EXISTS team_day_metrics CASCADE;")
    op.execute("DROP TABLE IF EXISTS conversation_day_metrics CASCADE;")
    op.execute("DROP TABLE IF EXISTS conversation_cases CASCADE;")
    op.execute("DROP TABLE IF EXISTS messages_raw CASCADE;")

    op.execute("DROP TYPE IF EXISTS case_close_reason;")
    op.execute("DROP TYPE IF EXISTS message_status;")
