"""Per-delivery ingestion: classify, filter, dedupe, then update cases and rollups.

Every accepted delivery is applied in exactly one transaction on the caller's
session: it either commits the ledger row, case change and rollup counters
together, or rolls all of them back. Nothing here retries; store outages surface
as ``TransientStoreFailure`` for the transport to redeliver.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.metrics import (
    observe_case_transition,
    observe_first_response,
    observe_ingest_outcome,
)
from app.core.middleware import log_event
from app.models.enums import IgnoreReason, MessageStatus, WebhookEvent
from app.services.cases import close_case, open_case, record_outbound_and_maybe_answer
from app.services.ingest.errors import IngestValidationError, TransientStoreFailure
from app.services.ingest.ledger import (
    LedgerOutcome,
    has_recent_open,
    lock_conversation,
    record_message_if_new,
)
from app.services.ingest.normalize import compute_local_date, first_present
from app.services.ingest.parser import (
    load_conversation_closed,
    load_conversation_opened,
    load_message_created,
    parse_conversation_closed,
    parse_conversation_opened,
    parse_message_created,
)
from app.services.ingest.types import (
    ConversationClosed,
    ConversationOpened,
    IngestResult,
    MessageCreated,
)
from app.services.rollups import apply_inbound, apply_outbound


def ingest_event(
    *,
    session: Session,
    event_name: str | None,
    body: Any,
    raw_body: Any = None,
    received_at: datetime | None = None,
) -> IngestResult:
    # Deliveries without an event name are bare message payloads.
    kind_raw = event_name or WebhookEvent.message_created.value
    try:
        kind = WebhookEvent(kind_raw)
    except ValueError:
        result = IngestResult.skipped(IgnoreReason.unsupported_event)
        _record_outcome(kind_raw, result)
        return result

    settings = get_settings()
    now = received_at or datetime.now(UTC)
    raw = raw_body if raw_body is not None else body

    try:
        work = _prepare(kind=kind, body=body, raw=raw, settings=settings, received_at=now)
    except IngestValidationError as e:
        observe_ingest_outcome(event=kind.value, outcome="rejected")
        log_event("ingest.event.rejected", webhook_event=kind.value, field=e.field, error=str(e))
        raise

    if isinstance(work, IngestResult):
        _record_outcome(kind.value, work)
        return work

    try:
        result = work(session)
    except (OperationalError, PoolTimeoutError) as e:
        session.rollback()
        observe_ingest_outcome(event=kind.value, outcome="store_unavailable")
        log_event("ingest.event.failed", webhook_event=kind.value, error=type(e).__name__)
        raise TransientStoreFailure("Store unavailable while ingesting event") from e
    except DBAPIError as e:
        session.rollback()
        if e.connection_invalidated:
            observe_ingest_outcome(event=kind.value, outcome="store_unavailable")
            raise TransientStoreFailure("Store connection lost while ingesting event") from e
        raise
    except Exception:
        session.rollback()
        raise
    session.commit()

    _record_outcome(kind.value, result)
    return result


def _prepare(
    *,
    kind: WebhookEvent,
    body: Any,
    raw: Any,
    settings: Settings,
    received_at: datetime,
) -> IngestResult | Callable[[Session], IngestResult]:
    """Filter, then validate, outside the transaction; return the transactional step.

    Events from an untracked channel are ignored before any required field is checked.
    """
    tracked = settings.TRACKED_CHANNEL

    if kind == WebhookEvent.conversation_opened:
        opened_in = load_conversation_opened(body)
        if first_present(opened_in.source) != tracked:
            return IngestResult.skipped(IgnoreReason.non_whatsapp_source)
        opened = parse_conversation_opened(opened_in)
        return lambda session: _apply_opened(
            session=session, event=opened, settings=settings, received_at=received_at
        )

    if kind == WebhookEvent.conversation_closed:
        closed_in = load_conversation_closed(body)
        if first_present(closed_in.source) != tracked:
            return IngestResult.skipped(IgnoreReason.non_whatsapp_source)
        closed = parse_conversation_closed(closed_in)
        return lambda session: _apply_closed(session=session, event=closed, received_at=received_at)

    message_in = load_message_created(body)
    if first_present(message_in.channel) != tracked:
        return IngestResult.skipped(IgnoreReason.non_whatsapp_channel)
    contact_source = first_present(message_in.contact.source) if message_in.contact else None
    if contact_source and contact_source != tracked:
        return IngestResult.skipped(IgnoreReason.non_whatsapp_source)
    message = parse_message_created(message_in)
    return lambda session: _apply_message(
        session=session, event=message, raw=raw, settings=settings, received_at=received_at
    )


def _apply_opened(
    *,
    session: Session,
    event: ConversationOpened,
    settings: Settings,
    received_at: datetime,
) -> IngestResult:
    lock_conversation(session=session, conversation_href=event.conversation_href)
    if has_recent_open(
        session=session,
        conversation_href=event.conversation_href,
        opened_at=received_at,
        window_seconds=settings.OPEN_DEDUP_WINDOW_SECONDS,
    ):
        return IngestResult.duplicate()

    opened = open_case(
        session=session,
        conversation_href=event.conversation_href,
        team_uuid=event.team.uuid,
        team_name=event.team.name,
        assigned_agent=event.assigned_agent,
        opened_at=received_at,
        payload_created_at=event.payload_created_at,
        tz_name=settings.LOCAL_TIMEZONE,
    )
    if opened is None:
        return IngestResult.duplicate()
    observe_case_transition(transition="opened")
    if opened.superseded_case_ids:
        log_event(
            "case.superseded",
            conversation_href=event.conversation_href,
            case_ids=opened.superseded_case_ids,
            new_case_id=opened.case_id,
        )
        observe_case_transition(transition="superseded", count=len(opened.superseded_case_ids))
    return IngestResult.accepted()


def _apply_message(
    *,
    session: Session,
    event: MessageCreated,
    raw: Any,
    settings: Settings,
    received_at: datetime,
) -> IngestResult:
    message_at = event.created_at or received_at
    outcome = record_message_if_new(
        session=session,
        message_uuid=event.message_uuid,
        conversation_href=event.conversation_href,
        status=event.status,
        channel=event.channel,
        created_at=message_at,
        received_at=received_at,
        raw_payload=raw,
    )
    if outcome == LedgerOutcome.deduplicated:
        return IngestResult.duplicate()

    local_date = compute_local_date(message_at, tz_name=settings.LOCAL_TIMEZONE)
    team_uuid = event.team.uuid if event.team else None
    team_name = event.team.name if event.team else None

    if event.status == MessageStatus.received:
        apply_inbound(
            session=session,
            conversation_href=event.conversation_href,
            local_date=local_date,
            received_at=message_at,
            team_uuid=team_uuid,
            team_name=team_name,
            agent=event.assigned_agent,
        )
        return IngestResult.accepted()

    apply_outbound(
        session=session,
        conversation_href=event.conversation_href,
        local_date=local_date,
        sent_at=message_at,
        team_uuid=team_uuid,
        team_name=team_name,
        agent=event.assigned_agent,
    )
    answered = record_outbound_and_maybe_answer(
        session=session,
        conversation_href=event.conversation_href,
        sent_at=message_at,
    )
    if answered is not None:
        log_event(
            "case.answered",
            case_id=answered.case_id,
            first_response_seconds=answered.first_response_seconds,
        )
        observe_case_transition(transition="answered")
        observe_first_response(seconds=answered.first_response_seconds)
    return IngestResult.accepted()


def _apply_closed(
    *,
    session: Session,
    event: ConversationClosed,
    received_at: datetime,
) -> IngestResult:
    result = close_case(
        session=session,
        conversation_href=event.conversation_href,
        closed_at=received_at,
        payload_closed_at=event.payload_closed_at,
    )
    if result.inserted:
        observe_case_transition(transition="closed")
    return result


def _record_outcome(event: str, result: IngestResult) -> None:
    observe_ingest_outcome(event=event, outcome=result.outcome)
    log_event(
        "ingest.event.processed",
        webhook_event=event,
        outcome=result.outcome,
        reason=result.reason.value if result.reason else None,
    )
