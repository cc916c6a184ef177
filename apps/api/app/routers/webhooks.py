from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.security import webhook_secret_matches
from app.db.session import get_session
from app.models.enums import IgnoreReason
from app.schemas.webhooks import WebhookAck, WebhookEnvelope
from app.services.ingest.errors import IngestValidationError, TransientStoreFailure
from app.services.ingest.orchestrator import ingest_event

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/callbell", response_model=WebhookAck, response_model_exclude_none=True)
def callbell_webhook(
    request: Request,
    body: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
) -> WebhookAck:
    settings = get_settings()
    if not webhook_secret_matches(request.headers.get(settings.WEBHOOK_SECRET_HEADER)):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")

    envelope = WebhookEnvelope.model_validate(body)
    try:
        result = ingest_event(
            session=session,
            event_name=envelope.event,
            body=envelope.event_body(),
            raw_body=body,
        )
    except IngestValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_payload", "field": e.field, "message": str(e)},
        ) from e
    except TransientStoreFailure as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="store unavailable",
        ) from e

    if result.reason == IgnoreReason.unsupported_event:
        return WebhookAck(status="ignored", reason=result.reason.value)
    return WebhookAck(status="ok", result=result.as_dict())
