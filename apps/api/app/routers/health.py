from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.session import get_session

router = APIRouter(tags=["health"])

# Ingest cannot run until every table it writes exists.
_REQUIRED_TABLES = (
    "messages_raw",
    "conversation_cases",
    "conversation_day_metrics",
    "team_day_metrics",
    "agent_day_metrics",
)


@router.get("/healthz")
def healthz() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "version": settings.VERSION,
        "tracked_channel": settings.TRACKED_CHANNEL,
        "local_timezone": settings.LOCAL_TIMEZONE,
    }


@router.get("/readyz")
def readyz(session: Session = Depends(get_session)) -> dict[str, str]:
    try:
        present = set(
            session.execute(
                text(
                    """
                    SELECT table_name
                    FROM information_schema.tables
                    WHERE table_schema = current_schema()
                      AND table_name = ANY(:names)
                    """
                ),
                {"names": list(_REQUIRED_TABLES)},
            ).scalars()
        )
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="database not ready",
        ) from e

    missing = [name for name in _REQUIRED_TABLES if name not in present]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "schema_not_migrated", "missing_tables": missing},
        )
    return {"status": "ready"}
