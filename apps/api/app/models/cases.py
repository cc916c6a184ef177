from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Enum, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import CaseCloseReason


class ConversationCase(Base):
    __tablename__ = "conversation_cases"

    case_id: Mapped[str] = mapped_column(Text, primary_key=True)
    conversation_href: Mapped[str] = mapped_column(Text, nullable=False)
    team_uuid: Mapped[str | None] = mapped_column(Text, nullable=True)
    team_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Ingestion-side clock; all latency math uses these columns.
    opened_received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Upstream-reported, advisory only.
    opened_payload_created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    local_date: Mapped[date] = mapped_column(Date, nullable=False)

    answered: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    first_response_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    first_response_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    closed_received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_payload_closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    close_reason: Mapped[CaseCloseReason | None] = mapped_column(
        Enum(CaseCloseReason, name="case_close_reason", create_type=False), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))
