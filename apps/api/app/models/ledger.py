from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import MessageStatus


class MessageRaw(Base):
    """Write-once ledger of accepted message events, keyed by the upstream message uuid."""

    __tablename__ = "messages_raw"

    message_uuid: Mapped[str] = mapped_column(Text, primary_key=True)
    conversation_href: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[MessageStatus] = mapped_column(
        Enum(MessageStatus, name="message_status", create_type=False), nullable=False
    )
    channel: Mapped[str] = mapped_column(Text, nullable=False)
    created_at_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
