from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class ConversationDayMetric(Base):
    __tablename__ = "conversation_day_metrics"

    conversation_href: Mapped[str] = mapped_column(Text, primary_key=True)
    local_date: Mapped[date] = mapped_column(Date, primary_key=True)
    team_uuid: Mapped[str | None] = mapped_column(Text, nullable=True)
    team_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    inbound_count_day: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    outbound_count_day: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    first_inbound_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    first_outbound_after_inbound_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    answered_same_day: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    # Set once the day's conversation has been counted for a team / an agent.
    team_conversation_credited: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    agent_conversation_credited: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))


class TeamDayMetric(Base):
    __tablename__ = "team_day_metrics"

    team_uuid: Mapped[str] = mapped_column(Text, primary_key=True)
    local_date: Mapped[date] = mapped_column(Date, primary_key=True)
    team_name: Mapped[str] = mapped_column(Text, nullable=False)

    inbound_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    outbound_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    conversations: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    answered_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))


class AgentDayMetric(Base):
    __tablename__ = "agent_day_metrics"

    agent: Mapped[str] = mapped_column(Text, primary_key=True)
    local_date: Mapped[date] = mapped_column(Date, primary_key=True)

    inbound_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    outbound_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    conversations: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    answered_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))
