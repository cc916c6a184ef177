from __future__ import annotations

import enum


class WebhookEvent(enum.StrEnum):
    conversation_opened = "conversation_opened"
    message_created = "message_created"
    conversation_closed = "conversation_closed"


class MessageStatus(enum.StrEnum):
    received = "received"
    sent = "sent"


class CaseCloseReason(enum.StrEnum):
    closed_event = "closed_event"
    superseded = "superseded"


class IgnoreReason(enum.StrEnum):
    non_whatsapp_source = "non_whatsapp_source"
    non_whatsapp_channel = "non_whatsapp_channel"
    no_open_case = "no_open_case"
    unsupported_event = "unsupported_event"


class CaseState(enum.StrEnum):
    open_unanswered = "open_unanswered"
    open_answered = "open_answered"
    closed_unanswered = "closed_unanswered"
    closed_answered = "closed_answered"
