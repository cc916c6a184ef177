from __future__ import annotations

from app.models.base import Base as Base  # noqa: F401
from app.models.cases import ConversationCase  # noqa: F401
from app.models.enums import (  # noqa: F401
    CaseCloseReason,
    CaseState,
    IgnoreReason,
    MessageStatus,
    WebhookEvent,
)
from app.models.ledger import MessageRaw  # noqa: F401
from app.models.rollups import (  # noqa: F401
    AgentDayMetric,
    ConversationDayMetric,
    TeamDayMetric,
)
