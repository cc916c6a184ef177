from __future__ import annotations

import base64
import hmac
import os

from app.core.config import get_settings


def new_random_token(*, nbytes: int = 32) -> str:
    raw = os.urandom(nbytes)
    # URL-safe base64 without padding to keep headers compact.
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def webhook_secret_matches(presented: str | None) -> bool:
    settings = get_settings()
    expected = settings.WEBHOOK_SECRET
    if not expected:
        return True
    if not presented:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))
