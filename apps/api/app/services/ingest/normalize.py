from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from app.services.ingest.errors import InvalidTimestamp


def parse_utc_timestamp(value: str | None, *, field: str) -> datetime | None:
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError as e:
        raise InvalidTimestamp(field=field, value=value) from e
    # Upstream sends offset-less timestamps as UTC.
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def parse_advisory_timestamp(value: str | None) -> datetime | None:
    try:
        return parse_utc_timestamp(value, field="advisory")
    except InvalidTimestamp:
        return None


def compute_local_date(instant: datetime, *, tz_name: str) -> date:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(ZoneInfo(tz_name)).date()


def iso_utc_millis(instant: datetime) -> str:
    return instant.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_case_id(*, conversation_href: str, opened_at: datetime) -> str:
    return f"{conversation_href}::{iso_utc_millis(opened_at)}"


def first_present(*values: str | None) -> str | None:
    for v in values:
        if v is None:
            continue
        s = v.strip()
        if s:
            return s
    return None
