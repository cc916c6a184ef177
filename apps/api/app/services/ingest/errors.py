from __future__ import annotations


class IngestValidationError(ValueError):
    """Webhook payload cannot be turned into a core event; rejected, never retried."""

    def __init__(self, *, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class MissingRequiredField(IngestValidationError):
    def __init__(self, *, field: str) -> None:
        super().__init__(field=field, message=f"Missing required field: {field}")


class InvalidTimestamp(IngestValidationError):
    def __init__(self, *, field: str, value: str) -> None:
        super().__init__(field=field, message=f"Invalid ISO-8601 timestamp in {field}: {value!r}")


class TransientStoreFailure(RuntimeError):
    """Store unreachable or timed out; the transport layer decides whether to retry."""
