"""Error types shared by the webhook pipeline."""
from __future__ import annotations


class WebhookError(Exception):
    """Base class for failures raised while handling a provider notification."""


class TransportError(WebhookError):
    """Network failure or timeout during an outbound call."""


class UpstreamRejection(WebhookError):
    """The provider answered an outbound call with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UpstreamAuthError(UpstreamRejection):
    """The token endpoint refused the client credentials."""


class MalformedPayload(WebhookError):
    """Body is not parseable or lacks a required field."""


class StorePersistenceError(WebhookError):
    """A record mutation could not be committed."""

    def __init__(self, message: str, record_id: str | None = None) -> None:
        super().__init__(message)
        self.record_id = record_id


class RecordNotFoundError(StorePersistenceError):
    """The record addressed by the update does not exist."""
