from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel

CANCELLATION_EVENT_TYPE = "BILLING.SUBSCRIPTION.CANCELLED"

# inbound header -> verify-webhook-signature field
TRANSMISSION_HEADERS = {
    "paypal-auth-algo": "auth_algo",
    "paypal-cert-url": "cert_url",
    "paypal-transmission-id": "transmission_id",
    "paypal-transmission-sig": "transmission_sig",
    "paypal-transmission-time": "transmission_time",
}


@dataclass
class IncomingNotification:
    """untrusted notification exactly as received: transmission headers + raw body bytes."""

    raw_body: bytes
    headers: Dict[str, Optional[str]] = field(default_factory=dict)

    @classmethod
    def from_request_parts(cls, headers: Mapping[str, str], raw_body: bytes) -> "IncomingNotification":
        lowered = {k.lower(): v for k, v in headers.items()}
        return cls(
            raw_body=raw_body,
            headers={name: lowered.get(name) for name in TRANSMISSION_HEADERS},
        )


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None


class VerificationRequest(BaseModel):
    auth_algo: Optional[str] = None
    cert_url: Optional[str] = None
    transmission_id: Optional[str] = None
    transmission_sig: Optional[str] = None
    transmission_time: Optional[str] = None
    webhook_id: str
    webhook_event: Dict[str, Any]

    @classmethod
    def build(cls, notification: IncomingNotification, webhook_id: str, event: Dict[str, Any]) -> "VerificationRequest":
        fields = {api_name: notification.headers.get(header) for header, api_name in TRANSMISSION_HEADERS.items()}
        return cls(webhook_id=webhook_id, webhook_event=event, **fields)


class VerificationResponse(BaseModel):
    verification_status: str


# verified event variants

@dataclass(frozen=True)
class SubscriptionCancelledEvent:
    event_type: str
    custom_id: Optional[str]
    event_id: Optional[str] = None


@dataclass(frozen=True)
class UnhandledEvent:
    event_type: Optional[str]
    event_id: Optional[str] = None


Event = Union[SubscriptionCancelledEvent, UnhandledEvent]


def _technician_id(resource: Any) -> Optional[str]:
    if not isinstance(resource, dict):
        return None
    custom_id = resource.get("custom_id")
    if not isinstance(custom_id, str) or not custom_id:
        return None
    # firestore reads "/" as a path separator
    if "/" in custom_id:
        return None
    return custom_id


def parse_event(payload: Any) -> Event:
    """map a verified envelope to its variant; unknown or odd shapes become UnhandledEvent."""
    if not isinstance(payload, dict):
        return UnhandledEvent(event_type=None)

    event_type = payload.get("event_type")
    event_id = payload.get("id") if isinstance(payload.get("id"), str) else None
    if event_type == CANCELLATION_EVENT_TYPE:
        return SubscriptionCancelledEvent(
            event_type=event_type,
            custom_id=_technician_id(payload.get("resource")),
            event_id=event_id,
        )
    return UnhandledEvent(event_type=event_type if isinstance(event_type, str) else None, event_id=event_id)
