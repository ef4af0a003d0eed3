"""PayPal REST client for webhook authentication.

Two calls are made per notification: an OAuth2 client-credentials exchange for
a short-lived bearer token, then ``verify-webhook-signature`` with the
transmission headers and the event body. PayPal's answer is the only authority
on authenticity; nothing is checked locally.
"""
import base64
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from techconnect.core.config import Settings
from techconnect.core.errors import (
    MalformedPayload,
    TransportError,
    UpstreamAuthError,
    UpstreamRejection,
    WebhookError,
)
from techconnect.schemas.webhooks import (
    AccessTokenResponse,
    IncomingNotification,
    VerificationRequest,
    VerificationResponse,
)

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/oauth2/token"
VERIFY_PATH = "/v1/notifications/verify-webhook-signature"
VERIFICATION_SUCCESS = "SUCCESS"
# refresh cached tokens this long before PayPal expires them
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class VerificationVerdict(str, Enum):
    VERIFIED = "verified"
    NOT_AUTHENTIC = "not_authentic"
    INFRASTRUCTURE_FAILURE = "infrastructure_failure"


@dataclass
class VerificationResult:
    verdict: VerificationVerdict
    reason: str = ""
    event: Optional[Dict[str, Any]] = None

    @property
    def verified(self) -> bool:
        return self.verdict is VerificationVerdict.VERIFIED


def _rejected(verdict: VerificationVerdict, reason: str) -> VerificationResult:
    return VerificationResult(verdict=verdict, reason=reason)


def load_event(raw_body: bytes) -> Dict[str, Any]:
    """parse the raw notification body into the event object PayPal expects back."""
    try:
        event = json.loads(raw_body)
    except ValueError as e:
        raise MalformedPayload("webhook body is not valid JSON") from e
    if not isinstance(event, dict):
        raise MalformedPayload("webhook body is not a JSON object")
    return event


class PayPalClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: Optional[str],
        client_secret: Optional[str],
        webhook_id: Optional[str],
        api_base: str,
        timeout: float = 10.0,
        cache_token: bool = False,
    ):
        self._http = http
        self.client_id = client_id
        self.client_secret = client_secret
        self.webhook_id = webhook_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.cache_token = cache_token
        self._token: Optional[str] = None
        self._token_expires_at: float = 0.0

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.AsyncClient) -> "PayPalClient":
        return cls(
            http=http,
            client_id=settings.PAYPAL_CLIENT_ID,
            client_secret=settings.PAYPAL_CLIENT_SECRET,
            webhook_id=settings.PAYPAL_WEBHOOK_ID,
            api_base=settings.PAYPAL_API_BASE,
            timeout=settings.PAYPAL_TIMEOUT_SECONDS,
            cache_token=settings.PAYPAL_TOKEN_CACHE,
        )

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.webhook_id)

    def health_check(self) -> Dict[str, str]:
        """check PayPal integration config status (never exposes secrets)."""
        if not self.client_id:
            return {"status": "misconfigured", "reason": "missing_client_id"}
        if not self.client_secret:
            return {"status": "misconfigured", "reason": "missing_client_secret"}
        if not self.webhook_id:
            return {"status": "misconfigured", "reason": "missing_webhook_id"}
        return {"status": "configured", "api_base": self.api_base, "client_id_prefix": self.client_id[:8] + "..."}

    def _basic_auth(self) -> str:
        raw = f"{self.client_id}:{self.client_secret}".encode()
        return base64.b64encode(raw).decode()

    async def fetch_access_token(self) -> str:
        """
        Exchange client credentials for a bearer token.

        Raises:
            TransportError: network failure or timeout
            UpstreamAuthError: PayPal refused the credentials (non-2xx)
            UpstreamRejection: 2xx without a usable access_token
        """
        if self.cache_token and self._token and time.monotonic() < self._token_expires_at:
            return self._token

        try:
            response = await self._http.post(
                f"{self.api_base}{TOKEN_PATH}",
                content="grant_type=client_credentials",
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Authorization": f"Basic {self._basic_auth()}",
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"PayPal token request failed: {e!r}") from e

        if not response.is_success:
            raise UpstreamAuthError(
                f"Failed to get PayPal access token. Status: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            token = AccessTokenResponse.model_validate(response.json())
        except ValueError as e:
            raise UpstreamRejection(
                "PayPal token response has no access_token",
                status_code=response.status_code,
                body=response.text,
            ) from e

        if self.cache_token and token.expires_in:
            self._token = token.access_token
            self._token_expires_at = time.monotonic() + max(token.expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
        return token.access_token

    async def verify(self, notification: IncomingNotification) -> VerificationResult:
        """
        Ask PayPal whether the notification is authentic.

        Fails closed: every error path returns a non-verified result, nothing is raised.
        """
        try:
            return await self._verify(notification)
        except Exception:
            logger.exception("Unexpected error during webhook verification")
            return _rejected(VerificationVerdict.INFRASTRUCTURE_FAILURE, "unexpected_error")

    async def _verify(self, notification: IncomingNotification) -> VerificationResult:
        if not self.is_configured():
            logger.error("PayPal credentials or webhook id not configured, rejecting notification")
            return _rejected(VerificationVerdict.INFRASTRUCTURE_FAILURE, "paypal_not_configured")

        try:
            access_token = await self.fetch_access_token()
        except UpstreamRejection as e:
            logger.error(f"PayPal token endpoint error response ({e.status_code}): {e.body}")
            return _rejected(VerificationVerdict.INFRASTRUCTURE_FAILURE, "token_rejected")
        except WebhookError as e:
            logger.error(f"PayPal token exchange failed: {e}")
            return _rejected(VerificationVerdict.INFRASTRUCTURE_FAILURE, "token_unavailable")

        try:
            event = load_event(notification.raw_body)
        except MalformedPayload as e:
            logger.warning(f"Rejecting webhook body: {e}")
            return _rejected(VerificationVerdict.NOT_AUTHENTIC, "malformed_payload")

        request = VerificationRequest.build(notification, webhook_id=self.webhook_id, event=event)
        try:
            response = await self._http.post(
                f"{self.api_base}{VERIFY_PATH}",
                json=request.model_dump(),
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"PayPal verification call failed: {e!r}")
            return _rejected(VerificationVerdict.INFRASTRUCTURE_FAILURE, "transport_error")

        if not response.is_success:
            logger.error(f"PayPal verification API call failed: {response.status_code} {response.text}")
            return _rejected(VerificationVerdict.INFRASTRUCTURE_FAILURE, "verification_rejected")

        try:
            result = VerificationResponse.model_validate(response.json())
        except ValueError:
            logger.error(f"PayPal verification response is malformed: {response.text}")
            return _rejected(VerificationVerdict.INFRASTRUCTURE_FAILURE, "malformed_verification_response")

        if result.verification_status != VERIFICATION_SUCCESS:
            return _rejected(
                VerificationVerdict.NOT_AUTHENTIC,
                f"verification_status={result.verification_status}",
            )
        return VerificationResult(verdict=VerificationVerdict.VERIFIED, event=event)
