import json
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from techconnect.core.config import Settings
from techconnect.core.errors import RecordNotFoundError
from techconnect.main import create_app
from techconnect.services.paypal.client import PayPalClient
from techconnect.services.store.firestore import TechnicianStore

SANDBOX_BASE = "https://api-m.sandbox.paypal.com"

PAYPAL_HEADERS = {
    "PAYPAL-AUTH-ALGO": "SHA256withRSA",
    "PAYPAL-CERT-URL": "https://api.sandbox.paypal.com/v1/notifications/certs/CERT-360caa42-fca2a594-a5cafa77",
    "PAYPAL-TRANSMISSION-ID": "69cd13f0-d67a-11e5-baa3-778b53f4ae55",
    "PAYPAL-TRANSMISSION-SIG": "lmI95Jx3Y9nhR5SJWlHVIWpg4AgFk7n9bCHSRxbrd8A9zrhdu2rMyFrmz+Zjh3s3boXB07VXCXUZy/UFzUlnGJn0wDugt7FlSvdKeIJenLRemUxYCPVoEZzg9VFNqOa48gMkvF+XTpxBeUx/kWy6B5cp7GkT2+pOowfRK7OaynuxUoKW3JcMWw272VKjLTtTAShncla7tGF+55rxyt2KNZIIqxNMJ48RDZheGU5w1npu9dZHnPgTXB9iomeVRoD8O/jhRpnKsGrDschyNdkeh81BJJMH4Ctc6lnCCquoP/GzCzz33MMsNdid7vL/NIWaCsekQpW26FpWPi/tfj8nLA==",
    "PAYPAL-TRANSMISSION-TIME": "2016-02-18T20:01:35Z",
}


def cancellation_event(custom_id: Optional[str] = "tech_123") -> Dict[str, Any]:
    resource: Dict[str, Any] = {"id": "I-BW452GLLEP1G", "status": "CANCELLED"}
    if custom_id is not None:
        resource["custom_id"] = custom_id
    return {
        "id": "WH-77687562XN25889J8-8Y6T55435R66168T6",
        "event_type": "BILLING.SUBSCRIPTION.CANCELLED",
        "resource_type": "subscription",
        "resource": resource,
    }


class FakePayPal:
    """httpx.MockTransport handler standing in for the PayPal REST API."""

    def __init__(
        self,
        token_status: int = 200,
        token_json: Optional[Dict[str, Any]] = None,
        token_text: Optional[str] = None,
        verify_status: int = 200,
        verification_status: str = "SUCCESS",
        verify_text: Optional[str] = None,
        fail_on: Optional[str] = None,
    ):
        self.token_status = token_status
        self.token_json = token_json or {"access_token": "A21AAtest-token", "token_type": "Bearer", "expires_in": 32400}
        self.token_text = token_text
        self.verify_status = verify_status
        self.verification_status = verification_status
        self.verify_text = verify_text
        self.fail_on = fail_on
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/v1/oauth2/token":
            if self.fail_on == "token":
                raise httpx.ConnectTimeout("timed out", request=request)
            if self.token_text is not None:
                return httpx.Response(self.token_status, text=self.token_text)
            return httpx.Response(self.token_status, json=self.token_json)
        if request.url.path == "/v1/notifications/verify-webhook-signature":
            if self.fail_on == "verify":
                raise httpx.ReadTimeout("timed out", request=request)
            if self.verify_text is not None:
                return httpx.Response(self.verify_status, text=self.verify_text)
            return httpx.Response(self.verify_status, json={"verification_status": self.verification_status})
        return httpx.Response(404, text="not found")

    @property
    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def verification_payload(self) -> Dict[str, Any]:
        for request in self.requests:
            if request.url.path == "/v1/notifications/verify-webhook-signature":
                return json.loads(request.content)
        raise AssertionError("verification endpoint was not called")


class InMemoryTechnicianStore:
    def __init__(self, docs: Optional[Dict[str, Dict[str, Any]]] = None):
        self.docs = docs or {}
        self.calls: List[tuple] = []

    def set_validation_status(self, technician_id: str, status: str = "pending") -> None:
        self.calls.append((technician_id, status))
        if technician_id not in self.docs:
            raise RecordNotFoundError(f"technicians/{technician_id} does not exist", record_id=technician_id)
        self.docs[technician_id]["validationStatus"] = status

    def health_check(self) -> Dict[str, str]:
        return {"status": "configured", "collection": "technicians"}


def make_paypal_client(fake: FakePayPal, **overrides: Any) -> PayPalClient:
    kwargs: Dict[str, Any] = dict(
        client_id="client-id",
        client_secret="client-secret",
        webhook_id="1JE4291016473214C",
        api_base=SANDBOX_BASE,
        timeout=5.0,
    )
    kwargs.update(overrides)
    return PayPalClient(http=httpx.AsyncClient(transport=httpx.MockTransport(fake)), **kwargs)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    s = Settings()
    s.APP_ENV = "test"
    s.PAYPAL_MODE = "sandbox"
    s.PAYPAL_CLIENT_ID = "client-id"
    s.PAYPAL_CLIENT_SECRET = "client-secret"
    s.PAYPAL_WEBHOOK_ID = "1JE4291016473214C"
    s.STATIC_DIR = str(tmp_path / "no-static")
    return s


@pytest.fixture
def fake_paypal() -> FakePayPal:
    return FakePayPal()


@pytest.fixture
def mock_store() -> MagicMock:
    return MagicMock(spec=TechnicianStore)


@pytest.fixture
def make_client(test_settings):
    """build a TestClient around the real app with injected PayPal fake and store."""

    def _make(fake: FakePayPal, store: Any, **client_kwargs: Any) -> TestClient:
        app = create_app(app_settings=test_settings, paypal=make_paypal_client(fake), technician_store=store)
        return TestClient(app, **client_kwargs)

    return _make


@pytest.fixture
def post_event():
    def _post(client: TestClient, event: Any, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        raw = event if isinstance(event, (bytes, str)) else json.dumps(event)
        return client.post(
            "/api/paypal-webhook",
            content=raw,
            headers={"Content-Type": "application/json", **(PAYPAL_HEADERS if headers is None else headers)},
        )

    return _post
