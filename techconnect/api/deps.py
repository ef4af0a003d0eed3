from fastapi import Request

from techconnect.schemas.webhooks import IncomingNotification
from techconnect.services.paypal.client import PayPalClient
from techconnect.services.store.firestore import TechnicianStore


async def capture_notification(request: Request) -> IncomingNotification:
    # raw bytes, never request.json(): the signature covers the exact body
    raw_body = await request.body()
    return IncomingNotification.from_request_parts(request.headers, raw_body)


def get_paypal_client(request: Request) -> PayPalClient:
    return request.app.state.paypal


def get_technician_store(request: Request) -> TechnicianStore:
    return request.app.state.technician_store
