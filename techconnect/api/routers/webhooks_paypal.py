import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from techconnect.api.deps import capture_notification, get_paypal_client, get_technician_store
from techconnect.core.errors import StorePersistenceError
from techconnect.schemas.webhooks import IncomingNotification, parse_event
from techconnect.services.paypal.client import PayPalClient
from techconnect.services.store.firestore import TechnicianStore
from techconnect.services.webhooks.events import EventOutcome, dispatch_event

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/paypal-webhook", response_class=PlainTextResponse)
async def paypal_webhook(
    notification: IncomingNotification = Depends(capture_notification),
    paypal: PayPalClient = Depends(get_paypal_client),
    store: TechnicianStore = Depends(get_technician_store),
):
    """
    Handle PayPal webhook notifications.

    Status codes drive PayPal's redelivery: 401 for anything not verified,
    500 when a verified cancellation could not be written (PayPal retries),
    200 for everything else.
    """
    logger.info("PayPal webhook received")

    # 1) verify against the raw body
    verification = await paypal.verify(notification)
    if not verification.verified:
        logger.warning(
            f"Webhook not verified ({verification.verdict.value}: {verification.reason}), request rejected"
        )
        return PlainTextResponse("Webhook verification failed.", status_code=401)

    event = parse_event(verification.event)
    logger.info(f"Webhook verified by PayPal, event type: {event.event_type} (id={event.event_id})")

    # 2) route the event
    try:
        outcome = await dispatch_event(event, store)
    except StorePersistenceError as e:
        logger.error(f"Failed to update technician {e.record_id} in Firestore: {e}", exc_info=True)
        return PlainTextResponse("Internal server error while updating the database.", status_code=500)

    # 3) acknowledge
    if outcome is EventOutcome.UNPROCESSABLE:
        return PlainTextResponse("Event received but no technicianId.", status_code=200)
    return PlainTextResponse("Webhook received and processed", status_code=200)


@router.get("/paypal-webhook/health")
async def paypal_webhook_health(
    paypal: PayPalClient = Depends(get_paypal_client),
    store: TechnicianStore = Depends(get_technician_store),
):
    """health check for webhook endpoint."""
    return {
        "status": "ok",
        "paypal": paypal.health_check(),
        "store": store.health_check(),
    }
