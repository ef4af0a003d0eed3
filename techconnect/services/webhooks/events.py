import logging
from enum import Enum
from typing import Protocol

from fastapi.concurrency import run_in_threadpool

from techconnect.schemas.webhooks import Event, SubscriptionCancelledEvent
from techconnect.services.store.firestore import VALIDATION_PENDING

logger = logging.getLogger(__name__)


class EventOutcome(str, Enum):
    IGNORED = "ignored"
    UNPROCESSABLE = "unprocessable"
    MUTATED = "mutated"


class ValidationStatusStore(Protocol):
    def set_validation_status(self, technician_id: str, status: str = ...) -> None: ...


async def handle_cancellation(event: SubscriptionCancelledEvent, store: ValidationStatusStore) -> EventOutcome:
    """put the technician back to pending validation; store errors propagate to the caller."""
    technician_id = event.custom_id
    if not technician_id:
        logger.warning("Cancellation event received without a usable custom_id (technicianId), nothing to update")
        return EventOutcome.UNPROCESSABLE

    logger.info(f"Processing cancellation for technician: {technician_id}")
    await run_in_threadpool(store.set_validation_status, technician_id, VALIDATION_PENDING)
    logger.info(f"Technician {technician_id} validation status set to '{VALIDATION_PENDING}'")
    return EventOutcome.MUTATED


async def dispatch_event(event: Event, store: ValidationStatusStore) -> EventOutcome:
    if isinstance(event, SubscriptionCancelledEvent):
        return await handle_cancellation(event, store)

    # new or unknown event types are acknowledged so PayPal stops redelivering
    logger.info(f"Event '{event.event_type}' is not a cancellation, no action taken")
    return EventOutcome.IGNORED
