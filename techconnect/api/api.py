from fastapi import APIRouter

from techconnect.api.routers import webhooks_paypal as webhooks_paypal_router

router = APIRouter()

# webhook routes
router.include_router(webhooks_paypal_router.router)
