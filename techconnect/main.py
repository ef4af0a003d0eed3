import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from techconnect.core.config import Settings, configure_logging, settings
from techconnect.api.api import router as api_router
from techconnect.services.paypal.client import PayPalClient
from techconnect.services.store.firestore import TechnicianStore

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Optional[Settings] = None,
    paypal: Optional[PayPalClient] = None,
    technician_store: Optional[TechnicianStore] = None,
) -> FastAPI:
    """build the app; collaborators passed in here are used as-is and not built at startup."""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "technician_store", None) is None:
            # no store, no service: let the error stop startup before anything needs closing
            app.state.technician_store = TechnicianStore.from_settings(app_settings)
        http: Optional[httpx.AsyncClient] = None
        if getattr(app.state, "paypal", None) is None:
            missing = app_settings.missing_required()
            if missing:
                logger.warning(f"Missing PayPal configuration: {', '.join(missing)}; every webhook will be rejected")
            if not app_settings.paypal_mode_is_valid():
                logger.warning(
                    f"Unrecognised PAYPAL_MODE {app_settings.PAYPAL_MODE!r} (expected live or sandbox), "
                    f"using {app_settings.PAYPAL_API_BASE}"
                )
            http = httpx.AsyncClient(timeout=app_settings.PAYPAL_TIMEOUT_SECONDS)
            app.state.paypal = PayPalClient.from_settings(app_settings, http)
        logger.info(f"TechConnect webhooks up (env={app_settings.APP_ENV}, paypal={app.state.paypal.api_base})")
        try:
            yield
        finally:
            if http is not None:
                await http.aclose()

    app = FastAPI(title="TechConnect Webhooks", version="0.1.0", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.paypal = paypal
    app.state.technician_store = technician_store

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return PlainTextResponse("Internal server error.", status_code=500)

    # mount our API routes
    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    def health():
        return {"status": "ok", "env": app_settings.APP_ENV}

    # promo page (public/index.html) and its assets, mounted last so API routes win
    if os.path.isdir(app_settings.STATIC_DIR):
        app.mount("/", StaticFiles(directory=app_settings.STATIC_DIR, html=True), name="static")
    else:
        logger.info(f"Static directory {app_settings.STATIC_DIR!r} not found, promo page disabled")

    return app


configure_logging()
app = create_app()


def run():
    uvicorn.run(app, host=settings.APP_HOST, port=settings.APP_PORT)


if __name__ == "__main__":
    run()
