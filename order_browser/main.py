from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from order_browser.api.routes_orders import router as orders_router
from order_browser.core.config import get_settings
from order_browser.core.errors import StoreError, ValidationError
from order_browser.core.logging import configure_logging
from order_browser.demo import seed_demo_orders
from order_browser.persistence.pg import init_db, session_scope

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    if settings.bootstrap_demo_on_startup:
        with session_scope() as session:
            result = seed_demo_orders(session)
        logger.info(
            "demo orders ready: order_count=%s seeded_now=%s",
            result.get("order_count"),
            result.get("seeded_now"),
        )


@app.exception_handler(ValidationError)
async def validation_error_handler(_: Request, exc: ValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "detail": str(exc),
            "error": "validation",
        },
    )


@app.exception_handler(StoreError)
async def store_error_handler(_: Request, exc: StoreError):
    logger.warning("order store failure: %s", exc)
    return JSONResponse(
        status_code=503,
        content={
            "detail": str(exc),
            "error": "store_unavailable",
        },
    )


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(orders_router)
