"""Autolend HTTP application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from autolend.api.v1.router import api_router
from autolend.config import settings
from autolend.db.session import engine
from autolend.logging_config import setup_logging

API_VERSION = "1.0.0"

setup_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Autolend starting",
        extra={
            "environment": settings.ENVIRONMENT,
            "no_match_outcome": settings.NO_MATCH_OUTCOME,
            "default_timezone": settings.DEFAULT_LENDER_TIMEZONE,
            "alert_webhook": bool(settings.ALERT_WEBHOOK_URL),
        },
    )
    yield
    # Reservations hold row locks only inside their own transaction, so the
    # pool can be closed as soon as in-flight requests finish.
    await engine.dispose()
    logger.info("Autolend stopped")


app = FastAPI(
    title="Autolend API",
    description="Automated loan approval against lender rules, blacklists and daily capital limits",
    version=API_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict:
    return {
        "message": "Autolend API",
        "version": API_VERSION,
        "docs": "/api/docs",
        "evaluate": "/api/v1/auto-lending/evaluate/{loan_id}",
    }
