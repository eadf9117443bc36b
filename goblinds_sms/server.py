"""FastAPI server for the Go Blinds SMS service.

Run with:
    uv run uvicorn goblinds_sms.server:app --reload --host 0.0.0.0 --port 3000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from goblinds_sms.api.routes import router
from goblinds_sms.api.schemas import HealthResponse, RootResponse
from goblinds_sms.composer import MessageComposer
from goblinds_sms.config import (
    BUSINESS_NAME,
    CORS_ORIGINS,
    MAX_CONVERSATIONS,
    MAX_TRANSCRIPT_MESSAGES,
    REQUIRED_SECRETS,
    SERVER_HOST,
    SERVER_PORT,
    SMS_DRY_RUN,
)
from goblinds_sms.orchestrator import ConversationService
from goblinds_sms.services.sms_gateway import ConsoleGateway, SMSGateway, TwilioGateway
from goblinds_sms.services.store import ConversationStore

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = f"{BUSINESS_NAME} SMS Service"

ENDPOINTS = [
    "POST /api/initiate-contact",
    "POST /api/sms/webhook",
    "GET /api/conversations",
    "GET /api/conversations/{phone}",
    "GET /health",
]


def create_service() -> ConversationService:
    """Wire the store, composer and gateway from configuration."""
    gateway: SMSGateway = ConsoleGateway() if SMS_DRY_RUN else TwilioGateway()
    if SMS_DRY_RUN:
        logger.warning("SMS_DRY_RUN is on: outbound SMS are logged, not sent.")
    store = ConversationStore(
        max_messages=MAX_TRANSCRIPT_MESSAGES,
        max_conversations=MAX_CONVERSATIONS,
    )
    return ConversationService(store, MessageComposer(), gateway)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Start-up: build the conversation service once and keep it in app state."""
    application.state.service = create_service()
    logger.info("%s ready on port %d", SERVICE_NAME, SERVER_PORT)
    logger.info("Required environment variables: %s", ", ".join(REQUIRED_SECRETS))
    logger.info("Health: http://localhost:%d/health", SERVER_PORT)
    yield
    # Shutdown: conversations are in-memory only and are dropped here


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title=SERVICE_NAME,
    description=(
        "AI-assisted customer SMS: AppSheet triggers, Twilio webhooks "
        "and Anthropic-composed replies."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation.

    The ID is echoed in the ``X-Request-ID`` response header.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info(
        "[%s] %s %s", request_id, request.method, request.url.path,
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness check."""
    return HealthResponse(timestamp=datetime.now(UTC), service=SERVICE_NAME)


@app.get("/", response_model=RootResponse)
async def root():
    """Root endpoint with API info."""
    return RootResponse(message=f"{SERVICE_NAME} is running!", endpoints=ENDPOINTS)


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("Starting %s on %s:%d", SERVICE_NAME, SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "goblinds_sms.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
