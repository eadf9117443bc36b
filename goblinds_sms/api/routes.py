"""FastAPI route definitions for the Go Blinds SMS API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Form, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from goblinds_sms.api.schemas import (
    ConversationOut,
    ConversationSummaryOut,
    ErrorResponse,
    InitiateContactRequest,
    InitiateContactResponse,
)
from goblinds_sms.orchestrator import ConversationService

logger = logging.getLogger(__name__)

router = APIRouter()

# Empty TwiML: acknowledge the webhook, the reply is sent through the REST API
EMPTY_TWIML = "<Response></Response>"


def _get_service(request: Request) -> ConversationService:
    """Retrieve the conversation service from app state (set in the lifespan)."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="The service is still starting up. Please try again in a moment.",
        )
    return service


# ── Endpoints ────────────────────────────────────────────────────────


@router.post(
    "/initiate-contact",
    response_model=InitiateContactResponse,
    responses={500: {"model": ErrorResponse}},
)
async def initiate_contact(payload: InitiateContactRequest, http_request: Request):
    """AppSheet trigger: start a conversation and send the AI greeting."""
    service = _get_service(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        greeting = await service.initiate_contact(
            payload.customer_phone,
            payload.customer_name,
            payload.trigger_context,
        )
    except Exception:
        # Full traceback server-side only; the client gets a generic error
        logger.exception("[%s] Error initiating contact", request_id)
        return JSONResponse(status_code=500, content={"error": "Failed to initiate contact"})

    return InitiateContactResponse(initialMessage=greeting)


@router.post("/sms/webhook")
async def sms_webhook(
    http_request: Request,
    From: str = Form(...),  # noqa: N803  # Twilio's form field names
    Body: str = Form(""),  # noqa: N803
):
    """Twilio inbound-SMS webhook.

    Always acknowledged with an empty TwiML document and HTTP 200, even
    when the reply could not be generated or sent, so an internal failure
    never turns into carrier retries.
    """
    service = _get_service(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    result = await service.handle_inbound(From, Body)
    if not result.ok:
        logger.error(
            "[%s] Inbound SMS from %s not answered (%s)", request_id, From, result.error,
        )
    else:
        logger.debug("[%s] Inbound SMS from %s handled: %s", request_id, From, result.outcome)

    return Response(content=EMPTY_TWIML, media_type="text/xml")


@router.get(
    "/conversations/{phone}",
    response_model=ConversationOut,
    responses={404: {"model": ErrorResponse}},
)
async def get_conversation(phone: str, http_request: Request):
    """Full transcript for one phone number (debugging / monitoring)."""
    service = _get_service(http_request)
    conversation = service.get_conversation(phone)
    if conversation is None:
        return JSONResponse(status_code=404, content={"error": "Conversation not found"})
    return ConversationOut.from_conversation(conversation)


@router.get("/conversations", response_model=dict[str, ConversationSummaryOut])
async def list_conversations(http_request: Request):
    """Summary of every conversation, keyed by phone number."""
    service = _get_service(http_request)
    return {
        phone: ConversationSummaryOut.from_summary(summary)
        for phone, summary in service.list_conversations().items()
    }
