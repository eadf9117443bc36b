"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from goblinds_sms.orchestrator import ConversationSummary
from goblinds_sms.services.store import Conversation, Message


class InitiateContactRequest(BaseModel):
    """Trigger payload sent by AppSheet when a customer needs follow-up."""

    customer_phone: str = Field(..., min_length=1, max_length=32, description="Customer phone, E.164")
    customer_name: str | None = Field(None, max_length=200)
    trigger_context: str | None = Field(
        None,
        max_length=2000,
        description="What the customer needs help with, e.g. 'blind install quote'",
    )


class InitiateContactResponse(BaseModel):
    success: bool = True
    message: str = "Contact initiated"
    initialMessage: str  # noqa: N815  # wire name expected by AppSheet


class ErrorResponse(BaseModel):
    error: str


class MessageOut(BaseModel):
    direction: str
    message: str
    timestamp: datetime

    @classmethod
    def from_message(cls, message: Message) -> MessageOut:
        return cls(
            direction=message.direction.value,
            message=message.body,
            timestamp=message.timestamp,
        )


class ConversationOut(BaseModel):
    """Full conversation, including the transcript."""

    name: str
    context: str
    started: datetime
    messages: list[MessageOut]

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> ConversationOut:
        return cls(
            name=conversation.name,
            context=conversation.context,
            started=conversation.started,
            messages=[MessageOut.from_message(m) for m in conversation.messages],
        )


class ConversationSummaryOut(BaseModel):
    """Listing entry: metadata plus count and last message only."""

    name: str
    context: str
    started: datetime
    message_count: int = Field(..., serialization_alias="messageCount")
    last_message: MessageOut | None = Field(None, serialization_alias="lastMessage")

    @classmethod
    def from_summary(cls, summary: ConversationSummary) -> ConversationSummaryOut:
        last = summary.last_message
        return cls(
            name=summary.name,
            context=summary.context,
            started=summary.started,
            message_count=summary.message_count,
            last_message=MessageOut.from_message(last) if last else None,
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    timestamp: datetime
    service: str


class RootResponse(BaseModel):
    message: str
    endpoints: list[str]
