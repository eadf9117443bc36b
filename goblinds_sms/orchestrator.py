"""Conversation orchestration: the four operations behind the HTTP routes.

Flows
-----
* **initiate_contact**: a trigger (AppSheet) starts a fresh conversation,
  the composer writes a greeting, the gateway sends it.
* **handle_inbound**: an SMS reply arrives.  ``CONFIRM`` and
  ``RESCHEDULE`` short-circuit to fixed texts without touching the
  transcript; anything else goes through the composer with the last
  ``HISTORY_WINDOW`` transcript lines as context.
* **get_conversation / list_conversations**: read-only inspection.

Updates for one phone number run under that number's lock (see
``ConversationStore.serialized``) so concurrent replies cannot lose an append
and the number cannot be evicted mid-update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from goblinds_sms.composer import ComposeContext, MessageComposer
from goblinds_sms.prompts import (
    CONFIRM_MESSAGE,
    GREETING_REQUEST_TEMPLATE,
    RESCHEDULE_MESSAGE,
)
from goblinds_sms.services.sms_gateway import SMSGateway
from goblinds_sms.services.store import (
    DEFAULT_CUSTOMER_NAME,
    Conversation,
    ConversationStore,
    Message,
)

logger = logging.getLogger(__name__)

# Transcript lines (including the new inbound one) handed to the composer
HISTORY_WINDOW = 3

CONFIRM_KEYWORD = "CONFIRM"
RESCHEDULE_KEYWORD = "RESCHEDULE"

InboundOutcome = Literal["confirmed", "reschedule", "replied", "failed"]


@dataclass(frozen=True)
class InboundResult:
    """What happened to an inbound SMS.  Never raised, always returned."""

    ok: bool
    outcome: InboundOutcome
    reply: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ConversationSummary:
    name: str
    context: str
    started: datetime
    message_count: int
    last_message: Message | None


class ConversationService:
    """Ties the store, composer and SMS gateway together."""

    def __init__(
        self,
        store: ConversationStore,
        composer: MessageComposer,
        gateway: SMSGateway,
    ) -> None:
        self.store = store
        self.composer = composer
        self.gateway = gateway

    async def initiate_contact(
        self,
        phone: str,
        name: str | None,
        trigger_context: str | None,
    ) -> str:
        """Start (or restart) a conversation and send the greeting.

        Any failure propagates; the caller turns it into an error response.
        """
        name = name or DEFAULT_CUSTOMER_NAME
        trigger_context = trigger_context or ""
        logger.info(
            "Initiating contact: phone=%s name=%s context=%r",
            phone, name, trigger_context,
        )

        async with self.store.serialized(phone):
            self.store.set(phone, Conversation(name=name, context=trigger_context))
            greeting = await self.composer.compose(
                GREETING_REQUEST_TEMPLATE.format(name=name, trigger_context=trigger_context),
                ComposeContext(business_context=trigger_context or None),
            )
            await self.gateway.send(phone, greeting)
            self.store.append(phone, Message.outbound(greeting))

        return greeting

    async def handle_inbound(self, phone: str, body: str) -> InboundResult:
        """Process one inbound SMS and send the reply.

        Failures are logged and reported through the result so the webhook
        can always acknowledge the carrier.
        """
        logger.info("Incoming SMS from %s: %s", phone, body)
        keyword = body.upper()
        try:
            if CONFIRM_KEYWORD in keyword:
                await self.gateway.send(phone, CONFIRM_MESSAGE)
                return InboundResult(ok=True, outcome="confirmed", reply=CONFIRM_MESSAGE)

            if RESCHEDULE_KEYWORD in keyword:
                await self.gateway.send(phone, RESCHEDULE_MESSAGE)
                return InboundResult(ok=True, outcome="reschedule", reply=RESCHEDULE_MESSAGE)

            reply = await self._reply_with_composer(phone, body)
            return InboundResult(ok=True, outcome="replied", reply=reply)

        except Exception as exc:
            logger.exception("Error handling incoming SMS from %s", phone)
            return InboundResult(ok=False, outcome="failed", error=type(exc).__name__)

    async def _reply_with_composer(self, phone: str, body: str) -> str:
        async with self.store.serialized(phone):
            conversation = self.store.get_or_create(phone)
            self.store.append(phone, Message.inbound(body))

            history = "\n".join(
                m.as_history_line() for m in conversation.recent(HISTORY_WINDOW)
            )
            reply = await self.composer.compose(
                body,
                ComposeContext(
                    business_context=conversation.context,
                    conversation_history=history,
                ),
            )
            await self.gateway.send(phone, reply)
            self.store.append(phone, Message.outbound(reply))
        return reply

    def get_conversation(self, phone: str) -> Conversation | None:
        return self.store.get(phone)

    def list_conversations(self) -> dict[str, ConversationSummary]:
        """Per-number summaries; never the full transcript."""
        return {
            phone: ConversationSummary(
                name=conversation.name,
                context=conversation.context,
                started=conversation.started,
                message_count=len(conversation.messages),
                last_message=conversation.last_message,
            )
            for phone, conversation in self.store.all_entries()
        }
