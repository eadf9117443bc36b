"""Reply composition for outbound SMS.

The composer wraps a single LangChain ``ChatAnthropic`` call:

    system prompt (business rules + context) ─┐
                                              ├─► LLM ─► stripped reply text
    latest customer message ──────────────────┘

Any failure of the completion call (timeout, auth, quota, empty or
malformed response) degrades to ``FALLBACK_MESSAGE``.  There is no retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from goblinds_sms.config import (
    ANTHROPIC_API_KEY,
    COMPOSER_MAX_TOKENS,
    COMPOSER_TEMPERATURE,
    MODEL_NAME,
)
from goblinds_sms.prompts import FALLBACK_MESSAGE, get_system_prompt
from goblinds_sms.services.metrics import metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComposeContext:
    """Optional context passed alongside the customer's message.

    ``conversation_history`` holds at most the last few transcript lines,
    each ``"<direction>: <body>"``, newline-joined.
    """

    business_context: str | None = None
    conversation_history: str | None = None


class EmptyReplyError(ValueError):
    """The model returned no usable text."""


def _build_llm() -> ChatAnthropic:
    """Build the reply LLM: short output, moderate creativity."""
    return ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=COMPOSER_TEMPERATURE,
        max_tokens=COMPOSER_MAX_TOKENS,
    )


def _extract_text(content: str | list) -> str:
    """Return the text of an AI message whose content may be a block list."""
    if isinstance(content, str):
        return content.strip()
    chunks = [
        block if isinstance(block, str) else block.get("text", "")
        for block in content
        if isinstance(block, str) or block.get("type") == "text"
    ]
    return "".join(chunks).strip()


class MessageComposer:
    """Turns a customer message plus context into an SMS reply."""

    def __init__(self, llm: BaseChatModel | None = None) -> None:
        self._llm = llm  # lazy-init so a missing API key only affects composition

    def _get_llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = _build_llm()
        return self._llm

    async def compose(
        self,
        customer_message: str,
        context: ComposeContext | None = None,
    ) -> str:
        """Return the reply text, or ``FALLBACK_MESSAGE`` if generation fails."""
        context = context or ComposeContext()
        system = SystemMessage(
            content=get_system_prompt(
                business_context=context.business_context,
                conversation_history=context.conversation_history,
            )
        )
        try:
            with metrics.track("anthropic", "compose"):
                response = await self._get_llm().ainvoke(
                    [system, HumanMessage(content=customer_message)]
                )
                reply = _extract_text(response.content)
                if not reply:
                    raise EmptyReplyError("Model returned an empty reply")
        except Exception:
            logger.exception("Reply generation failed, using fallback message")
            return FALLBACK_MESSAGE

        logger.debug("Composed reply (%d chars): %s", len(reply), reply)
        return reply
