"""Go Blinds SMS service: AI-assisted customer text messaging.

Architecture Overview
=====================

Three external systems meet here:

1. **AppSheet** calls ``POST /api/initiate-contact`` when a customer needs
   follow-up (quote, install, service visit).
2. **Twilio** delivers outbound SMS and calls ``POST /api/sms/webhook``
   for every reply the customer sends.
3. **Anthropic** (through LangChain's ``ChatAnthropic``) writes each
   outbound message from a short system prompt plus recent context.

Request flow:
  trigger / webhook → ConversationService → ConversationStore
                    → MessageComposer (LLM) → TwilioGateway → response

Key Design Decisions
--------------------
- **Keyword short-circuits**: replies containing CONFIRM or RESCHEDULE get a
  fixed text and skip the LLM entirely.
- **Degrade, never retry**: a failed completion becomes a canned reply; a
  failed send is raised to the caller.  The webhook is always acknowledged
  so carrier retries never amplify an internal failure.
- **Memory**: conversations live in process memory, one per phone number,
  with a configurable transcript cap and per-number update locks.

Package Structure
-----------------
- ``goblinds_sms/config.py``: Configuration from environment / SSM
- ``goblinds_sms/prompts.py``: System prompt and fixed SMS texts
- ``goblinds_sms/composer.py``: LLM reply composition with fallback
- ``goblinds_sms/orchestrator.py``: Conversation flows
- ``goblinds_sms/server.py``: FastAPI application
- ``goblinds_sms/main.py``: CLI SMS simulator
- ``goblinds_sms/services/``: Store, Twilio gateway, metrics
- ``goblinds_sms/api/``: FastAPI routes and Pydantic schemas
"""
