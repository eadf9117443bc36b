"""System prompt and fixed SMS texts for the Go Blinds assistant."""

from goblinds_sms.config import BUSINESS_NAME, BUSINESS_PHONE

SMS_CHAR_LIMIT = 160

SYSTEM_PROMPT_TEMPLATE = """You are a helpful customer service assistant for {business_name}, a window blind installation company.
Keep responses under {char_limit} characters for SMS.
Be friendly, professional, and concise.
Always end with "Reply STOP to opt out" unless the message is very short.
Focus on appointment scheduling, confirmations, and service questions."""

GREETING_REQUEST_TEMPLATE = (
    "Customer {name} needs help with: {trigger_context}. "
    "Send a friendly greeting and ask how we can help."
)

FALLBACK_MESSAGE = (
    f"{BUSINESS_NAME}: Thanks for your message. "
    "We'll get back to you soon. Reply STOP to opt out."
)

CONFIRM_MESSAGE = (
    f"{BUSINESS_NAME}: Perfect! Your appointment is confirmed. "
    "We'll send a reminder the day before. Reply STOP to opt out."
)

_CALL_US = f"call us at {BUSINESS_PHONE}" if BUSINESS_PHONE else "call us"
RESCHEDULE_MESSAGE = (
    f"{BUSINESS_NAME}: No problem! Please {_CALL_US} to reschedule "
    "or reply with your preferred times. Reply STOP to opt out."
)


def get_system_prompt(
    business_context: str | None = None,
    conversation_history: str | None = None,
) -> str:
    """Build the system prompt, appending whichever context is present."""
    parts = [
        SYSTEM_PROMPT_TEMPLATE.format(
            business_name=BUSINESS_NAME, char_limit=SMS_CHAR_LIMIT,
        )
    ]
    if business_context:
        parts.append(f"Business context: {business_context}")
    if conversation_history:
        parts.append(f"Recent conversation:\n{conversation_history}")
    return "\n".join(parts)
