"""CLI entry point for the Go Blinds SMS service.

Simulates a customer texting the business: each line you type is handled
as an inbound SMS and the reply is printed instead of being sent through
Twilio.  For production, use the FastAPI server (goblinds_sms/server.py).

Usage:
    uv run python -m goblinds_sms.main                          # quiet
    uv run python -m goblinds_sms.main --debug                  # show API calls
    uv run python -m goblinds_sms.main --initiate "blind install quote" --name Jane
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from goblinds_sms.composer import MessageComposer
from goblinds_sms.config import MAX_TRANSCRIPT_MESSAGES
from goblinds_sms.orchestrator import ConversationService
from goblinds_sms.services.sms_gateway import ConsoleGateway
from goblinds_sms.services.store import ConversationStore

logger = logging.getLogger(__name__)

DEFAULT_PHONE = "+15550000000"


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("goblinds_sms").setLevel(logging.DEBUG if debug else logging.WARNING)


def _print_transcript(service: ConversationService, phone: str) -> None:
    conversation = service.get_conversation(phone)
    if conversation is None:
        print("\n  (no conversation yet)\n")
        return
    print(f"\n  {conversation.name} ({conversation.context})")
    for message in conversation.messages:
        print(f"  [{message.timestamp:%H:%M:%S}] {message.as_history_line()}")
    print()


async def _chat_loop(args: argparse.Namespace) -> None:
    service = ConversationService(
        ConversationStore(max_messages=MAX_TRANSCRIPT_MESSAGES),
        MessageComposer(),
        ConsoleGateway(echo=True),
    )
    phone = args.phone

    if args.initiate:
        await service.initiate_contact(phone, args.name, args.initiate)

    while True:
        try:
            text = (await asyncio.to_thread(input, f"{phone} > ")).strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not text:
            continue

        command = text.lower()
        if command in ("exit", "quit", "q"):
            print("\nGoodbye!")
            break
        if command == "history":
            _print_transcript(service, phone)
            continue
        if command.startswith("phone "):
            phone = text.split(maxsplit=1)[1]
            print(f"\n>> Now texting as {phone}\n")
            continue

        result = await service.handle_inbound(phone, text)
        if not result.ok:
            print(f"\n  (no reply sent: {result.error})\n")


def main():
    """Run the interactive SMS simulator."""
    parser = argparse.ArgumentParser(description="Go Blinds SMS simulator")
    parser.add_argument("--phone", default=DEFAULT_PHONE, help="Customer phone to simulate")
    parser.add_argument("--name", default=None, help="Customer name for --initiate")
    parser.add_argument(
        "--initiate", metavar="CONTEXT", default=None,
        help="Start with an AppSheet-style trigger for this context",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Go Blinds SMS Simulator")
    print("=" * 60)
    print("  Each line is sent as an inbound SMS. Replies are not texted.")
    print("  Commands: 'quit', 'history', 'phone <number>'.")
    print("=" * 60 + "\n")

    asyncio.run(_chat_loop(args))


if __name__ == "__main__":
    main()
