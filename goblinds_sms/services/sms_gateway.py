"""Outbound SMS dispatch through the Twilio REST API.

Twilio docs: https://www.twilio.com/docs/messaging/api/message-resource

The gateway forwards the text verbatim from the configured sender number.
There is no retry: a failed send is logged and re-raised as
:class:`DispatchError` so the caller decides how to degrade.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Protocol

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client

from goblinds_sms.config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER
from goblinds_sms.services.metrics import metrics

logger = logging.getLogger(__name__)


class DispatchError(Exception):
    """Raised when an SMS could not be handed to the carrier."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class DeliveryReceipt:
    sid: str
    to: str
    status: str


class SMSGateway(Protocol):
    async def send(self, to_number: str, message: str) -> DeliveryReceipt: ...


class TwilioGateway:
    """Thin async wrapper around ``twilio.rest.Client.messages.create``.

    The Twilio SDK is synchronous, so each send is offloaded to the default
    thread pool with ``asyncio.to_thread`` to keep the event loop free.
    """

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
        *,
        client: Client | None = None,
    ):
        self._account_sid = account_sid or TWILIO_ACCOUNT_SID
        self._auth_token = auth_token or TWILIO_AUTH_TOKEN
        self._from_number = from_number or TWILIO_PHONE_NUMBER
        self._client = client  # lazy-init: credentials are checked on first send

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(self._account_sid, self._auth_token)
        return self._client

    async def send(self, to_number: str, message: str) -> DeliveryReceipt:
        """Send *message* to *to_number*.  Raises :class:`DispatchError`."""
        try:
            with metrics.track("twilio", "messages.create"):
                result = await asyncio.to_thread(
                    self._get_client().messages.create,
                    body=message,
                    from_=self._from_number,
                    to=to_number,
                )
        except TwilioRestException as exc:
            logger.error(
                "Twilio rejected SMS to %s (HTTP %s, code %s): %s",
                to_number, exc.status, exc.code, exc.msg,
            )
            raise DispatchError(
                f"Twilio rejected SMS to {to_number}: {exc.msg}",
                status_code=exc.status,
            ) from exc
        except (TwilioException, OSError) as exc:
            logger.error("Twilio SMS error for %s: %s", to_number, exc)
            raise DispatchError(f"Could not send SMS to {to_number}: {exc}") from exc

        logger.info("SMS sent to %s (sid=%s): %s", to_number, result.sid, message)
        return DeliveryReceipt(sid=result.sid, to=to_number, status=str(result.status))


# Most recent dry-run sends kept for inspection
DRY_RUN_HISTORY = 100


class ConsoleGateway:
    """Dry-run gateway: logs (and optionally prints) instead of sending.

    Only the last ``history`` sends are kept in ``sent``.
    """

    def __init__(self, *, echo: bool = False, history: int = DRY_RUN_HISTORY):
        self._echo = echo
        self._count = 0
        self.sent: deque[tuple[str, str]] = deque(maxlen=history)

    async def send(self, to_number: str, message: str) -> DeliveryReceipt:
        self._count += 1
        self.sent.append((to_number, message))
        logger.info("[dry-run] SMS to %s: %s", to_number, message)
        if self._echo:
            print(f"\n  SMS → {to_number}: {message}\n")
        return DeliveryReceipt(
            sid=f"DRYRUN{self._count:06d}", to=to_number, status="dry-run",
        )
