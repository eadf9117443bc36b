"""In-memory conversation store keyed by customer phone number.

Design decisions
────────────────
• **OrderedDict** keeps conversations in least-recently-updated order so an
  optional ``max_conversations`` ceiling can evict the stalest idle one.
• **threading.Lock** guards the map itself; it is held only for the
  duration of a dict operation, never across an ``await``.
• **Per-phone asyncio.Lock** (``serialized``) lets the orchestrator
  serialise a whole read → compose → dispatch → append sequence for one
  number while other numbers proceed concurrently.  A number with an
  update in flight is never evicted; the cap may be exceeded briefly
  instead.
• **Transcript cap**: ``max_messages`` bounds each transcript; the oldest
  messages are dropped first.  ``0`` disables either ceiling.
• Purely ephemeral: everything is lost on process restart.

Usage
─────
>>> store = ConversationStore(max_messages=100)
>>> convo = store.get_or_create("+15551234567", Conversation.inbound_default)
>>> store.append("+15551234567", Message.inbound("hi"))
>>> store.get("+15551234567").messages[-1].body
'hi'
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import OrderedDict
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_CUSTOMER_NAME = "Customer"
DEFAULT_CONTEXT = "General inquiry"
DEFAULT_MAX_MESSAGES = 100


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Direction(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


@dataclass(frozen=True)
class Message:
    """A single SMS in a transcript.  Immutable once created."""

    direction: Direction
    body: str
    timestamp: datetime = field(default_factory=_utcnow)

    @classmethod
    def inbound(cls, body: str) -> Message:
        return cls(Direction.INBOUND, body)

    @classmethod
    def outbound(cls, body: str) -> Message:
        return cls(Direction.OUTBOUND, body)

    def as_history_line(self) -> str:
        """Render as ``"<direction>: <body>"`` for the composer's context."""
        return f"{self.direction.value}: {self.body}"


@dataclass
class Conversation:
    """Contact metadata plus the ordered transcript for one phone number."""

    name: str = DEFAULT_CUSTOMER_NAME
    context: str = DEFAULT_CONTEXT
    started: datetime = field(default_factory=_utcnow)
    messages: list[Message] = field(default_factory=list)

    @classmethod
    def inbound_default(cls) -> Conversation:
        """Conversation for a number that texted us first."""
        return cls(name=DEFAULT_CUSTOMER_NAME, context=DEFAULT_CONTEXT)

    @property
    def last_message(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    def recent(self, count: int) -> list[Message]:
        return self.messages[-count:] if count > 0 else []


class ConversationStore:
    """Process-wide map of phone number → :class:`Conversation`."""

    def __init__(
        self,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        max_conversations: int = 0,
    ) -> None:
        self._max_messages = max_messages
        self._max_conversations = max_conversations
        self._conversations: OrderedDict[str, Conversation] = OrderedDict()
        self._key_locks: dict[str, asyncio.Lock] = {}
        # phone → tasks holding or waiting for its key lock
        self._lock_users: dict[str, int] = {}
        self._lock = threading.Lock()

    # ── Core operations ──────────────────────────────────────────────

    def get(self, phone: str) -> Conversation | None:
        """Return the conversation for *phone* or ``None``."""
        with self._lock:
            return self._conversations.get(phone)

    def set(self, phone: str, conversation: Conversation) -> None:
        """Insert or overwrite the conversation for *phone*."""
        with self._lock:
            self._put_locked(phone, conversation)

    def get_or_create(
        self,
        phone: str,
        factory: Callable[[], Conversation] = Conversation.inbound_default,
    ) -> Conversation:
        """Return the existing conversation or store a new one from *factory*."""
        with self._lock:
            conversation = self._conversations.get(phone)
            if conversation is None:
                conversation = factory()
                self._put_locked(phone, conversation)
                logger.info("Store: new conversation for %s", phone)
            return conversation

    def append(self, phone: str, message: Message) -> Conversation:
        """Append *message* to the transcript for *phone*.

        Raises ``KeyError`` if there is no conversation for *phone*.
        """
        with self._lock:
            conversation = self._conversations[phone]
            conversation.messages.append(message)
            overflow = len(conversation.messages) - self._max_messages
            if self._max_messages > 0 and overflow > 0:
                del conversation.messages[:overflow]
                logger.debug("Store: trimmed %d old message(s) for %s", overflow, phone)
            self._conversations.move_to_end(phone)
            return conversation

    def all_entries(self) -> list[tuple[str, Conversation]]:
        """Snapshot of every ``(phone, conversation)`` pair, oldest update first."""
        with self._lock:
            return list(self._conversations.items())

    @asynccontextmanager
    async def serialized(self, phone: str) -> AsyncIterator[None]:
        """Hold the update lock for *phone* for the duration of the block.

        While any task holds or waits for it, the conversation is never
        evicted and the lock is never replaced.  The lock is dropped once
        its last user leaves and the conversation is gone.
        """
        with self._lock:
            lock = self._key_locks.get(phone)
            if lock is None:
                lock = self._key_locks[phone] = asyncio.Lock()
            self._lock_users[phone] = self._lock_users.get(phone, 0) + 1
        try:
            async with lock:
                yield
        finally:
            with self._lock:
                self._lock_users[phone] -= 1
                if not self._lock_users[phone]:
                    del self._lock_users[phone]
                    if phone not in self._conversations:
                        self._key_locks.pop(phone, None)

    def in_use(self, phone: str) -> bool:
        """True while a task holds or waits for the update lock of *phone*."""
        return self._lock_users.get(phone, 0) > 0

    def clear(self) -> None:
        """Drop all conversations and every lock not currently in use."""
        with self._lock:
            self._conversations.clear()
            for phone in [p for p in self._key_locks if not self.in_use(p)]:
                del self._key_locks[phone]

    # ── Introspection ────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._conversations)

    def __contains__(self, phone: object) -> bool:
        return phone in self._conversations

    # ── Internal ─────────────────────────────────────────────────────

    def _put_locked(self, phone: str, conversation: Conversation) -> None:
        self._conversations[phone] = conversation
        self._conversations.move_to_end(phone)

        overflow = len(self._conversations) - self._max_conversations
        if self._max_conversations <= 0 or overflow <= 0:
            return

        # Oldest first; numbers with an update in flight are skipped
        idle = [
            p for p in self._conversations
            if p != phone and not self.in_use(p)
        ][:overflow]
        for evicted in idle:
            del self._conversations[evicted]
            self._key_locks.pop(evicted, None)
            logger.info("Store: evicted conversation for %s", evicted)
        if len(idle) < overflow:
            logger.debug(
                "Store: %d conversation(s) over the cap are busy, eviction deferred",
                overflow - len(idle),
            )
