"""Tests for the in-memory conversation store."""

from __future__ import annotations

import asyncio

import pytest

from goblinds_sms.services.store import (
    Conversation,
    ConversationStore,
    Direction,
    Message,
)

# ── Core operations ──────────────────────────────────────────────────


class TestConversationStoreBasics:
    def test_set_and_get(self):
        store = ConversationStore()
        convo = Conversation(name="Jane", context="blind install quote")
        store.set("+15551234567", convo)
        assert store.get("+15551234567") is convo

    def test_get_returns_none_for_unknown_phone(self):
        store = ConversationStore()
        assert store.get("+10000000000") is None

    def test_set_overwrites_existing_conversation(self):
        store = ConversationStore()
        store.set("+1555", Conversation(name="Old"))
        store.append("+1555", Message.outbound("hello"))
        store.set("+1555", Conversation(name="New"))
        assert store.get("+1555").name == "New"
        assert store.get("+1555").messages == []
        assert len(store) == 1

    def test_get_or_create_uses_inbound_defaults(self):
        store = ConversationStore()
        convo = store.get_or_create("+1555")
        assert convo.name == "Customer"
        assert convo.context == "General inquiry"
        assert convo.messages == []

    def test_get_or_create_returns_existing(self):
        store = ConversationStore()
        first = store.get_or_create("+1555")
        second = store.get_or_create("+1555")
        assert first is second
        assert len(store) == 1

    def test_append_requires_existing_conversation(self):
        store = ConversationStore()
        with pytest.raises(KeyError):
            store.append("+1555", Message.inbound("hi"))

    def test_append_preserves_order(self):
        store = ConversationStore()
        store.get_or_create("+1555")
        store.append("+1555", Message.inbound("hi"))
        store.append("+1555", Message.outbound("hello"))
        directions = [m.direction for m in store.get("+1555").messages]
        assert directions == [Direction.INBOUND, Direction.OUTBOUND]

    def test_all_entries_is_a_snapshot(self):
        store = ConversationStore()
        store.get_or_create("+1")
        store.get_or_create("+2")
        entries = store.all_entries()
        store.get_or_create("+3")
        assert [phone for phone, _ in entries] == ["+1", "+2"]

    def test_clear_removes_everything(self):
        store = ConversationStore()
        store.get_or_create("+1")
        store.clear()
        assert len(store) == 0
        assert "+1" not in store


# ── Messages ─────────────────────────────────────────────────────────


class TestMessage:
    def test_message_is_immutable(self):
        message = Message.inbound("hi")
        with pytest.raises(AttributeError):
            message.body = "changed"

    def test_history_line_is_direction_prefixed(self):
        assert Message.outbound("See you at 9").as_history_line() == "outbound: See you at 9"

    def test_timestamp_is_timezone_aware(self):
        assert Message.inbound("hi").timestamp.tzinfo is not None


# ── Caps ─────────────────────────────────────────────────────────────


class TestTranscriptCap:
    def test_oldest_messages_dropped_first(self):
        store = ConversationStore(max_messages=3)
        store.get_or_create("+1555")
        for i in range(5):
            store.append("+1555", Message.inbound(f"m{i}"))
        bodies = [m.body for m in store.get("+1555").messages]
        assert bodies == ["m2", "m3", "m4"]

    def test_zero_disables_the_cap(self):
        store = ConversationStore(max_messages=0)
        store.get_or_create("+1555")
        for i in range(250):
            store.append("+1555", Message.inbound(f"m{i}"))
        assert len(store.get("+1555").messages) == 250


class TestConversationCap:
    def test_unbounded_by_default(self):
        store = ConversationStore()
        for i in range(50):
            store.get_or_create(f"+1{i:04d}")
        assert len(store) == 50

    def test_evicts_least_recently_updated(self):
        store = ConversationStore(max_conversations=2)
        store.get_or_create("+1")
        store.get_or_create("+2")
        # Touch +1 so +2 becomes the stalest
        store.append("+1", Message.inbound("still here"))
        store.get_or_create("+3")
        assert "+1" in store
        assert "+2" not in store
        assert "+3" in store


# ── Per-phone serialisation ──────────────────────────────────────────


class TestSerialized:
    def test_serialises_updates_for_one_phone(self):
        store = ConversationStore()
        store.get_or_create("+1")
        order: list[str] = []

        async def worker(tag: str) -> None:
            async with store.serialized("+1"):
                order.append(f"{tag}-start")
                await asyncio.sleep(0)
                order.append(f"{tag}-end")

        async def run() -> None:
            await asyncio.gather(worker("a"), worker("b"))

        asyncio.run(run())
        assert order == ["a-start", "a-end", "b-start", "b-end"]

    def test_different_phones_run_concurrently(self):
        store = ConversationStore()
        order: list[str] = []

        async def worker(phone: str) -> None:
            async with store.serialized(phone):
                order.append(f"{phone}-start")
                await asyncio.sleep(0)
                order.append(f"{phone}-end")

        async def run() -> None:
            await asyncio.gather(worker("+1"), worker("+2"))

        asyncio.run(run())
        assert order[:2] == ["+1-start", "+2-start"]

    def test_in_use_only_inside_block(self):
        store = ConversationStore()
        seen: list[bool] = []

        async def run() -> None:
            async with store.serialized("+1"):
                seen.append(store.in_use("+1"))

        asyncio.run(run())
        assert seen == [True]
        assert not store.in_use("+1")

    def test_busy_conversation_is_not_evicted(self):
        store = ConversationStore(max_conversations=1)
        store.get_or_create("+1A")

        async def run() -> None:
            async with store.serialized("+1A"):
                store.get_or_create("+1B")
                assert "+1A" in store
                assert "+1B" in store
                store.append("+1A", Message.inbound("still here"))

        asyncio.run(run())
        assert store.get("+1A").messages[-1].body == "still here"

        # Once idle, the next insert brings the map back under the cap
        store.get_or_create("+1C")
        assert len(store) == 1
        assert "+1C" in store

    def test_evicted_number_loses_its_lock(self):
        store = ConversationStore(max_conversations=1)

        async def run() -> None:
            async with store.serialized("+1A"):
                store.get_or_create("+1A")

        asyncio.run(run())
        assert "+1A" in store._key_locks

        store.get_or_create("+1B")
        assert "+1A" not in store
        assert "+1A" not in store._key_locks
        assert not store._lock_users

    def test_clear_keeps_lock_held_by_running_update(self):
        store = ConversationStore()
        store.get_or_create("+1")
        order: list[str] = []

        async def first() -> None:
            async with store.serialized("+1"):
                order.append("a-start")
                store.clear()
                await asyncio.sleep(0)
                await asyncio.sleep(0)
                order.append("a-end")

        async def second() -> None:
            await asyncio.sleep(0)
            async with store.serialized("+1"):
                order.append("b-start")

        async def run() -> None:
            await asyncio.gather(first(), second())

        asyncio.run(run())
        assert order == ["a-start", "a-end", "b-start"]
        assert len(store) == 0
        assert not store._key_locks

    def test_clear_drops_idle_locks(self):
        store = ConversationStore()

        async def run() -> None:
            async with store.serialized("+1"):
                store.get_or_create("+1")

        asyncio.run(run())
        assert "+1" in store._key_locks
        store.clear()
        assert not store._key_locks
