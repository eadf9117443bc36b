"""Shared test fixtures for the Go Blinds SMS test suite."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py resolves every secret
    without reaching for SSM or logging missing-config warnings.
    """
    os.environ.setdefault("TWILIO_ACCOUNT_SID", "ACtest0000000000000000000000000000")
    os.environ.setdefault("TWILIO_AUTH_TOKEN", "test-twilio-token-123")
    os.environ.setdefault("TWILIO_PHONE_NUMBER", "+15559990000")
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-456")


@pytest.fixture
def composer():
    """Composer double: ``compose`` is an AsyncMock with a canned reply."""
    mock = AsyncMock()
    mock.compose.return_value = "Hi! How can we help with your blinds? Reply STOP to opt out."
    return mock


@pytest.fixture
def gateway():
    """Dry-run gateway that records every (to, body) it is asked to send."""
    from goblinds_sms.services.sms_gateway import ConsoleGateway

    return ConsoleGateway()


@pytest.fixture
def store():
    from goblinds_sms.services.store import ConversationStore

    return ConversationStore()


@pytest.fixture
def service(store, composer, gateway):
    from goblinds_sms.orchestrator import ConversationService

    return ConversationService(store, composer, gateway)
