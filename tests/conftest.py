"""
Pytest configuration for privacy_backends.

Adapters are built with zero simulated delay and a seeded RandomSource so the
suite is fast and reproducible.
"""

import pytest
from loguru import logger

from privacy_backends import (
    TOKENS,
    ArciumAdapter,
    ArciumConfig,
    BackendRegistry,
    IncoAdapter,
    IncoConfig,
    MockBackend,
    MockBackendConfig,
    PrivacyCashAdapter,
    PrivacyCashConfig,
    PrivacyLevel,
    RandomSource,
    TransferParams,
)


SENDER = "5ZWj7a1f8tWkjBESHKgrLmXshuXxqeY9SYcfbshpAqPG"
RECIPIENT = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"


@pytest.fixture
def rng():
    return RandomSource(seed=1234)


@pytest.fixture
def mock(rng):
    return MockBackend(MockBackendConfig(latency_ms=0), rng=rng)


@pytest.fixture
def privacycash(rng):
    return PrivacyCashAdapter(PrivacyCashConfig(delay_scale=0), rng=rng)


@pytest.fixture
def inco(rng):
    return IncoAdapter(IncoConfig(delay_scale=0), rng=rng)


@pytest.fixture
def arcium(rng):
    return ArciumAdapter(ArciumConfig(delay_scale=0), rng=rng)


@pytest.fixture
def registry():
    """Fresh registry, independent of the global one"""
    return BackendRegistry()


@pytest.fixture
def make_params():
    """Factory for TransferParams with sensible defaults (1 SOL, shielded)"""
    def _make(amount=1_000_000_000, token='SOL', privacy_level=PrivacyLevel.SHIELDED, **kwargs):
        return TransferParams(
            from_token=TOKENS[token],
            to_token=TOKENS[token],
            amount=amount,
            privacy_level=privacy_level,
            sender=kwargs.pop('sender', SENDER),
            recipient=kwargs.pop('recipient', RECIPIENT),
            **kwargs,
        )
    return _make


@pytest.fixture
def log_messages():
    """Capture loguru messages (WARNING and above)"""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record['message']), level="WARNING")
    yield messages
    logger.remove(handler_id)
