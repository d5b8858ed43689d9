"""
Unit tests for the shared data model
"""

from dataclasses import FrozenInstanceError
from datetime import timedelta

import pytest

from privacy_backends import (
    TOKENS,
    BackendFeatures,
    BackendName,
    PrivacyModel,
    Quote,
    TransferResult,
    TransferStatus,
)
from privacy_backends.types import utc_now


@pytest.fixture
def features():
    return BackendFeatures(
        amount_hiding=True,
        recipient_hiding=False,
        viewing_keys=False,
        same_chain_only=True,
        average_latency_ms=3000,
        privacy_model=PrivacyModel.MPC,
    )


def test_native_token_detection():
    assert TOKENS['SOL'].is_native
    assert not TOKENS['USDC'].is_native
    assert TOKENS['USDT'].decimals == 6


def test_features_match_partial_predicate(features):
    assert features.matches(amount_hiding=True)
    assert features.matches(amount_hiding=True, same_chain_only=True)
    assert not features.matches(recipient_hiding=True)


def test_features_none_is_wildcard(features):
    assert features.matches(recipient_hiding=None, viewing_keys=None)
    assert features.matches()


def test_features_unknown_predicate_rejected(features):
    with pytest.raises(TypeError):
        features.matches(teleportation=True)


def test_features_match_privacy_model(features):
    assert features.matches(privacy_model=PrivacyModel.MPC)
    assert features.matches(privacy_model="mpc", amount_hiding=True)
    assert not features.matches(privacy_model=PrivacyModel.ENCRYPTION)

    with pytest.raises(ValueError):
        features.matches(privacy_model="quantum")


def test_features_latency_is_not_a_predicate(features):
    with pytest.raises(TypeError):
        features.matches(average_latency_ms=3000)


def test_features_are_immutable(features):
    with pytest.raises(FrozenInstanceError):
        features.amount_hiding = False


def test_features_to_dict(features):
    data = features.to_dict()
    assert data['privacy_model'] == 'mpc'
    assert data['average_latency_ms'] == 3000


def _quote(**overrides):
    values = dict(
        id="mock-quote-1",
        backend=BackendName.MOCK,
        input_amount=1_000_000_000,
        output_amount=997_000_000,
        fee_amount=3_000_000,
        fee_percent=0.3,
        estimated_time_seconds=5,
        expires_at=utc_now() + timedelta(minutes=1),
    )
    values.update(overrides)
    return Quote(**values)


def test_quote_expiry():
    quote = _quote()
    assert not quote.is_expired()
    assert quote.is_expired(now=quote.expires_at)
    assert quote.is_expired(now=quote.expires_at + timedelta(seconds=1))


def test_quote_to_dict_serialises_amounts_as_strings():
    data = _quote().to_dict()
    assert data['backend'] == 'mock'
    assert data['input_amount'] == '1000000000'
    assert data['fee_amount'] == '3000000'


def test_quote_warnings_default_empty():
    assert _quote().warnings == []
    assert _quote(metadata={'warnings': ['careful']}).warnings == ['careful']


def test_terminal_statuses():
    assert TransferStatus.SUCCESS.is_terminal
    assert TransferStatus.FAILED.is_terminal
    assert not TransferStatus.PROCESSING.is_terminal


def test_transfer_result_success_flag():
    assert TransferResult(status=TransferStatus.SUCCESS).success
    failed = TransferResult(status=TransferStatus.FAILED, error="boom")
    assert not failed.success
    assert failed.to_dict()['status'] == 'failed'
