"""
Unit tests for the private transfer engine
"""

from unittest.mock import patch

import pytest
import yaml

from privacy_backends import (
    BackendName,
    BackendNotRegisteredError,
    ComplianceError,
    MockBackend,
    MockBackendConfig,
    NoBackendAvailableError,
    PrivacyLevel,
    PrivateTransferEngine,
    TransferEventType,
    TransferStatus,
)


@pytest.fixture
def engine(registry, mock, privacycash, inco, arcium):
    for backend in (mock, privacycash, inco, arcium):
        registry.register(backend)
    return PrivateTransferEngine(registry=registry)


@pytest.mark.asyncio
async def test_selects_highest_priority_backend(engine, make_params):
    backend = await engine.select_backend(make_params())
    assert backend.name == BackendName.ARCIUM


@pytest.mark.asyncio
async def test_compliant_selection_requires_viewing_keys(engine, make_params):
    params = make_params(privacy_level=PrivacyLevel.COMPLIANT, viewing_key="vk")

    backend = await engine.select_backend(params)

    assert backend.name == BackendName.MOCK


@pytest.mark.asyncio
async def test_compliant_transfer_without_viewing_key(engine, make_params):
    with pytest.raises(ComplianceError):
        await engine.transfer(make_params(privacy_level=PrivacyLevel.COMPLIANT))


@pytest.mark.asyncio
async def test_compliant_transfer_on_backend_without_viewing_keys(engine, make_params):
    params = make_params(privacy_level=PrivacyLevel.COMPLIANT, viewing_key="vk")

    with pytest.raises(ComplianceError):
        await engine.transfer(params, backend_name='inco')


@pytest.mark.asyncio
async def test_unknown_backend_name(engine, make_params):
    with pytest.raises(BackendNotRegisteredError):
        await engine.transfer(make_params(), backend_name='sip-native')


@pytest.mark.asyncio
async def test_no_backend_available(registry, make_params):
    engine = PrivateTransferEngine(registry=registry)

    with pytest.raises(NoBackendAvailableError):
        await engine.transfer(make_params())


@pytest.mark.asyncio
async def test_transfer_records_history(engine, make_params):
    events = []
    result = await engine.transfer(make_params(), on_event=events.append)

    assert result.success
    assert events[0].status == TransferStatus.PENDING
    assert events[-1].status == TransferStatus.SUCCESS

    history = engine.get_history()
    assert len(history) == 1
    assert history[0].backend == 'arcium'
    assert history[0].tx_hash == result.tx_hash
    assert history[0].attempts == ['arcium']
    assert history[0].to_dict()['amount'] == '1000000000'


@pytest.mark.asyncio
async def test_quote_then_transfer_uses_quoted_backend(engine, make_params):
    params = make_params(amount=250_000_000)
    quote = await engine.quote(params, backend_name='privacycash')

    result = await engine.transfer(make_params(amount=250_000_000, quote=quote))

    assert result.success
    record = engine.get_history()[-1]
    assert record.backend == 'privacycash'
    assert record.fee_amount == quote.fee_amount == 6_350_000


@pytest.mark.asyncio
async def test_fallback_after_failure_before_submission(registry, privacycash, mock, make_params):
    registry.register(privacycash)
    registry.register(mock)
    engine = PrivateTransferEngine(registry=registry, enable_fallback=True)
    events = []

    # Below the smallest pool: PrivacyCash fails before any tx is submitted
    result = await engine.transfer(make_params(amount=50_000_000), on_event=events.append)

    assert result.success
    record = engine.get_history()[-1]
    assert record.attempts == ['privacycash', 'mock']
    assert record.backend == 'mock'

    terminals = [e.status for e in events if e.is_terminal]
    assert terminals == [TransferStatus.FAILED, TransferStatus.SUCCESS]


@pytest.mark.asyncio
async def test_no_fallback_by_default(registry, privacycash, mock, make_params):
    registry.register(privacycash)
    registry.register(mock)
    engine = PrivateTransferEngine(registry=registry)

    result = await engine.transfer(make_params(amount=50_000_000))

    assert result.status == TransferStatus.FAILED
    assert engine.get_history()[-1].attempts == ['privacycash']


class FailAfterSubmitBackend(MockBackend):
    """Fails after a transaction was submitted"""

    name = BackendName.ARCIUM

    async def _execute_transfer(self, params, emitter):
        await emitter.status(TransferStatus.CONFIRMING)
        await emitter.tx_submitted("ab" * 32)
        return await emitter.fail("confirmation timed out")


@pytest.mark.asyncio
async def test_no_fallback_after_submission(registry, mock, rng, make_params):
    registry.register(FailAfterSubmitBackend(MockBackendConfig(latency_ms=0), rng=rng))
    registry.register(mock)
    engine = PrivateTransferEngine(registry=registry, enable_fallback=True)
    events = []

    result = await engine.transfer(make_params(), on_event=events.append)

    assert result.status == TransferStatus.FAILED
    assert result.error == "confirmation timed out"
    assert engine.get_history()[-1].attempts == ['arcium']
    assert [e.type for e in events].count(TransferEventType.TX_SUBMITTED) == 1


@pytest.mark.asyncio
async def test_statistics(engine, make_params):
    await engine.transfer(make_params(amount=1_000_000_000))
    await engine.transfer(make_params(amount=1_000_000, token='USDC'))
    await engine.transfer(make_params(amount=1), backend_name='privacycash')

    stats = engine.get_statistics()

    assert stats['total_transfers'] == 3
    assert stats['successful_transfers'] == 2
    assert stats['failed_transfers'] == 1
    assert stats['success_rate'] == pytest.approx(200 / 3)
    assert stats['total_volume'] == {'SOL': 1_000_000_000, 'USDC': 1_000_000}
    assert stats['by_backend']['privacycash'] == {'successful': 0, 'failed': 1}

    assert len(engine.get_history(success=False)) == 1
    assert len(engine.get_history(backend='arcium')) == 2
    assert len(engine.get_history(limit=1)) == 1


def test_engine_from_config(tmp_path, registry):
    path = tmp_path / "privacy_config.yaml"
    path.write_text("priority: [inco, mock]\nbackends:\n  inco:\n    enabled: true\n", encoding='utf-8')

    engine = PrivateTransferEngine(registry=registry, config_path=path)

    assert engine.priority == [BackendName.INCO, BackendName.MOCK]
    assert registry.has('inco')
    assert registry.has('mock')


def test_engine_reads_config_file_once(tmp_path, registry):
    path = tmp_path / "privacy_config.yaml"
    path.write_text("priority: [arcium, mock]\nbackends:\n  arcium:\n    delay_scale: 0\n", encoding='utf-8')

    with patch.object(yaml, 'safe_load', wraps=yaml.safe_load) as safe_load:
        engine = PrivateTransferEngine(registry=registry, config_path=path)

    assert safe_load.call_count == 1
    assert engine.priority == [BackendName.ARCIUM, BackendName.MOCK]
    assert registry.has('arcium')
