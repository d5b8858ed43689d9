"""
Unit tests for the PrivacyCash pool-mixing adapter
"""

import pytest

from privacy_backends import (
    TOKENS,
    BackendName,
    BelowMinimumAmountError,
    PaymentScanner,
    PrivacyCashAdapter,
    PrivacyCashConfig,
    PrivacyLevel,
    QuoteParams,
    TransferEventType,
    TransferStatus,
    UnsupportedCapabilityError,
    find_best_pool_size,
    supports,
)
from privacy_backends.backends.privacycash import PRIVACYCASH_PROGRAM_ID


def _quote_params(amount, token='SOL'):
    return QuoteParams(
        from_token=TOKENS[token],
        to_token=TOKENS[token],
        amount=amount,
        privacy_level=PrivacyLevel.SHIELDED,
    )


@pytest.mark.parametrize('amount, expected', [
    (50_000_000, None),
    (100_000_000, 100_000_000),
    (250_000_000, 100_000_000),
    (1_150_000_000, 1_000_000_000),
    (99_999_999_999, 10_000_000_000),
    (500_000_000_000, 100_000_000_000),
])
def test_find_best_pool_size(amount, expected):
    assert find_best_pool_size(amount, TOKENS['SOL']) == expected


@pytest.mark.asyncio
async def test_quote_below_minimum_pool(privacycash):
    with pytest.raises(BelowMinimumAmountError, match="Amount 50000000 is below minimum pool size for SOL"):
        await privacycash.get_quote(_quote_params(50_000_000))


@pytest.mark.asyncio
async def test_quote_snaps_to_pool_with_remainder_warning(privacycash):
    quote = await privacycash.get_quote(_quote_params(250_000_000))

    assert quote.metadata['poolSize'] == '100000000'
    assert quote.fee_amount == 100_000_000 * 35 // 10_000 + 6_000_000
    assert quote.fee_amount == 6_350_000
    assert quote.output_amount == 100_000_000 - 6_350_000
    assert quote.input_amount == 250_000_000
    assert quote.estimated_time_seconds == 3600
    assert quote.metadata['estimatedAnonymitySet'] == 100
    assert quote.warnings
    assert "150000000" in quote.warnings[0]


@pytest.mark.asyncio
async def test_quote_exact_pool_has_no_warning(privacycash):
    quote = await privacycash.get_quote(_quote_params(1_000_000_000))

    assert quote.warnings == []
    assert quote.fee_amount == 3_500_000 + 6_000_000


@pytest.mark.asyncio
async def test_stablecoin_pool_has_no_base_fee(privacycash):
    quote = await privacycash.get_quote(_quote_params(1_000_000_000, token='USDC'))

    assert quote.fee_amount == 3_500_000
    assert quote.fee_percent == 0.35


@pytest.mark.asyncio
async def test_transfer_two_phase_events(privacycash, make_params):
    events = []
    result = await privacycash.transfer(make_params(amount=1_150_000_000), events.append)

    assert result.success
    submitted = [e.tx_hash for e in events if e.type == TransferEventType.TX_SUBMITTED]
    confirmed = [e.tx_hash for e in events if e.type == TransferEventType.TX_CONFIRMED]
    proofs = [e.data for e in events if e.type == TransferEventType.PROOF_GENERATED]

    assert len(submitted) == 2
    assert result.metadata['depositTxHash'] == submitted[0]
    assert result.tx_hash == submitted[1] == confirmed[0]
    assert proofs == [{'proofType': 'withdrawal'}]

    assert events[0].status == TransferStatus.PENDING
    assert events[0].data['message'] == "Preparing deposit"
    assert events[-1].status == TransferStatus.SUCCESS
    assert any(e.data.get('commitment') == result.commitment for e in events)


@pytest.mark.asyncio
async def test_transfer_result_metadata(privacycash, make_params):
    params = make_params(amount=1_150_000_000)
    result = await privacycash.transfer(params)

    # Recipient is the withdrawal destination
    assert result.stealth_address == params.recipient
    assert result.metadata['poolSize'] == '1000000000'
    assert result.metadata['fee'] == str(9_500_000)
    assert result.metadata['outputAmount'] == str(1_000_000_000 - 9_500_000)
    assert result.metadata['anonymitySet'] == 100


@pytest.mark.asyncio
async def test_transfer_below_minimum_fails_structurally(privacycash, make_params):
    events = []
    result = await privacycash.transfer(make_params(amount=50_000_000), events.append)

    assert result.status == TransferStatus.FAILED
    assert result.error == "Amount 50000000 below minimum pool size"
    assert [(e.type, e.status) for e in events] == [
        (TransferEventType.STATUS_CHANGE, TransferStatus.PENDING),
        (TransferEventType.ERROR, None),
        (TransferEventType.STATUS_CHANGE, TransferStatus.FAILED),
    ]


@pytest.mark.asyncio
async def test_live_mode_reports_unavailable(make_params):
    adapter = PrivacyCashAdapter(PrivacyCashConfig(simulate=False, network='mainnet'))

    status = await adapter.get_status()
    assert not status.available
    assert status.error

    result = await adapter.transfer(make_params())
    assert result.status == TransferStatus.FAILED
    assert "not available" in result.error


def test_config_defaults():
    config = PrivacyCashConfig(network='mainnet')
    assert config.rpc_url == "https://api.mainnet-beta.solana.com"
    assert config.relayer_url == ""
    assert config.simulate


@pytest.mark.asyncio
async def test_capabilities_are_noops(privacycash, log_messages):
    assert await privacycash.scan_payments("vk") == []
    assert await privacycash.get_balance("addr") == 0
    assert len(log_messages) == 2

    with pytest.raises(UnsupportedCapabilityError):
        await privacycash.generate_stealth_address("meta")

    # Still satisfies the interface; features say it cannot do viewing keys
    assert supports(privacycash, PaymentScanner)
    assert not privacycash.features.viewing_keys


def test_features_agree_with_results(privacycash):
    assert privacycash.name == BackendName.PRIVACYCASH
    assert privacycash.features.recipient_hiding
    assert not privacycash.features.amount_hiding


def test_pool_helpers(privacycash):
    assert privacycash.get_pool_sizes(TOKENS['SOL'])[0] == 100_000_000
    assert privacycash.get_pool_sizes(TOKENS['USDT'])[-1] == 100_000_000_000
    assert privacycash.get_program_id() == PRIVACYCASH_PROGRAM_ID
