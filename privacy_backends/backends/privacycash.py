"""
PrivacyCash Backend Adapter

Pool-based mixing for Solana: deposit into a fixed-size anonymity pool, then
withdraw to the recipient to break the on-chain link.

Features:
- Fixed pool sizes (0.1 / 1 / 10 / 100 SOL, 100 .. 100,000 USDC/USDT)
- Amount snapped down to the largest pool that fits (remainder stays with sender)
- Two-phase transfer: deposit (commitment) then withdrawal (ZK proof)

Not supported: viewing keys, payment scanning, stealth addresses.
Privacy is statistical (anonymity set), not cryptographic.
"""

from dataclasses import dataclass
from typing import List, Optional

from .base import AdapterConfig, SimulatedBackend
from ..events import TransferEventEmitter
from ..exceptions import BelowMinimumAmountError, UnsupportedCapabilityError
from ..randomness import RandomSource
from ..types import (
    BackendFeatures,
    BackendName,
    PrivacyModel,
    Quote,
    QuoteParams,
    ScannedPayment,
    TokenInfo,
    TransferParams,
    TransferResult,
    TransferStatus,
)


# PrivacyCash program ID on Solana mainnet
PRIVACYCASH_PROGRAM_ID = "9fhQBbumKEFuXtMBDw8AaQyAjCorLGJQiS3skWZdQyQD"

# Standard pool sizes for SOL (lamports)
SOL_POOL_SIZES = [
    100_000_000,      # 0.1 SOL
    1_000_000_000,    # 1 SOL
    10_000_000_000,   # 10 SOL
    100_000_000_000,  # 100 SOL
]

# Standard pool sizes for USDC/USDT (6 decimals)
STABLE_POOL_SIZES = [
    100_000_000,      # 100
    1_000_000_000,    # 1,000
    10_000_000_000,   # 10,000
    100_000_000_000,  # 100,000
]

ESTIMATED_ANONYMITY_SET = 100


def get_pool_sizes(token: TokenInfo) -> List[int]:
    return list(SOL_POOL_SIZES if token.is_native else STABLE_POOL_SIZES)


def find_best_pool_size(amount: int, token: TokenInfo) -> Optional[int]:
    """
    Find the largest pool that fits the amount

    Args:
        amount: Amount in base units
        token: Token being deposited

    Returns:
        Pool size, or None if the amount is below the smallest pool
    """
    best_pool = None
    for pool_size in get_pool_sizes(token):
        if pool_size <= amount:
            best_pool = pool_size
    return best_pool


@dataclass
class PrivacyCashConfig(AdapterConfig):
    """PrivacyCash adapter configuration"""
    relayer_url: str = ""  # optional, for gasless withdrawals


class PrivacyCashAdapter(SimulatedBackend):
    """
    PrivacyCash Backend Adapter

    Process:
    1. Deposit the pool-sized amount (generates a commitment)
    2. Wait for the anonymity set to grow
    3. Withdraw to the recipient with a ZK proof
    """

    name = BackendName.PRIVACYCASH
    display_name = "PrivacyCash"
    description = "Pool-based mixing for Solana. Deposit to anonymity pools, withdraw to break the on-chain link."

    features = BackendFeatures(
        amount_hiding=False,     # amounts visible as pool sizes
        recipient_hiding=True,   # pool mixing hides the recipient
        viewing_keys=False,      # no compliance support
        same_chain_only=True,
        average_latency_ms=3_600_000,  # ~1 hour for pool anonymity
        privacy_model=PrivacyModel.STATISTICAL,
    )

    FEE_BPS = 35  # 0.35%
    BASE_FEE_LAMPORTS = 6_000_000  # 0.006 SOL
    ESTIMATED_TIME_SECONDS = 3600
    PENDING_MESSAGE = "Preparing deposit"

    def __init__(self, config: Optional[PrivacyCashConfig] = None, rng: Optional[RandomSource] = None):
        super().__init__(config or PrivacyCashConfig(), rng)

    async def get_quote(self, params: QuoteParams) -> Quote:
        """
        Quote a pool deposit

        The fee is charged on the pool size, not on the requested amount.

        Raises:
            BelowMinimumAmountError: If the amount is below the smallest pool
        """
        self.validate_amount(params.amount)

        pool_size = find_best_pool_size(params.amount, params.from_token)
        if pool_size is None:
            raise BelowMinimumAmountError(
                f"Amount {params.amount} is below minimum pool size for {params.from_token.symbol}"
            )

        fee_amount = self.calculate_fee(pool_size, params.from_token)

        metadata = {
            'poolSize': str(pool_size),
            'estimatedAnonymitySet': ESTIMATED_ANONYMITY_SET,
        }
        if params.amount > pool_size:
            metadata['warnings'] = [
                f"Only {pool_size} will be deposited. Remainder: {params.amount - pool_size}"
            ]

        return self._build_quote(
            params,
            output_amount=pool_size - fee_amount,
            fee_amount=fee_amount,
            estimated_time_seconds=self.ESTIMATED_TIME_SECONDS,
            metadata=metadata,
        )

    async def _execute_transfer(self, params: TransferParams, emitter: TransferEventEmitter) -> TransferResult:
        self.validate_amount(params.amount)

        if find_best_pool_size(params.amount, params.from_token) is None:
            return await emitter.fail(f"Amount {params.amount} below minimum pool size")

        return await super()._execute_transfer(params, emitter)

    async def _simulate_transfer(self, params: TransferParams, emitter: TransferEventEmitter) -> TransferResult:
        pool_size = find_best_pool_size(params.amount, params.from_token)
        fee = self.calculate_fee(pool_size, params.from_token)

        # Phase 1: deposit
        await emitter.status(TransferStatus.SIGNING, "Signing deposit transaction")
        await self.delay(500)

        await emitter.status(TransferStatus.CONFIRMING, "Confirming deposit")
        deposit_tx_hash = self.generate_tx_hash()
        await emitter.tx_submitted(deposit_tx_hash)
        await self.delay(1000)

        commitment = self.generate_commitment()
        await emitter.status(
            TransferStatus.CONFIRMING,
            "Deposit confirmed. Commitment generated.",
            commitment=commitment,
            poolSize=str(pool_size),
        )

        # Phase 2: anonymity set (real deployments wait much longer)
        await emitter.status(TransferStatus.CONFIRMING, "Waiting for anonymity set...")
        await self.delay(500)

        # Phase 3: withdrawal
        await emitter.status(TransferStatus.SIGNING, "Generating ZK proof for withdrawal")
        await self.delay(1000)
        await emitter.proof_generated(proofType="withdrawal")

        await emitter.status(TransferStatus.CONFIRMING, "Submitting withdrawal")
        withdraw_tx_hash = self.generate_tx_hash()
        await emitter.tx_submitted(withdraw_tx_hash)
        await self.delay(1000)
        await emitter.tx_confirmed(withdraw_tx_hash)

        return await emitter.succeed(TransferResult(
            status=TransferStatus.SUCCESS,
            tx_hash=withdraw_tx_hash,
            explorer_url=self.explorer_url(withdraw_tx_hash),
            commitment=commitment,
            stealth_address=params.recipient,
            metadata={
                'depositTxHash': deposit_tx_hash,
                'poolSize': str(pool_size),
                'outputAmount': str(pool_size - fee),
                'fee': str(fee),
                'anonymitySet': ESTIMATED_ANONYMITY_SET,
            },
        ))

    # ── Optional capabilities ───────────────────────────────────────

    async def scan_payments(self, viewing_key: str, from_block: Optional[int] = None) -> List[ScannedPayment]:
        """Not supported: deposits are commitments, tracked off-chain by the user"""
        self.warn("scan_payments not supported. Track commitments off-chain.")
        return []

    async def get_balance(self, address: str) -> int:
        """Pool balances need the user's off-chain note data"""
        self.warn("get_balance requires off-chain commitment tracking")
        return 0

    async def generate_stealth_address(self, meta_address: str) -> str:
        raise UnsupportedCapabilityError(
            "PrivacyCash does not support stealth addresses. Use a fresh wallet address instead."
        )

    def get_pool_sizes(self, token: TokenInfo) -> List[int]:
        """Get supported pool sizes for a token"""
        return get_pool_sizes(token)

    def get_program_id(self) -> str:
        return PRIVACYCASH_PROGRAM_ID


# Default PrivacyCash adapter instance
privacycash_adapter = PrivacyCashAdapter()
