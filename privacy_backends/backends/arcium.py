"""
Arcium Backend Adapter

MPC-based confidential computing through Arcium's MXE (multi-party execution)
network. Amounts are encrypted and computed over by distributed nodes.

Features:
- Amount hiding (C-SPL confidential tokens)
- Fixed number of MPC rounds per transfer
- 0.2% fee + 10,000 lamports for SOL

Recipients are PUBLIC under C-SPL: only amounts are hidden.
"""

from dataclasses import dataclass
from typing import List, Optional

from .base import AdapterConfig, SimulatedBackend
from ..events import TransferEventEmitter
from ..randomness import RandomSource
from ..types import (
    BackendFeatures,
    BackendName,
    PrivacyModel,
    Quote,
    QuoteParams,
    ScannedPayment,
    TransferParams,
    TransferResult,
    TransferStatus,
)


ARCIUM_MXE_CLUSTER_URL = "https://mxe.arcium.network"


@dataclass
class ArciumConfig(AdapterConfig):
    """Arcium adapter configuration"""
    mxe_cluster_url: str = ARCIUM_MXE_CLUSTER_URL


class ArciumAdapter(SimulatedBackend):
    """Arcium MPC Backend Adapter"""

    name = BackendName.ARCIUM
    display_name = "Arcium"
    description = "MPC-based confidential computing for Solana. Private DeFi with encrypted data processing across distributed nodes."

    features = BackendFeatures(
        amount_hiding=True,      # MPC-encrypted amounts
        recipient_hiding=False,  # recipients public (C-SPL)
        viewing_keys=False,
        same_chain_only=True,
        average_latency_ms=3000,
        privacy_model=PrivacyModel.MPC,
    )

    FEE_BPS = 20  # 0.2%
    BASE_FEE_LAMPORTS = 10_000
    PENDING_MESSAGE = "Preparing confidential instruction"

    MPC_ROUNDS = 3
    SECONDS_PER_ROUND = 1

    def __init__(self, config: Optional[ArciumConfig] = None, rng: Optional[RandomSource] = None):
        super().__init__(config or ArciumConfig(), rng)

    @property
    def estimated_time_seconds(self) -> int:
        return self.MPC_ROUNDS * self.SECONDS_PER_ROUND

    async def get_quote(self, params: QuoteParams) -> Quote:
        self.validate_amount(params.amount)

        fee_amount = self.calculate_fee(params.amount, params.from_token)

        return self._build_quote(
            params,
            output_amount=params.amount - fee_amount,
            fee_amount=fee_amount,
            estimated_time_seconds=self.estimated_time_seconds,
            metadata={
                'computationType': 'MPC',
                'mxeClusterUrl': self.config.mxe_cluster_url,
                'confidentialToken': True,  # C-SPL
            },
        )

    async def _simulate_transfer(self, params: TransferParams, emitter: TransferEventEmitter) -> TransferResult:
        """
        Simulated MPC transfer

        Process:
        1. Create the confidential instruction and encrypt the amount
        2. Sign for MXE submission
        3. Run MPC_ROUNDS computation rounds
        4. Aggregate results and confirm on-chain
        """
        self.validate_amount(params.amount)

        await emitter.status(TransferStatus.PENDING, "Creating confidential instruction")
        await self.delay(200)

        encrypted_amount = self.rng.token_hex(64)
        await emitter.status(
            TransferStatus.PENDING,
            "Amount encrypted for MPC",
            encryptedAmount=f"0x{encrypted_amount[:16]}...",
        )

        await emitter.status(TransferStatus.SIGNING, "Signing for MXE submission")
        await self.delay(300)

        await emitter.status(TransferStatus.PROCESSING, "MPC computation in progress...")
        await self.delay(500)

        for mpc_round in range(1, self.MPC_ROUNDS + 1):
            await emitter.status(
                TransferStatus.PROCESSING,
                "MXE nodes computing over encrypted data",
                mpcRound=mpc_round,
                totalRounds=self.MPC_ROUNDS,
            )
            await self.delay(400)

        await emitter.proof_generated(proofType="mpc_computation")

        await emitter.status(TransferStatus.CONFIRMING, "Aggregating MPC results")
        await self.delay(200)

        tx_hash = self.generate_tx_hash()
        await emitter.tx_submitted(tx_hash)
        await self.delay(300)
        await emitter.tx_confirmed(tx_hash)

        return await emitter.succeed(
            TransferResult(
                status=TransferStatus.SUCCESS,
                tx_hash=tx_hash,
                explorer_url=self.explorer_url(tx_hash),
                commitment=self.generate_commitment(),
                stealth_address=params.recipient,  # C-SPL keeps recipients public
                metadata={
                    'encryptedAmount': f"0x{encrypted_amount}",
                    'mpcComputed': True,
                    'mxeClusterUrl': self.config.mxe_cluster_url,
                    'confidentialTokenStandard': 'C-SPL',
                    'mpcRounds': self.MPC_ROUNDS,
                },
            ),
            message="Confidential transfer complete",
        )

    # ── Optional capabilities ───────────────────────────────────────

    async def scan_payments(self, viewing_key: str, from_block: Optional[int] = None) -> List[ScannedPayment]:
        self.warn("scan_payments: amounts are encrypted. Query the recipient's C-SPL account.")
        return []

    async def get_balance(self, address: str) -> int:
        self.warn("get_balance: balance is encrypted. Use the MXE cluster to decrypt.")
        return 0

    async def generate_stealth_address(self, meta_address: str) -> str:
        """Not applicable: C-SPL recipients are public, the input is returned unchanged"""
        self.warn("C-SPL keeps recipients public. Returning input address.")
        return meta_address


# Default Arcium adapter instance
arcium_adapter = ArciumAdapter()
