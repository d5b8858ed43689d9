"""
Inco Backend Adapter

Confidential transfers through Inco's Trusted Execution Environments (TEE).
Amount and recipient are encrypted client-side and only decrypted inside the
enclave that executes the transfer.

Features:
- Amount and recipient hiding via TEE encryption
- Fast (~2s), low fee (0.1% + 5,000 lamports for SOL)
- One-time recipient address for compatibility with stealth flows

Not supported: viewing keys (Inco uses programmable access control instead).
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


INCO_GATEWAY_URL = "https://gateway.inco.network"


@dataclass
class IncoConfig(AdapterConfig):
    """Inco adapter configuration"""
    gateway_url: str = INCO_GATEWAY_URL


class IncoAdapter(SimulatedBackend):
    """Inco TEE Backend Adapter"""

    name = BackendName.INCO
    display_name = "Inco"
    description = "TEE-based confidential transfers. Amounts and recipients are encrypted and processed inside secure enclaves."

    features = BackendFeatures(
        amount_hiding=True,
        recipient_hiding=True,
        viewing_keys=False,  # access control, not viewing keys
        same_chain_only=True,
        average_latency_ms=2000,
        privacy_model=PrivacyModel.ENCRYPTION,
    )

    FEE_BPS = 10  # 0.1%
    BASE_FEE_LAMPORTS = 5_000
    ESTIMATED_TIME_SECONDS = 2
    PENDING_MESSAGE = "Preparing encrypted transfer"

    def __init__(self, config: Optional[IncoConfig] = None, rng: Optional[RandomSource] = None):
        super().__init__(config or IncoConfig(), rng)

    async def get_quote(self, params: QuoteParams) -> Quote:
        self.validate_amount(params.amount)

        fee_amount = self.calculate_fee(params.amount, params.from_token)

        return self._build_quote(
            params,
            output_amount=params.amount - fee_amount,
            fee_amount=fee_amount,
            estimated_time_seconds=self.ESTIMATED_TIME_SECONDS,
            metadata={
                'encryptionType': 'TEE',
                'gatewayUrl': self.config.gateway_url,
            },
        )

    async def _simulate_transfer(self, params: TransferParams, emitter: TransferEventEmitter) -> TransferResult:
        """
        Simulated TEE transfer

        Process:
        1. Encrypt amount and recipient
        2. Sign
        3. Submit to the TEE and execute
        4. Confirm on-chain
        """
        self.validate_amount(params.amount)

        await emitter.status(TransferStatus.PENDING, "Encrypting transfer data")
        await self.delay(200)

        encrypted_amount = self.rng.token_hex(64)
        encrypted_recipient = self.rng.token_hex(64)
        await emitter.status(
            TransferStatus.PENDING,
            "Data encrypted",
            encryptedAmount=f"0x{encrypted_amount[:16]}...",
            encryptedRecipient=f"0x{encrypted_recipient[:16]}...",
        )

        await emitter.status(TransferStatus.SIGNING, "Signing transaction")
        await self.delay(300)

        await emitter.status(TransferStatus.PROCESSING, "Processing in TEE")
        tx_hash = self.generate_tx_hash()
        await emitter.tx_submitted(tx_hash)
        await self.delay(800)

        await emitter.status(TransferStatus.PROCESSING, "TEE executing confidential transfer")
        await self.delay(500)

        await emitter.status(TransferStatus.CONFIRMING, "Confirming on-chain")
        await self.delay(200)
        await emitter.tx_confirmed(tx_hash)

        return await emitter.succeed(TransferResult(
            status=TransferStatus.SUCCESS,
            tx_hash=tx_hash,
            explorer_url=self.explorer_url(tx_hash),
            stealth_address=self.rng.base58_address(),
            metadata={
                'encryptedAmount': f"0x{encrypted_amount}",
                'encryptedRecipient': f"0x{encrypted_recipient}",
                'teeProcessed': True,
                'gatewayUrl': self.config.gateway_url,
            },
        ))

    # ── Optional capabilities ───────────────────────────────────────

    async def scan_payments(self, viewing_key: str, from_block: Optional[int] = None) -> List[ScannedPayment]:
        self.warn("scan_payments requires access control setup. Configure attestations.")
        return []

    async def get_balance(self, address: str) -> int:
        """Balances are encrypted handles; decryption goes through the Inco SDK"""
        self.warn("get_balance returns an encrypted handle. Use the Inco SDK to decrypt.")
        return 0

    async def generate_stealth_address(self, meta_address: str) -> str:
        """Inco encrypts the recipient instead; a fresh one-time address keeps callers compatible"""
        return self.rng.base58_address()


# Default Inco adapter instance
inco_adapter = IncoAdapter()
