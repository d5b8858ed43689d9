"""
Mock Privacy Backend

Development/test implementation of the PrivacyBackend contract. Simulates all
privacy operations without real blockchain transactions.

Features:
- Configurable latency (with ±10% jitter) to mimic real backends
- Failure injection: quotes raise, transfers return a failed result
- Simulated stealth addresses and Pedersen commitments
- In-memory payment log for scan_payments()
"""

import asyncio
import threading
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import List, Optional

from .base import SimulatedBackend
from ..events import TransferEventEmitter
from ..exceptions import SimulatedFailureError
from ..randomness import RandomSource
from ..types import (
    BackendFeatures,
    BackendName,
    BackendStatus,
    Network,
    PrivacyLevel,
    PrivacyModel,
    Quote,
    QuoteParams,
    ScannedPayment,
    TransferParams,
    TransferResult,
    TransferStatus,
    utc_now,
)


@dataclass
class MockBackendConfig:
    """Configuration options for the mock backend"""
    latency_ms: float = 500
    failure_rate: float = 0.0  # probability 0-1
    network: Network = Network.DEVNET
    available: bool = True
    enforce_quote_expiry: bool = True

    def __post_init__(self):
        self.network = Network(self.network)
        if not 0 <= self.failure_rate <= 1:
            raise ValueError(f"failure_rate must be within [0, 1], got {self.failure_rate}")
        if self.latency_ms < 0:
            raise ValueError(f"latency_ms must be >= 0, got {self.latency_ms}")


class MockBackend(SimulatedBackend):
    """
    Mock Privacy Backend Implementation

    Transfer counter and payment log are lock-guarded so the backend is safe to
    share across threads as well as concurrent tasks.
    """

    name = BackendName.MOCK
    display_name = "Mock Backend"
    description = "Development backend for testing. Simulates privacy operations without real transactions."

    features = BackendFeatures(
        amount_hiding=True,
        recipient_hiding=True,
        viewing_keys=True,
        same_chain_only=True,
        average_latency_ms=500,
        privacy_model=PrivacyModel.CRYPTOGRAPHIC,
    )

    FEE_BPS = 30  # 0.3%
    QUOTE_TTL = timedelta(minutes=1)

    # Estimated seconds per privacy level
    ESTIMATED_TIME_SECONDS = {
        PrivacyLevel.TRANSPARENT: 2,
        PrivacyLevel.SHIELDED: 5,
        PrivacyLevel.COMPLIANT: 4,
    }

    SIMULATED_FAILURE = "Mock: Transfer failed (simulated failure)"

    def __init__(self, config: Optional[MockBackendConfig] = None, rng: Optional[RandomSource] = None):
        super().__init__(config or MockBackendConfig(), rng)
        self._lock = threading.Lock()
        self._transfer_counter = 0
        self._payments: List[ScannedPayment] = []

    def configure(self, **changes):
        """
        Update configuration

        Example:
            backend.configure(failure_rate=1.0, available=False)
        """
        self.config = replace(self.config, **changes)

    # ── Simulation helpers ──────────────────────────────────────────

    async def simulate_latency(self, multiplier: float = 1.0):
        """Simulate network latency: latency_ms * multiplier with ±10% jitter"""
        jitter = self.rng.random() * 0.2 - 0.1
        await asyncio.sleep(max(0.0, self.config.latency_ms * multiplier * (1 + jitter) / 1000))

    def should_fail(self) -> bool:
        return self.rng.random() < self.config.failure_rate

    def _next_transfer_id(self) -> int:
        with self._lock:
            self._transfer_counter += 1
            return self._transfer_counter

    @property
    def transfer_count(self) -> int:
        with self._lock:
            return self._transfer_counter

    # ── Contract ────────────────────────────────────────────────────

    async def get_status(self) -> BackendStatus:
        await self.simulate_latency(0.2)

        return BackendStatus(
            available=self.config.available,
            network=self.config.network,
            latency_ms=int(self.config.latency_ms),
            last_checked=utc_now(),
            error=None if self.config.available else "Backend unavailable (mock)",
        )

    async def get_quote(self, params: QuoteParams) -> Quote:
        self.validate_amount(params.amount)
        await self.simulate_latency(0.5)

        if self.should_fail():
            raise SimulatedFailureError("Mock: Failed to get quote (simulated failure)")

        fee_amount = self.calculate_fee(params.amount, params.from_token)

        return self._build_quote(
            params,
            output_amount=params.amount - fee_amount,
            fee_amount=fee_amount,
            estimated_time_seconds=self.ESTIMATED_TIME_SECONDS.get(PrivacyLevel(params.privacy_level), 2),
        )

    async def _execute_transfer(self, params: TransferParams, emitter: TransferEventEmitter) -> TransferResult:
        self.validate_amount(params.amount)
        transfer_id = self._next_transfer_id()

        await self.simulate_latency(0.3)

        if self.should_fail():
            return await emitter.fail(self.SIMULATED_FAILURE, transferId=transfer_id)

        await emitter.status(TransferStatus.SIGNING)
        await self.simulate_latency(0.5)

        tx_hash = self.generate_tx_hash()
        stealth_address = self.rng.base58_address()
        commitment = self.generate_commitment()

        await emitter.status(TransferStatus.CONFIRMING)
        await emitter.tx_submitted(tx_hash)
        await self.simulate_latency(1.5)
        await emitter.tx_confirmed(tx_hash)

        if params.privacy_level != PrivacyLevel.TRANSPARENT:
            await self.simulate_latency(0.8)
            await emitter.proof_generated(commitment=commitment)

        self.add_mock_payment(ScannedPayment(
            id=f"payment-{transfer_id}",
            amount=params.amount,
            token=params.to_token,
            sender=params.sender,
            stealth_address=stealth_address,
            tx_hash=tx_hash,
            timestamp=utc_now(),
            claimed=False,
        ))

        return await emitter.succeed(TransferResult(
            status=TransferStatus.SUCCESS,
            tx_hash=tx_hash,
            explorer_url=self.explorer_url(tx_hash),
            stealth_address=stealth_address,
            commitment=commitment,
            viewing_key=params.viewing_key if params.privacy_level == PrivacyLevel.COMPLIANT else None,
            metadata={
                'transferId': transfer_id,
                'simulatedAt': utc_now().isoformat(),
            },
        ))

    # ── Optional capabilities ───────────────────────────────────────

    async def scan_payments(self, viewing_key: str, from_block: Optional[int] = None) -> List[ScannedPayment]:
        """Return recorded payments (the viewing key is not checked by the mock)"""
        await self.simulate_latency(1)
        with self._lock:
            return [replace(payment) for payment in self._payments]

    async def get_balance(self, address: str) -> int:
        """Random balance below 10 SOL, in lamports"""
        await self.simulate_latency(0.3)
        return self.rng.randbelow(10 * 10**9)

    async def generate_stealth_address(self, meta_address: str) -> str:
        await self.simulate_latency(0.2)
        return self.rng.base58_address()

    # ── Test helpers ────────────────────────────────────────────────

    def add_mock_payment(self, payment: ScannedPayment):
        with self._lock:
            self._payments.append(payment)

    def clear_mock_payments(self):
        with self._lock:
            self._payments.clear()


# Default mock backend instance
mock_backend = MockBackend()
