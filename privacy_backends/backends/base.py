"""
Simulated Adapter Base

Shared plumbing for the bundled adapters:
- Fee formula (basis points + native-asset base fee)
- Quote construction and expiry horizon
- Transfer template: pending first, quote verification, failure conversion
- Simulation delays scaled by ``delay_scale``
- Injectable RandomSource for hashes, commitments and addresses
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from loguru import logger

from ..backend import PrivacyBackend
from ..events import TransferEventCallback, TransferEventEmitter
from ..exceptions import (
    BackendUnavailableError,
    EventSequenceError,
    InvalidAmountError,
    PrivacyBackendError,
    QuoteExpiredError,
    QuoteMismatchError,
)
from ..randomness import RandomSource, default_random
from ..types import (
    BackendStatus,
    Network,
    Quote,
    QuoteParams,
    TokenInfo,
    TransferParams,
    TransferResult,
    TransferStatus,
    utc_now,
)


SOLANA_RPC_URLS = {
    Network.MAINNET: "https://api.mainnet-beta.solana.com",
    Network.DEVNET: "https://api.devnet.solana.com",
    Network.TESTNET: "https://api.testnet.solana.com",
}

EXPLORER_URL = "https://explorer.solana.com/tx/{tx_hash}?cluster={cluster}"

BPS_DENOMINATOR = 10_000


@dataclass
class AdapterConfig:
    """Common adapter configuration"""
    network: Network = Network.DEVNET
    rpc_url: Optional[str] = None
    simulate: bool = True
    delay_scale: float = 1.0  # 0 disables simulated waits
    enforce_quote_expiry: bool = True

    def __post_init__(self):
        self.network = Network(self.network)
        if not self.rpc_url:
            self.rpc_url = SOLANA_RPC_URLS[self.network]


class SimulatedBackend(PrivacyBackend):
    """
    Base class for adapters that simulate their protocol

    Subclasses set FEE_BPS / BASE_FEE_LAMPORTS and implement get_quote()
    and _simulate_transfer().
    """

    FEE_BPS = 0
    BASE_FEE_LAMPORTS = 0  # applied to the native asset only
    QUOTE_TTL = timedelta(minutes=5)
    SIMULATED_STATUS_LATENCY_MS = 50
    PENDING_MESSAGE: Optional[str] = None

    def __init__(self, config, rng: Optional[RandomSource] = None):
        self.config = config
        self.rng = rng or default_random

    # ── Fees & quotes ───────────────────────────────────────────────

    @property
    def fee_percent(self) -> float:
        return self.FEE_BPS / 100

    def calculate_fee(self, amount: int, token: TokenInfo) -> int:
        """
        Calculate the fee for an amount

        Args:
            amount: Amount in base units
            token: Token being transferred

        Returns:
            Fee in base units (percentage part rounded down)
        """
        fee = amount * self.FEE_BPS // BPS_DENOMINATOR
        if token.is_native:
            fee += self.BASE_FEE_LAMPORTS
        return fee

    @staticmethod
    def validate_amount(amount: int):
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidAmountError(f"Amount must be an integer in base units, got {type(amount).__name__}")
        if amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {amount}")

    def _new_quote_id(self) -> str:
        return f"{self.name.value}-quote-{int(time.time() * 1000)}-{self.rng.token_hex(8)}"

    def _build_quote(
        self,
        params: QuoteParams,
        output_amount: int,
        fee_amount: int,
        estimated_time_seconds: int,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Quote:
        return Quote(
            id=self._new_quote_id(),
            backend=self.name,
            input_amount=params.amount,
            output_amount=output_amount,
            fee_amount=fee_amount,
            fee_percent=self.fee_percent,
            estimated_time_seconds=estimated_time_seconds,
            expires_at=utc_now() + self.QUOTE_TTL,
            is_valid=True,
            metadata=metadata or {},
        )

    def _verify_quote(self, params: TransferParams):
        quote = params.quote
        if quote is None:
            return
        if quote.backend != self.name:
            raise QuoteMismatchError(
                f"Quote {quote.id} was issued by '{quote.backend.value}', not '{self.name.value}'"
            )
        if not quote.is_valid:
            raise QuoteMismatchError(f"Quote {quote.id} is not valid")
        if quote.input_amount != params.amount:
            raise QuoteMismatchError(
                f"Quote {quote.id} is for amount {quote.input_amount}, transfer amount is {params.amount}"
            )
        if self.config.enforce_quote_expiry and quote.is_expired():
            raise QuoteExpiredError(f"Quote {quote.id} expired at {quote.expires_at.isoformat()}")

    # ── Status ──────────────────────────────────────────────────────

    async def get_status(self) -> BackendStatus:
        now = utc_now()

        if self.config.simulate:
            return BackendStatus(
                available=True,
                network=self.config.network,
                latency_ms=self.SIMULATED_STATUS_LATENCY_MS,
                last_checked=now,
            )

        start = time.monotonic()
        return BackendStatus(
            available=False,
            network=self.config.network,
            latency_ms=int((time.monotonic() - start) * 1000),
            last_checked=now,
            error=f"Live {self.display_name} client is not configured (simulate=False)",
        )

    # ── Transfer template ───────────────────────────────────────────

    async def transfer(
        self,
        params: TransferParams,
        on_event: Optional[TransferEventCallback] = None
    ) -> TransferResult:
        """
        Execute a private transfer

        Process:
        1. Emit status_change(pending)
        2. Verify the supplied quote (backend, validity, expiry)
        3. Run backend-specific phases
        4. Convert any internal fault into error + failed events

        Cancelling the calling task emits the failed events and re-raises.
        """
        logger.info(f"[{self.display_name}] Starting transfer: {params.amount} {params.from_token.symbol} "
                    f"({params.privacy_level.value})")

        async with TransferEventEmitter(on_event, backend=self.name.value) as emitter:
            try:
                await emitter.status(TransferStatus.PENDING, self.PENDING_MESSAGE)
                self._verify_quote(params)
                result = await self._execute_transfer(params, emitter)

                if emitter.terminal_status is None:
                    result = await emitter.fail("Transfer ended without a terminal status")

            except asyncio.CancelledError:
                if emitter.terminal_status is None:
                    await emitter.fail("Transfer cancelled")
                logger.warning(f"[{self.display_name}] Transfer cancelled")
                raise

            except EventSequenceError:
                raise

            except PrivacyBackendError as e:
                logger.error(f"✗ [{self.display_name}] Transfer failed: {e}")
                if emitter.terminal_status is not None:
                    raise
                result = await emitter.fail(str(e))

            except Exception as e:
                logger.exception(f"✗ [{self.display_name}] Unexpected transfer error")
                if emitter.terminal_status is not None:
                    raise
                result = await emitter.fail(str(e) or type(e).__name__)

        if result.success:
            logger.info(f"✓ [{self.display_name}] Transfer complete: {result.tx_hash}")
        return result

    async def _execute_transfer(self, params: TransferParams, emitter: TransferEventEmitter) -> TransferResult:
        if self.config.simulate:
            return await self._simulate_transfer(params, emitter)

        await emitter.status(TransferStatus.PENDING, f"Connecting to {self.display_name}")
        raise BackendUnavailableError(f"Production {self.display_name} integration not available")

    async def _simulate_transfer(self, params: TransferParams, emitter: TransferEventEmitter) -> TransferResult:
        raise NotImplementedError

    # ── Helpers ─────────────────────────────────────────────────────

    async def delay(self, ms: float):
        """Simulated wait, scaled by config.delay_scale"""
        seconds = ms / 1000 * self.config.delay_scale
        if seconds > 0:
            await asyncio.sleep(seconds)
        else:
            await asyncio.sleep(0)

    def generate_tx_hash(self) -> str:
        return self.rng.token_hex(64)

    def generate_commitment(self) -> str:
        return f"0x{self.rng.token_hex(64)}"

    def explorer_url(self, tx_hash: str) -> str:
        return EXPLORER_URL.format(tx_hash=tx_hash, cluster=self.config.network.value)

    def warn(self, message: str):
        logger.warning(f"[{self.display_name}] {message}")
