"""
Private Transfer Engine

One-call orchestration on top of the backend registry:
1. Compliance checks (viewing key + backend support)
2. Backend selection (explicit name or best available by priority)
3. Transfer with event forwarding
4. Optional fallback to the next backend
5. Transfer history and statistics
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, asdict, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from .backend import PrivacyBackend
from .config import initialize_privacy, load_privacy_config, parse_priority
from .events import TransferEventCallback
from .exceptions import (
    BackendNotRegisteredError,
    ComplianceError,
    NoBackendAvailableError,
)
from .registry import BACKEND_PRIORITY, BackendRegistry, backend_registry, get_best_backend
from .types import (
    BackendName,
    PrivacyLevel,
    Quote,
    QuoteParams,
    TransferEvent,
    TransferEventType,
    TransferParams,
    TransferResult,
    TransferStatus,
    utc_now,
)


@dataclass
class TransferRecord:
    """Completed transfer record (one per engine.transfer call)"""
    request_id: str
    backend: str
    token: str
    amount: int
    privacy_level: str
    success: bool
    status: str
    tx_hash: Optional[str]
    fee_amount: Optional[int]
    total_time_seconds: float
    error_message: Optional[str]
    created_at: datetime
    completed_at: datetime
    attempts: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['amount'] = str(self.amount)
        data['fee_amount'] = str(self.fee_amount) if self.fee_amount is not None else None
        data['created_at'] = self.created_at.isoformat()
        data['completed_at'] = self.completed_at.isoformat()
        return data


class PrivateTransferEngine:
    """
    Private transfer engine

    Features:
    - Viewing-key compliance enforcement
    - Priority-based backend selection
    - Automatic fallback while no transaction has been submitted
    - In-memory transfer history
    """

    MAX_FALLBACK_ATTEMPTS = 2

    def __init__(
        self,
        registry: Optional[BackendRegistry] = None,
        priority: Optional[List[BackendName]] = None,
        enable_fallback: bool = False,
        max_fallback_attempts: int = MAX_FALLBACK_ATTEMPTS,
        config_path: Optional[Union[str, Path]] = None
    ):
        """
        Initialize transfer engine

        Args:
            registry: Backend registry (default: global registry)
            priority: Selection priority (default: BACKEND_PRIORITY)
            enable_fallback: Retry failed transfers on the next backend
            max_fallback_attempts: Max extra backends tried per transfer
            config_path: Optional privacy_config.yaml used to populate the registry
        """
        if registry is None:
            registry = backend_registry

        if config_path is not None:
            config = load_privacy_config(config_path)
            registry = initialize_privacy(registry=registry, config=config)
            if priority is None:
                priority = parse_priority(config.get('priority'))

        self.registry = registry
        self.priority = list(priority or BACKEND_PRIORITY)
        self.enable_fallback = enable_fallback
        self.max_fallback_attempts = max_fallback_attempts

        self.transfer_history: List[TransferRecord] = []

        logger.info("Private Transfer Engine initialized")
        logger.info(f"  Priority: {[name.value for name in self.priority]}")
        logger.info(f"  Fallback: {'enabled' if enable_fallback else 'disabled'}")

    # ── Selection ──────────────────────────────────────────────────

    @staticmethod
    def check_compliance(params: TransferParams, backend: Optional[PrivacyBackend] = None):
        """
        Check compliant-transfer requirements

        Raises:
            ComplianceError: If a compliant transfer has no viewing key, or the
                backend cannot honour viewing keys
        """
        if PrivacyLevel(params.privacy_level) != PrivacyLevel.COMPLIANT:
            return
        if not params.viewing_key:
            raise ComplianceError("Compliant transfers require a viewing key")
        if backend is not None and not backend.features.viewing_keys:
            raise ComplianceError(
                f"Backend '{backend.name.value}' does not support viewing keys required for compliant transfers"
            )

    async def select_backend(
        self,
        params: Union[TransferParams, QuoteParams],
        backend_name: Optional[Union[BackendName, str]] = None,
        exclude: Optional[List[BackendName]] = None
    ) -> PrivacyBackend:
        """
        Select the backend for a transfer

        Args:
            params: Transfer or quote parameters
            backend_name: Explicit backend (skips priority selection)
            exclude: Backends that already failed

        Returns:
            PrivacyBackend

        Raises:
            BackendNotRegisteredError: If backend_name is not registered
            NoBackendAvailableError: If no suitable backend is available
            ComplianceError: If an explicit backend lacks viewing keys for a compliant transfer
        """
        compliant = PrivacyLevel(params.privacy_level) == PrivacyLevel.COMPLIANT

        if backend_name is not None:
            backend = self.registry.get(backend_name)
            if backend is None:
                raise BackendNotRegisteredError(f"Backend '{backend_name}' is not registered")
            if compliant and not backend.features.viewing_keys:
                raise ComplianceError(
                    f"Backend '{backend.name.value}' does not support viewing keys required for compliant transfers"
                )
            return backend

        excluded = set(exclude or [])
        priority = [name for name in self.priority if name not in excluded]

        return await get_best_backend(
            require_viewing_keys=compliant,
            registry=self.registry,
            priority=priority,
        )

    # ── Quotes ─────────────────────────────────────────────────────

    async def quote(
        self,
        params: Union[TransferParams, QuoteParams],
        backend_name: Optional[Union[BackendName, str]] = None
    ) -> Quote:
        """
        Get a quote from the selected backend

        Returns:
            Quote (its ``backend`` field names the backend to transfer with)
        """
        backend = await self.select_backend(params, backend_name)
        quote_params = params.to_quote_params() if isinstance(params, TransferParams) else params

        quote = await backend.get_quote(quote_params)
        logger.info(f"Quote from {backend.display_name}: fee {quote.fee_amount} "
                    f"({quote.fee_percent}%), ~{quote.estimated_time_seconds}s")
        for warning in quote.warnings:
            logger.warning(f"⚠ {warning}")
        return quote

    # ── Transfer ───────────────────────────────────────────────────

    async def transfer(
        self,
        params: TransferParams,
        on_event: Optional[TransferEventCallback] = None,
        backend_name: Optional[Union[BackendName, str]] = None
    ) -> TransferResult:
        """
        Execute a private transfer with compliance checks and optional fallback

        Process:
        1. Check compliance requirements
        2. Select backend (quote's backend, explicit name, or by priority)
        3. Run backend.transfer, forwarding every event
        4. On failure before any tx was submitted, try the next backend
        5. Record the outcome in history

        Each attempt produces its own complete event sequence
        (pending ... success|failed) on ``on_event``.

        Args:
            params: Transfer parameters
            on_event: Optional event callback
            backend_name: Explicit backend name

        Returns:
            TransferResult of the last attempt

        Raises:
            ComplianceError, BackendNotRegisteredError, NoBackendAvailableError:
                If no attempt could be started
        """
        request_id = f"ptx-{uuid.uuid4().hex[:12]}"
        created_at = utc_now()
        start = time.monotonic()

        self.check_compliance(params)

        if backend_name is None and params.quote is not None:
            backend_name = params.quote.backend

        logger.info(f"Starting private transfer {request_id}")
        logger.info(f"  Amount: {params.amount} {params.from_token.symbol}")
        logger.info(f"  Privacy: {PrivacyLevel(params.privacy_level).value}")

        attempts: List[BackendName] = []
        backend = await self.select_backend(params, backend_name)
        result: Optional[TransferResult] = None

        try:
            while True:
                attempts.append(backend.name)
                logger.info(f"Transfer attempt {len(attempts)} using {backend.display_name}")

                attempt_params = params
                if params.quote is not None and params.quote.backend != backend.name:
                    attempt_params = replace(params, quote=None)

                submitted = []

                async def forward(event: TransferEvent):
                    if event.type == TransferEventType.TX_SUBMITTED:
                        submitted.append(event.tx_hash)
                    if on_event is not None:
                        outcome = on_event(event)
                        if asyncio.iscoroutine(outcome):
                            await outcome

                result = await backend.transfer(attempt_params, forward)

                if result.success or not self._should_fall_back(attempts, submitted):
                    break

                logger.warning(f"Attempt {len(attempts)} failed on '{backend.name.value}': {result.error}, trying fallback...")
                try:
                    backend = await self.select_backend(params, exclude=attempts)
                except NoBackendAvailableError:
                    logger.error("No fallback backend available")
                    break

        except asyncio.CancelledError:
            logger.warning(f"Transfer {request_id} was cancelled")
            result = TransferResult(status=TransferStatus.FAILED, error="Transfer cancelled")
            self._record(request_id, params, backend, result, attempts, created_at, start)
            raise

        if result.success:
            logger.info(f"✅ Transfer {request_id} completed via {backend.display_name}: {result.tx_hash}")
        else:
            logger.error(f"❌ Transfer {request_id} failed: {result.error}")

        self._record(request_id, params, backend, result, attempts, created_at, start)
        return result

    def _should_fall_back(self, attempts: List[BackendName], submitted: List[str]) -> bool:
        if not self.enable_fallback:
            return False
        if submitted:
            # Funds may have moved; never retry on another backend
            logger.warning(f"Not falling back: transaction {submitted[-1]} already submitted")
            return False
        return len(attempts) <= self.max_fallback_attempts

    def _record(
        self,
        request_id: str,
        params: TransferParams,
        backend: PrivacyBackend,
        result: TransferResult,
        attempts: List[BackendName],
        created_at: datetime,
        start: float
    ):
        fee_amount = None
        if params.quote is not None and params.quote.backend == backend.name:
            fee_amount = params.quote.fee_amount
        elif 'fee' in result.metadata:
            fee_amount = int(result.metadata['fee'])

        self.transfer_history.append(TransferRecord(
            request_id=request_id,
            backend=backend.name.value,
            token=params.from_token.symbol,
            amount=params.amount,
            privacy_level=PrivacyLevel(params.privacy_level).value,
            success=result.success,
            status=result.status.value,
            tx_hash=result.tx_hash,
            fee_amount=fee_amount,
            total_time_seconds=time.monotonic() - start,
            error_message=result.error,
            created_at=created_at,
            completed_at=utc_now(),
            attempts=[name.value for name in attempts],
        ))

    # ── History ────────────────────────────────────────────────────

    def get_history(
        self,
        backend: Optional[Union[BackendName, str]] = None,
        success: Optional[bool] = None,
        limit: Optional[int] = None
    ) -> List[TransferRecord]:
        """
        Get transfer history (oldest first)

        Args:
            backend: Only transfers completed by this backend
            success: Only successful (True) or failed (False) transfers
            limit: Only the most recent N records
        """
        records = self.transfer_history
        if backend is not None:
            backend = BackendName(backend).value
            records = [r for r in records if r.backend == backend]
        if success is not None:
            records = [r for r in records if r.success == success]
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return list(records)

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get transfer statistics

        Volumes and fees are grouped by token since base units differ per token.

        Returns:
            Statistics dictionary
        """
        total = len(self.transfer_history)
        successful = [r for r in self.transfer_history if r.success]

        volume: Dict[str, int] = {}
        fees: Dict[str, int] = {}
        by_backend: Dict[str, Dict[str, int]] = {}

        for record in self.transfer_history:
            counts = by_backend.setdefault(record.backend, {'successful': 0, 'failed': 0})
            counts['successful' if record.success else 'failed'] += 1

        for record in successful:
            volume[record.token] = volume.get(record.token, 0) + record.amount
            if record.fee_amount is not None:
                fees[record.token] = fees.get(record.token, 0) + record.fee_amount

        avg_time = sum(r.total_time_seconds for r in successful) / len(successful) if successful else 0

        return {
            'total_transfers': total,
            'successful_transfers': len(successful),
            'failed_transfers': total - len(successful),
            'success_rate': (len(successful) / total * 100) if total > 0 else 0,
            'total_volume': volume,
            'total_fees': fees,
            'avg_transfer_time_seconds': avg_time,
            'by_backend': by_backend,
        }

    def print_statistics(self):
        stats = self.get_statistics()

        print("\n" + "=" * 60)
        print("PRIVATE TRANSFER STATISTICS")
        print("=" * 60)
        print(f"Total transfers: {stats['total_transfers']}")
        print(f"Successful: {stats['successful_transfers']}")
        print(f"Failed: {stats['failed_transfers']}")
        print(f"Success rate: {stats['success_rate']:.1f}%")
        for token, amount in stats['total_volume'].items():
            print(f"Volume {token}: {amount}")
        print(f"Avg time: {stats['avg_transfer_time_seconds']:.2f}s")
        print("=" * 60 + "\n")
