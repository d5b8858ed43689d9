"""
PrivacyBackend Interface

Abstract contract for privacy backends. Implementations provide different
privacy mechanisms:

- Mock: deterministic test double
- PrivacyCash: pool mixing (statistical anonymity set)
- Inco: TEE-based encryption
- Arcium: multi-party computation (MPC)

Required capabilities live on ``PrivacyBackend``. Optional capabilities are
separate small interfaces; query them with ``supports()`` and consult
``features`` (e.g. ``viewing_keys``) before calling them.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Protocol, runtime_checkable

from .events import TransferEventCallback
from .types import (
    BackendFeatures,
    BackendName,
    BackendStatus,
    Quote,
    QuoteParams,
    ScannedPayment,
    TransferParams,
    TransferResult,
)


class PrivacyBackend(ABC):
    """
    Privacy Backend Interface

    All privacy backends implement this contract to plug into the registry.
    """

    name: BackendName
    display_name: str
    description: str
    features: BackendFeatures

    @abstractmethod
    async def get_status(self) -> BackendStatus:
        """
        Check if this backend is available and healthy

        Returns:
            Freshly computed BackendStatus (never cached)
        """
        ...

    async def is_available(self) -> bool:
        """Convenience wrapper around ``get_status().available``"""
        status = await self.get_status()
        return status.available

    @abstractmethod
    async def get_quote(self, params: QuoteParams) -> Quote:
        """
        Get a quote for a private transfer

        Args:
            params: Quote parameters

        Returns:
            Quote with fee and timing estimates

        Raises:
            ValidationError: If the amount violates backend constraints
        """
        ...

    @abstractmethod
    async def transfer(
        self,
        params: TransferParams,
        on_event: Optional[TransferEventCallback] = None
    ) -> TransferResult:
        """
        Execute a private transfer

        Args:
            params: Transfer parameters
            on_event: Optional callback receiving TransferEvents in order

        Returns:
            Terminal TransferResult (success or failed)
        """
        ...

    def __repr__(self):
        return f"{type(self).__name__}({self.name.value})"


@runtime_checkable
class PaymentScanner(Protocol):
    """Backends able to scan for incoming payments with a viewing key"""

    async def scan_payments(
        self,
        viewing_key: str,
        from_block: Optional[int] = None
    ) -> List[ScannedPayment]:
        ...


@runtime_checkable
class BalanceReader(Protocol):
    """Backends able to read a (possibly shielded) balance"""

    async def get_balance(self, address: str) -> int:
        ...


@runtime_checkable
class StealthAddressGenerator(Protocol):
    """Backends able to derive a one-time address from a meta-address"""

    async def generate_stealth_address(self, meta_address: str) -> str:
        ...


def supports(backend: PrivacyBackend, capability: type) -> bool:
    """
    Check whether a backend implements an optional capability

    Args:
        backend: Backend instance
        capability: PaymentScanner, BalanceReader or StealthAddressGenerator

    Returns:
        True if the backend provides the capability's methods
    """
    return isinstance(backend, capability)
