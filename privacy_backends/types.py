"""
Privacy Backend Types

Core data model shared by the registry, the backend contract and every adapter.

Amounts, fees and pool sizes are plain ``int`` values in base units
(lamports for SOL, 6-decimal units for stablecoins). Floats are only used
for display values such as ``fee_percent``.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class BackendName(str, Enum):
    """Supported privacy backend identifiers"""
    MOCK = "mock"                # Development/testing
    SIP_NATIVE = "sip-native"    # Pedersen + stealth + ZK (no adapter yet)
    PRIVACYCASH = "privacycash"  # Pool mixing
    INCO = "inco"                # TEE encryption
    ARCIUM = "arcium"            # MPC


class PrivacyLevel(str, Enum):
    """Requested privacy level for a transfer"""
    TRANSPARENT = "transparent"
    SHIELDED = "shielded"
    COMPLIANT = "compliant"


class PrivacyModel(str, Enum):
    """How a backend achieves privacy"""
    CRYPTOGRAPHIC = "cryptographic"
    STATISTICAL = "statistical"
    ENCRYPTION = "encryption"
    MPC = "mpc"


class Network(str, Enum):
    MAINNET = "mainnet"
    DEVNET = "devnet"
    TESTNET = "testnet"


class TransferStatus(str, Enum):
    """Coarse phase of a transfer"""
    PENDING = "pending"          # Waiting to start
    SIGNING = "signing"          # Waiting for wallet signature
    CONFIRMING = "confirming"    # Transaction submitted, waiting for confirmation
    PROCESSING = "processing"    # Backend-specific processing (e.g. MPC rounds)
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TransferStatus.SUCCESS, TransferStatus.FAILED)


class TransferEventType(str, Enum):
    STATUS_CHANGE = "status_change"
    TX_SUBMITTED = "tx_submitted"
    TX_CONFIRMED = "tx_confirmed"
    PROOF_GENERATED = "proof_generated"
    ERROR = "error"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenInfo:
    """Token information for transfers"""
    symbol: str
    name: str
    mint: Optional[str]  # None for the chain's native asset
    decimals: int
    logo: Optional[str] = None

    @property
    def is_native(self) -> bool:
        return self.mint is None

    def __repr__(self):
        return f"TokenInfo({self.symbol})"


TOKENS: Dict[str, TokenInfo] = {
    'SOL': TokenInfo(
        symbol='SOL',
        name='Solana',
        mint=None,
        decimals=9,
        logo='/tokens/sol.png',
    ),
    'USDC': TokenInfo(
        symbol='USDC',
        name='USD Coin',
        mint='EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v',
        decimals=6,
        logo='/tokens/usdc.png',
    ),
    'USDT': TokenInfo(
        symbol='USDT',
        name='Tether USD',
        mint='Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB',
        decimals=6,
        logo='/tokens/usdt.png',
    ),
}


@dataclass(frozen=True)
class BackendFeatures:
    """
    Capability descriptor of a privacy backend

    One instance per backend, constant for the backend's lifetime.
    """
    amount_hiding: bool
    recipient_hiding: bool
    viewing_keys: bool
    same_chain_only: bool
    average_latency_ms: int
    privacy_model: PrivacyModel

    # Fields that may be used as selection predicates.
    # average_latency_ms is a measurement, not a property to match exactly.
    PREDICATE_FIELDS = (
        'amount_hiding', 'recipient_hiding', 'viewing_keys', 'same_chain_only', 'privacy_model',
    )

    def matches(self, **required: Any) -> bool:
        """
        Check whether these features satisfy a partial predicate

        Args:
            **required: Feature values to match; ``None`` values are wildcards.
                ``privacy_model`` accepts a PrivacyModel or its string value.

        Returns:
            True if every specified value is equal

        Raises:
            TypeError: For a field that is not in PREDICATE_FIELDS
            ValueError: For an unknown privacy model
        """
        for key, expected in required.items():
            if key not in self.PREDICATE_FIELDS:
                raise TypeError(f"Unknown feature predicate: {key}")
            if expected is None:
                continue
            if key == 'privacy_model':
                expected = PrivacyModel(expected)
            if getattr(self, key) != expected:
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['privacy_model'] = self.privacy_model.value
        return data


@dataclass
class QuoteParams:
    """Parameters for getting a transfer quote"""
    from_token: TokenInfo
    to_token: TokenInfo
    amount: int
    privacy_level: PrivacyLevel
    sender: Optional[str] = None
    recipient: Optional[str] = None

    def __post_init__(self):
        self.privacy_level = PrivacyLevel(self.privacy_level)


@dataclass(frozen=True)
class Quote:
    """Quote response from a privacy backend"""
    id: str
    backend: BackendName
    input_amount: int
    output_amount: int
    fee_amount: int
    fee_percent: float  # display only (0-100)
    estimated_time_seconds: int
    expires_at: datetime
    is_valid: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utc_now()) >= self.expires_at

    @property
    def warnings(self) -> List[str]:
        return list(self.metadata.get('warnings') or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'backend': self.backend.value,
            'input_amount': str(self.input_amount),
            'output_amount': str(self.output_amount),
            'fee_amount': str(self.fee_amount),
            'fee_percent': self.fee_percent,
            'estimated_time_seconds': self.estimated_time_seconds,
            'expires_at': self.expires_at.isoformat(),
            'is_valid': self.is_valid,
            'metadata': dict(self.metadata),
        }


@dataclass
class TransferParams:
    """
    Parameters for executing a private transfer

    ``viewing_key`` is expected for compliant transfers. Backends do not enforce
    it; callers check ``features.viewing_keys`` first.
    """
    from_token: TokenInfo
    to_token: TokenInfo
    amount: int
    privacy_level: PrivacyLevel
    sender: str
    recipient: str
    quote: Optional[Quote] = None
    viewing_key: Optional[str] = None
    slippage_tolerance: float = 0.5

    def __post_init__(self):
        self.privacy_level = PrivacyLevel(self.privacy_level)

    def to_quote_params(self) -> QuoteParams:
        return QuoteParams(
            from_token=self.from_token,
            to_token=self.to_token,
            amount=self.amount,
            privacy_level=self.privacy_level,
            sender=self.sender,
            recipient=self.recipient,
        )


@dataclass
class TransferResult:
    """Terminal outcome of a transfer"""
    status: TransferStatus
    tx_hash: Optional[str] = None
    explorer_url: Optional[str] = None
    error: Optional[str] = None
    stealth_address: Optional[str] = None
    commitment: Optional[str] = None
    viewing_key: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == TransferStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


@dataclass(frozen=True)
class TransferEvent:
    """Event emitted during a transfer; never mutated after emission"""
    type: TransferEventType
    timestamp: datetime
    status: Optional[TransferStatus] = None
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return (
            self.type == TransferEventType.STATUS_CHANGE
            and self.status is not None
            and self.status.is_terminal
        )

    def __repr__(self):
        detail = self.status.value if self.status else (self.tx_hash or self.error or '')
        return f"TransferEvent({self.type.value}: {detail})"


@dataclass
class BackendStatus:
    """Backend health snapshot, recomputed on every get_status() call"""
    available: bool
    network: Network
    latency_ms: int
    last_checked: datetime
    error: Optional[str] = None

    def __repr__(self):
        status = "✓ AVAILABLE" if self.available else "✗ UNAVAILABLE"
        return f"BackendStatus({self.network.value}: {status})"


@dataclass
class ScannedPayment:
    """Payment found during scanning"""
    id: str
    amount: int
    token: TokenInfo
    stealth_address: str
    tx_hash: str
    timestamp: datetime
    sender: Optional[str] = None
    claimed: bool = False
