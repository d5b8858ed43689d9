"""
Privacy Backends

Unified privacy abstraction layer for private Solana transfers.

Components:
- types: Shared data model (tokens, quotes, transfer params/results, events)
- backend: PrivacyBackend contract and optional capability interfaces
- registry: Backend registry and selection helpers
- events: Transfer event protocol (emitter + async stream)
- backends: Mock, PrivacyCash, Inco and Arcium adapters
- config: privacy_config.yaml loading and registry bootstrap
- transfer_engine: Compliance checks, fallback and history

Backends:
- Mock: development/testing
- PrivacyCash: pool mixing (statistical anonymity set)
- Inco: TEE encryption
- Arcium: multi-party computation (MPC)

Selection Priority:
sip-native > arcium > inco > privacycash > mock

Example:
    registry = initialize_privacy()
    backend = await get_best_backend()
    result = await backend.transfer(TransferParams(
        from_token=TOKENS['SOL'],
        to_token=TOKENS['SOL'],
        amount=1_000_000_000,  # 1 SOL
        privacy_level=PrivacyLevel.SHIELDED,
        sender="...",
        recipient="...",
    ))
"""

from .types import (
    TOKENS,
    BackendFeatures,
    BackendName,
    BackendStatus,
    Network,
    PrivacyLevel,
    PrivacyModel,
    Quote,
    QuoteParams,
    ScannedPayment,
    TokenInfo,
    TransferEvent,
    TransferEventType,
    TransferParams,
    TransferResult,
    TransferStatus,
)
from .exceptions import (
    BackendNotRegisteredError,
    BackendUnavailableError,
    BelowMinimumAmountError,
    ComplianceError,
    EventSequenceError,
    InvalidAmountError,
    NoBackendAvailableError,
    PrivacyBackendError,
    QuoteError,
    QuoteExpiredError,
    QuoteMismatchError,
    SimulatedFailureError,
    UnsupportedCapabilityError,
    ValidationError,
)
from .backend import (
    BalanceReader,
    PaymentScanner,
    PrivacyBackend,
    StealthAddressGenerator,
    supports,
)
from .events import (
    TransferEventCallback,
    TransferEventEmitter,
    TransferEventStream,
    stream_transfer,
)
from .registry import (
    BACKEND_PRIORITY,
    BackendRegistry,
    backend_registry,
    get_backend_by_features,
    get_best_backend,
)
from .randomness import RandomSource
from .backends import (
    ArciumAdapter,
    ArciumConfig,
    IncoAdapter,
    IncoConfig,
    MockBackend,
    MockBackendConfig,
    PrivacyCashAdapter,
    PrivacyCashConfig,
    find_best_pool_size,
    mock_backend,
)
from .config import (
    initialize_privacy,
    load_privacy_config,
)
from .transfer_engine import (
    PrivateTransferEngine,
    TransferRecord,
)

__all__ = [
    # Types
    'TOKENS',
    'BackendFeatures',
    'BackendName',
    'BackendStatus',
    'Network',
    'PrivacyLevel',
    'PrivacyModel',
    'Quote',
    'QuoteParams',
    'ScannedPayment',
    'TokenInfo',
    'TransferEvent',
    'TransferEventType',
    'TransferParams',
    'TransferResult',
    'TransferStatus',

    # Errors
    'PrivacyBackendError',
    'ValidationError',
    'InvalidAmountError',
    'BelowMinimumAmountError',
    'ComplianceError',
    'BackendNotRegisteredError',
    'NoBackendAvailableError',
    'BackendUnavailableError',
    'QuoteError',
    'QuoteExpiredError',
    'QuoteMismatchError',
    'SimulatedFailureError',
    'UnsupportedCapabilityError',
    'EventSequenceError',

    # Contract
    'PrivacyBackend',
    'PaymentScanner',
    'BalanceReader',
    'StealthAddressGenerator',
    'supports',

    # Events
    'TransferEventCallback',
    'TransferEventEmitter',
    'TransferEventStream',
    'stream_transfer',

    # Registry & selection
    'BACKEND_PRIORITY',
    'BackendRegistry',
    'backend_registry',
    'get_best_backend',
    'get_backend_by_features',

    # Adapters
    'RandomSource',
    'MockBackend',
    'MockBackendConfig',
    'mock_backend',
    'PrivacyCashAdapter',
    'PrivacyCashConfig',
    'find_best_pool_size',
    'IncoAdapter',
    'IncoConfig',
    'ArciumAdapter',
    'ArciumConfig',

    # Configuration
    'initialize_privacy',
    'load_privacy_config',

    # Engine
    'PrivateTransferEngine',
    'TransferRecord',
]

__version__ = '0.1.0'
__description__ = 'Privacy backend abstraction and private transfer orchestration'
