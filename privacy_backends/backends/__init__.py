"""Bundled privacy backend adapters"""

from .base import AdapterConfig, SimulatedBackend
from .mock import MockBackend, MockBackendConfig, mock_backend
from .privacycash import (
    PrivacyCashAdapter,
    PrivacyCashConfig,
    find_best_pool_size,
    privacycash_adapter,
)
from .inco import IncoAdapter, IncoConfig, inco_adapter
from .arcium import ArciumAdapter, ArciumConfig, arcium_adapter

__all__ = [
    'AdapterConfig',
    'SimulatedBackend',
    'MockBackend',
    'MockBackendConfig',
    'mock_backend',
    'PrivacyCashAdapter',
    'PrivacyCashConfig',
    'find_best_pool_size',
    'privacycash_adapter',
    'IncoAdapter',
    'IncoConfig',
    'inco_adapter',
    'ArciumAdapter',
    'ArciumConfig',
    'arcium_adapter',
]
