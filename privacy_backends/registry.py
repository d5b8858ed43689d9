"""
Backend Registry

Holds named backend instances, tracks a default backend, and answers
availability and capability queries.

Selection priority (``get_best_backend``):
1. SIP Native - best privacy guarantees (reserved, no adapter yet)
2. Arcium - MPC security model
3. Inco - TEE encryption
4. PrivacyCash - pool mixing
5. Mock - development only
"""

import asyncio
import threading
from typing import Dict, List, Optional, Union

from loguru import logger

from .backend import PrivacyBackend
from .exceptions import BackendNotRegisteredError, NoBackendAvailableError
from .types import BackendFeatures, BackendName


BACKEND_PRIORITY: List[BackendName] = [
    BackendName.SIP_NATIVE,
    BackendName.ARCIUM,
    BackendName.INCO,
    BackendName.PRIVACYCASH,
    BackendName.MOCK,
]


def _lookup_key(name) -> Optional[BackendName]:
    try:
        return BackendName(name)
    except ValueError:
        return None


class BackendRegistry:
    """
    Registry of privacy backends

    Features:
    - One instance per backend name (last register wins)
    - Default backend tracking
    - Concurrent availability probing with per-backend failure isolation
    - No health caching: every get_available() re-checks status
    """

    def __init__(self, default_backend: Union[BackendName, str] = BackendName.MOCK):
        self._backends: Dict[BackendName, PrivacyBackend] = {}
        self._default = BackendName(default_backend)
        self._lock = threading.RLock()

    def register(self, backend: PrivacyBackend):
        """
        Register a privacy backend

        Args:
            backend: Backend instance to register
        """
        with self._lock:
            if backend.name in self._backends and self._backends[backend.name] is not backend:
                logger.info(f"Replacing registered backend '{backend.name.value}'")
            self._backends[backend.name] = backend
        logger.info(f"✓ Registered privacy backend '{backend.name.value}' ({backend.display_name})")

    def unregister(self, name: Union[BackendName, str]):
        """
        Unregister a privacy backend (no-op if absent)

        Args:
            name: Backend name to unregister
        """
        key = _lookup_key(name)
        with self._lock:
            removed = self._backends.pop(key, None) if key else None
        if removed is not None:
            logger.info(f"Unregistered privacy backend '{removed.name.value}'")

    def get(self, name: Union[BackendName, str]) -> Optional[PrivacyBackend]:
        key = _lookup_key(name)
        with self._lock:
            return self._backends.get(key) if key else None

    def get_all(self) -> List[PrivacyBackend]:
        with self._lock:
            return list(self._backends.values())

    async def get_available(self) -> List[PrivacyBackend]:
        """
        Get all available (healthy) backends

        Every registered backend is checked concurrently. A backend that reports
        unavailable or raises is excluded; the others are unaffected.

        Returns:
            Available backends in registration order
        """
        backends = self.get_all()
        if not backends:
            return []

        results = await asyncio.gather(
            *(backend.is_available() for backend in backends),
            return_exceptions=True
        )

        available = []
        for backend, outcome in zip(backends, results):
            if isinstance(outcome, BaseException):
                logger.warning(f"✗ Backend '{backend.name.value}' status check failed: {outcome}")
            elif outcome:
                available.append(backend)
            else:
                logger.debug(f"Backend '{backend.name.value}' reported unavailable")

        logger.debug(f"Available backends: {[b.name.value for b in available]}")
        return available

    def set_default(self, name: Union[BackendName, str]):
        """
        Set the default backend

        Raises:
            BackendNotRegisteredError: If the backend is not registered
        """
        key = _lookup_key(name)
        with self._lock:
            if key is None or key not in self._backends:
                raise BackendNotRegisteredError(f"Backend '{getattr(name, 'value', name)}' is not registered")
            self._default = key
        logger.info(f"Default privacy backend set to '{key.value}'")

    def get_default(self) -> PrivacyBackend:
        """
        Get the default backend

        Raises:
            BackendNotRegisteredError: If the configured default is not registered
        """
        with self._lock:
            backend = self._backends.get(self._default)
            if backend is None:
                raise BackendNotRegisteredError(
                    f"Default backend '{self._default.value}' is not registered"
                )
            return backend

    @property
    def default_name(self) -> BackendName:
        return self._default

    def has(self, name: Union[BackendName, str]) -> bool:
        key = _lookup_key(name)
        with self._lock:
            return key in self._backends if key else False

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._backends)

    def clear(self):
        """Remove every registered backend"""
        with self._lock:
            self._backends.clear()

    def __len__(self):
        return self.size

    def __contains__(self, name) -> bool:
        return self.has(name)


# Global backend registry instance
backend_registry = BackendRegistry()


async def get_best_backend(
    require_viewing_keys: bool = False,
    registry: Optional[BackendRegistry] = None,
    priority: Optional[List[BackendName]] = None
) -> PrivacyBackend:
    """
    Get the best available backend by priority

    Args:
        require_viewing_keys: Skip backends without viewing key support
        registry: Registry to query (default: global registry)
        priority: Override of BACKEND_PRIORITY

    Returns:
        Highest-priority available backend satisfying the constraint

    Raises:
        NoBackendAvailableError: If nothing suitable is available
    """
    if registry is None:
        registry = backend_registry
    if priority is None:
        priority = BACKEND_PRIORITY
    available = {backend.name: backend for backend in await registry.get_available()}

    for name in priority:
        backend = available.get(name)
        if backend is None:
            continue
        if require_viewing_keys and not backend.features.viewing_keys:
            logger.debug(f"Skipping '{name.value}': no viewing key support")
            continue
        logger.info(f"Selected privacy backend '{name.value}'")
        return backend

    raise NoBackendAvailableError("No privacy backend available")


async def get_backend_by_features(
    features: Optional[Dict[str, Optional[bool]]] = None,
    registry: Optional[BackendRegistry] = None,
    **required: Optional[bool]
) -> Optional[PrivacyBackend]:
    """
    Get the first available backend matching feature flags

    Unspecified flags are wildcards. privacy_model may be matched too.

    Example:
        backend = await get_backend_by_features(amount_hiding=True, viewing_keys=True)
        backend = await get_backend_by_features(privacy_model=PrivacyModel.MPC)

    Args:
        features: Mapping of feature flag -> required value
        registry: Registry to query (default: global registry)
        **required: Feature flags as keyword arguments

    Returns:
        Matching backend or None
    """
    predicate = dict(features or {})
    predicate.update(required)

    unknown = set(predicate) - set(BackendFeatures.PREDICATE_FIELDS)
    if unknown:
        raise TypeError(f"Unknown feature predicates: {sorted(unknown)}")

    if registry is None:
        registry = backend_registry
    for backend in await registry.get_available():
        if backend.features.matches(**predicate):
            return backend
    return None
