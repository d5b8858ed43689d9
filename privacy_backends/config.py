"""
Privacy Config

Loads privacy_config.yaml and bootstraps the backend registry.

Example privacy_config.yaml:

    default_backend: mock
    random_seed: null          # set an int for reproducible simulations
    priority: [arcium, inco, privacycash, mock]
    backends:
      mock:
        enabled: true
        latency_ms: 500
      privacycash:
        enabled: true
        network: devnet
        relayer_url: ""
      inco:
        enabled: true
        gateway_url: https://gateway.inco.network
      arcium:
        enabled: false
"""

import copy
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from loguru import logger

from .backend import PrivacyBackend
from .backends import (
    ArciumAdapter,
    ArciumConfig,
    IncoAdapter,
    IncoConfig,
    MockBackend,
    MockBackendConfig,
    PrivacyCashAdapter,
    PrivacyCashConfig,
    mock_backend,
)
from .randomness import RandomSource
from .registry import BACKEND_PRIORITY, BackendRegistry, backend_registry
from .types import BackendName


DEFAULT_CONFIG_PATH = "privacy_config.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    'default_backend': BackendName.MOCK.value,
    'random_seed': None,
    'priority': [name.value for name in BACKEND_PRIORITY],
    'backends': {
        BackendName.MOCK.value: {'enabled': True},
    },
}

# backend name -> (adapter class, config dataclass)
ADAPTERS = {
    BackendName.MOCK: (MockBackend, MockBackendConfig),
    BackendName.PRIVACYCASH: (PrivacyCashAdapter, PrivacyCashConfig),
    BackendName.INCO: (IncoAdapter, IncoConfig),
    BackendName.ARCIUM: (ArciumAdapter, ArciumConfig),
}


def load_privacy_config(config_path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load privacy configuration from YAML

    Missing or unreadable files fall back to the defaults (mock only).

    Args:
        config_path: Path to privacy_config.yaml

    Returns:
        Config dict with defaults filled in
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_file = Path(config_path)

    if not config_file.exists():
        logger.info(f"Privacy config {config_file} not found, using defaults")
        return config

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading privacy config: {e}")
        return config

    if not isinstance(loaded, dict):
        logger.error(f"Privacy config {config_file} must be a mapping, got {type(loaded).__name__}")
        return config

    for key in ('default_backend', 'random_seed', 'priority'):
        if loaded.get(key) is not None:
            config[key] = loaded[key]

    backends = loaded.get('backends') or {}
    if not isinstance(backends, dict):
        logger.error("'backends' must be a mapping, ignoring it")
        backends = {}

    for name, options in backends.items():
        if options is not None and not isinstance(options, dict):
            logger.error(f"Options for backend '{name}' must be a mapping, ignoring them")
            continue
        config['backends'][str(name)] = dict(options or {})

    logger.info(f"Loaded privacy config from {config_file}: {sorted(config['backends'])}")
    return config


def parse_priority(names: List[str]) -> List[BackendName]:
    """Convert configured priority names, dropping unknown entries"""
    priority = []
    for name in names or []:
        try:
            priority.append(BackendName(name))
        except ValueError:
            logger.warning(f"Unknown backend '{name}' in priority list, skipping")
    return priority


def build_backend(
    name: Union[BackendName, str],
    options: Optional[Dict[str, Any]] = None,
    rng: Optional[RandomSource] = None
) -> PrivacyBackend:
    """
    Build an adapter from its config section

    Args:
        name: Backend name
        options: Adapter config keys (``enabled`` is ignored)
        rng: Shared random source

    Returns:
        Adapter instance

    Raises:
        ValueError: If the backend has no bundled adapter or an option is invalid
    """
    name = BackendName(name)
    if name not in ADAPTERS:
        raise ValueError(f"No adapter available for backend '{name.value}'")

    adapter_class, config_class = ADAPTERS[name]
    known = {f.name for f in fields(config_class)}

    kwargs = {}
    for key, value in (options or {}).items():
        if key == 'enabled':
            continue
        if key not in known:
            logger.warning(f"Unknown option '{key}' for backend '{name.value}', ignoring")
            continue
        kwargs[key] = value

    return adapter_class(config_class(**kwargs), rng=rng)


def initialize_privacy(
    config_path: Optional[Union[str, Path]] = None,
    registry: Optional[BackendRegistry] = None,
    config: Optional[Dict[str, Any]] = None
) -> BackendRegistry:
    """
    Initialize the privacy module with its backends

    Call this at startup to register all configured backends.

    Process:
    1. Load config (an already loaded dict wins, defaults when neither is given)
    2. Register every enabled backend
    3. Always register mock if absent
    4. Set the default backend

    Args:
        config_path: Optional path to privacy_config.yaml
        registry: Registry to populate (default: global registry)
        config: Config dict from load_privacy_config, skips reading the file

    Returns:
        The populated registry
    """
    if registry is None:
        registry = backend_registry

    if config is None:
        config = load_privacy_config(config_path) if config_path else copy.deepcopy(DEFAULT_CONFIG)

    seed = config.get('random_seed')
    rng = RandomSource(seed) if seed is not None else None

    for name, options in (config.get('backends') or {}).items():
        options = options or {}
        if not options.get('enabled', True):
            logger.info(f"Backend '{name}' disabled in config")
            continue

        try:
            backend_name = BackendName(name)
        except ValueError:
            logger.warning(f"Unknown backend '{name}' in config, skipping")
            continue

        adapter_options = {k: v for k, v in options.items() if k != 'enabled'}
        if backend_name == BackendName.MOCK and not adapter_options and rng is None:
            backend = mock_backend
        else:
            try:
                backend = build_backend(backend_name, adapter_options, rng=rng)
            except (TypeError, ValueError) as e:
                logger.error(f"✗ Failed to build backend '{name}': {e}")
                continue

        registry.register(backend)

    # Always keep mock available for development
    if not registry.has(BackendName.MOCK):
        registry.register(mock_backend)

    default_name = config.get('default_backend') or BackendName.MOCK.value
    if registry.has(default_name):
        registry.set_default(default_name)
    else:
        logger.warning(f"Default backend '{default_name}' not registered, keeping '{registry.default_name.value}'")

    logger.info(f"✓ Privacy module initialized with {registry.size} backends")
    return registry
