"""
Unit tests for privacy_config.yaml loading and registry bootstrap
"""

import textwrap

import pytest

from privacy_backends import (
    ArciumAdapter,
    BackendName,
    IncoAdapter,
    MockBackend,
    PrivacyCashAdapter,
    initialize_privacy,
    load_privacy_config,
    mock_backend,
)
from privacy_backends.config import build_backend, parse_priority


def _write(tmp_path, content):
    path = tmp_path / "privacy_config.yaml"
    path.write_text(textwrap.dedent(content), encoding='utf-8')
    return path


def test_missing_file_uses_defaults(tmp_path):
    config = load_privacy_config(tmp_path / "missing.yaml")

    assert config['default_backend'] == 'mock'
    assert config['backends'] == {'mock': {'enabled': True}}
    assert config['priority'][0] == 'sip-native'


def test_invalid_yaml_uses_defaults(tmp_path):
    path = _write(tmp_path, "backends: [unclosed\n")

    config = load_privacy_config(path)

    assert config['backends'] == {'mock': {'enabled': True}}


def test_non_mapping_uses_defaults(tmp_path):
    path = _write(tmp_path, "- just\n- a list\n")

    assert load_privacy_config(path)['default_backend'] == 'mock'


def test_load_merges_backends(tmp_path):
    path = _write(tmp_path, """
        default_backend: inco
        random_seed: 42
        backends:
          inco:
            enabled: true
            gateway_url: https://gw.example
    """)

    config = load_privacy_config(path)

    assert config['default_backend'] == 'inco'
    assert config['random_seed'] == 42
    assert config['backends']['inco']['gateway_url'] == "https://gw.example"
    assert config['backends']['mock'] == {'enabled': True}


def test_initialize_with_defaults(registry):
    initialize_privacy(registry=registry)

    assert registry.get('mock') is mock_backend
    assert registry.get_default() is mock_backend
    assert registry.size == 1


def test_initialize_from_file(tmp_path, registry):
    path = _write(tmp_path, """
        default_backend: arcium
        random_seed: 7
        backends:
          mock:
            enabled: true
            latency_ms: 0
          privacycash:
            enabled: true
            relayer_url: https://relayer.example
          inco:
            enabled: false
          arcium:
            enabled: true
            network: mainnet
            delay_scale: 0
    """)

    initialize_privacy(path, registry)

    assert isinstance(registry.get('mock'), MockBackend)
    assert registry.get('mock') is not mock_backend
    assert isinstance(registry.get('privacycash'), PrivacyCashAdapter)
    assert registry.get('privacycash').config.relayer_url == "https://relayer.example"
    assert not registry.has('inco')

    arcium = registry.get('arcium')
    assert isinstance(arcium, ArciumAdapter)
    assert arcium.config.rpc_url == "https://api.mainnet-beta.solana.com"
    assert registry.get_default() is arcium


def test_initialize_always_registers_mock(tmp_path, registry):
    path = _write(tmp_path, """
        backends:
          mock:
            enabled: false
          inco:
            enabled: true
    """)

    initialize_privacy(path, registry)

    assert registry.has('mock')
    assert isinstance(registry.get('inco'), IncoAdapter)


def test_initialize_skips_invalid_entries(tmp_path, registry):
    path = _write(tmp_path, """
        default_backend: sip-native
        backends:
          teleporter:
            enabled: true
          arcium:
            network: moon
          inco:
            unknown_option: 1
    """)

    initialize_privacy(path, registry)

    assert not registry.has('arcium')
    assert registry.has('inco')
    assert registry.default_name == BackendName.MOCK


def test_build_backend_rejects_unbundled_adapter():
    with pytest.raises(ValueError):
        build_backend(BackendName.SIP_NATIVE)


def test_parse_priority_drops_unknown_names():
    assert parse_priority(['inco', 'nope', 'mock']) == [BackendName.INCO, BackendName.MOCK]


def test_initialize_from_loaded_config(registry):
    config = {
        'default_backend': 'inco',
        'random_seed': 3,
        'backends': {'inco': {'enabled': True, 'delay_scale': 0}},
    }

    initialize_privacy(registry=registry, config=config)

    assert isinstance(registry.get_default(), IncoAdapter)
    assert registry.has('mock')
