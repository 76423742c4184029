"""Shared fixtures for the posix_converter test suite."""

import pytest

from posix_converter import ConverterConfig, build_default_registry


@pytest.fixture(scope='session')
def registry():
    """Frozen default registry (read-only, safe to share across tests)."""
    return build_default_registry()


@pytest.fixture
def compact():
    return ConverterConfig(pretty_print=False)


@pytest.fixture
def strict():
    return ConverterConfig(strict_mode=True)


@pytest.fixture
def convert_command(registry):
    """Run one converter directly: convert_command('grep', '-i', 'foo')."""

    def run(name, *args):
        return registry.lookup(name)(list(args))

    return run
