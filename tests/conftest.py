"""
Pytest configuration and shared fixtures for Tether tests.
"""

import io
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tether_core.config.models import HandshakeConfig, ProxyConfig  # noqa: E402
from tether_core.logging import LogConfig, TetherLogger  # noqa: E402
from tether_core.types import LogFormat, LogLevel  # noqa: E402

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def tests_dir() -> Path:
    """Return the tests directory."""
    return Path(__file__).parent


@pytest.fixture(scope="session")
def fixtures_dir(tests_dir: Path) -> Path:
    """Return the fixtures directory."""
    return tests_dir / "fixtures"


@pytest.fixture(scope="session")
def stub_proxy_path(fixtures_dir: Path) -> Path:
    """Return the stub MCP proxy script."""
    return fixtures_dir / "stub_proxy.py"


# =============================================================================
# Proxy Fixtures
# =============================================================================


@pytest.fixture
def proxy_config(stub_proxy_path: Path) -> ProxyConfig:
    """Launch the stub proxy with the current interpreter instead of npx."""
    return ProxyConfig(command=sys.executable, args=[str(stub_proxy_path)])


@pytest.fixture
def handshake_config() -> HandshakeConfig:
    """Handshake settings without the settle delay and with short timeouts."""
    return HandshakeConfig(settle_delay=0.0, request_timeout=5.0, shutdown_timeout=2.0)


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture
def log_output() -> io.StringIO:
    """Capture logger output."""
    return io.StringIO()


@pytest.fixture
def logger(log_output: io.StringIO) -> TetherLogger:
    """Debug-level JSON logger writing to ``log_output``."""
    return TetherLogger(
        LogConfig(level=LogLevel.DEBUG, format=LogFormat.JSON, output=log_output)
    )


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Tests that spawn real proxy subprocesses")
    config.addinivalue_line("markers", "property: Property-based tests (hypothesis)")
    config.addinivalue_line("markers", "slow: Slow tests")
