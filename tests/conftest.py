"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - component/  : Component tests (in-memory ledger, relayer and wallet)
    - unit/       : Unit tests (pure functions, no I/O)
"""
import os
import sys

import pytest

# Set testing environment BEFORE any service imports
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from tests.contracts.fundraising.data_contract import FundraisingTestDataFactory


# =============================================================================
# Test Configuration
# =============================================================================

class TestConfig:
    """Centralized test configuration"""

    SERVICE_NAME = "fundraising_service"
    SERVICE_PORT = 8260
    CHAIN_ID = 11155111
    RELAYER_URL = "https://relayer.test"


@pytest.fixture(scope="session")
def test_config() -> TestConfig:
    return TestConfig()


@pytest.fixture
def factory() -> FundraisingTestDataFactory:
    """Test data factory"""
    return FundraisingTestDataFactory()
