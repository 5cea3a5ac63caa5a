"""
Component Test Layer Configuration

Structure:
    tests/component/
    ├── fundraising/  Workflow and adapter tests
    └── mocks/        Mock implementations

Usage:
    pytest tests/component -v
"""
import os
import sys

import pytest

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from microservices.fundraising_service.decryption_orchestrator import DecryptionOrchestrator
from microservices.fundraising_service.fundraising_service import FundraisingService
from microservices.fundraising_service.registry_cache import CampaignRegistryCache
from tests.component.mocks import (
    MockEncryptionService,
    MockLedger,
    MockWalletSigner,
    RecordingErrorReporter,
)
from tests.contracts.fundraising.data_contract import (
    CREATOR_ADDRESS,
    FUNDRAISING_ADDRESS,
    TOKEN_ADDRESS,
)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "component: marks tests as component tests"
    )


# =============================================================================
# Collaborator Mocks
# =============================================================================

@pytest.fixture
def mock_encryption() -> MockEncryptionService:
    """Ready relayer"""
    return MockEncryptionService()


@pytest.fixture
def mock_ledger(mock_encryption: MockEncryptionService) -> MockLedger:
    """Ledger with the creator's wallet attached"""
    return MockLedger(encryption=mock_encryption, account=CREATOR_ADDRESS)


@pytest.fixture
def mock_signer() -> MockWalletSigner:
    """Signer for the creator's wallet"""
    return MockWalletSigner(CREATOR_ADDRESS)


@pytest.fixture
def error_reporter() -> RecordingErrorReporter:
    return RecordingErrorReporter()


# =============================================================================
# Service Components
# =============================================================================

@pytest.fixture
def registry(mock_ledger: MockLedger) -> CampaignRegistryCache:
    return CampaignRegistryCache(mock_ledger, stale_after=10.0)


@pytest.fixture
def orchestrator(
    mock_encryption: MockEncryptionService,
    mock_signer: MockWalletSigner,
    error_reporter: RecordingErrorReporter,
) -> DecryptionOrchestrator:
    return DecryptionOrchestrator(
        encryption=mock_encryption,
        signer=mock_signer,
        contract_address=FUNDRAISING_ADDRESS,
        error_reporter=error_reporter,
    )


@pytest.fixture
def service(
    mock_ledger: MockLedger,
    mock_encryption: MockEncryptionService,
    mock_signer: MockWalletSigner,
    error_reporter: RecordingErrorReporter,
) -> FundraisingService:
    """Fully wired service over the in-memory collaborators"""
    return FundraisingService(
        ledger=mock_ledger,
        encryption=mock_encryption,
        fundraising_address=FUNDRAISING_ADDRESS,
        token_address=TOKEN_ADDRESS,
        signer=mock_signer,
        error_reporter=error_reporter,
    )
