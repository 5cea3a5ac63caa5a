"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace the real I/O dependencies (ledger, relayer, wallet).
"""

from .encryption_mock import MockEncryptionService
from .ledger_mock import MockLedger
from .signer_mock import MockWalletSigner, RecordingErrorReporter

__all__ = [
    'MockEncryptionService',
    'MockLedger',
    'MockWalletSigner',
    'RecordingErrorReporter',
]
