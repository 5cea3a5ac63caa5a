"""
Wallet Signer Mock for Component Testing
"""
from typing import Any, Dict, List, Optional

from microservices.fundraising_service.protocols import UserRejectedError


class MockWalletSigner:
    """Mock for WalletSignerProtocol"""

    def __init__(self, address: str, reject: bool = False):
        self._address = address
        self.reject = reject
        self.error: Optional[Exception] = None
        self.signed: List[Dict[str, Any]] = []

    @property
    def address(self) -> str:
        return self._address

    async def sign_typed_data(self, typed_data: Dict[str, Any]) -> str:
        if self.reject:
            raise UserRejectedError("User rejected the signature request")
        if self.error:
            raise self.error
        self.signed.append(typed_data)
        return "0x" + "5a" * 65


class RecordingErrorReporter:
    """Collects errors handed to the reporter"""

    def __init__(self):
        self.reports: List[Dict[str, Any]] = []

    def report(self, error: BaseException, context: Dict[str, Any]) -> None:
        self.reports.append({"error": error, "context": context})
