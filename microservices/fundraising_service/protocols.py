"""
Fundraising Service Protocols

Defines the interfaces of the external collaborators (ledger, encryption
relayer, wallet signer, error reporter) and the error taxonomy.
"""

from typing import Any, Dict, List, Optional, Protocol

from .models import (
    Campaign,
    EncryptedInput,
    EncryptionStatus,
    EphemeralKeyPair,
    HandleContractPair,
    TransactionReceipt,
)


# ====================
# Ledger Protocol
# ====================


class LedgerProtocol(Protocol):
    """Typed read/write operations against the fundraising and token contracts"""

    @property
    def account_address(self) -> Optional[str]:
        """Address of the wallet used for writes, None when no wallet is attached"""
        ...

    # Reads
    async def get_campaigns(self) -> List[Campaign]:
        """All campaigns (handles not populated)"""
        ...

    async def get_campaign_raised(self, campaign_id: int) -> str:
        """Raised-amount ciphertext handle"""
        ...

    async def get_user_points(self, campaign_id: int, user: str) -> str:
        """Points ciphertext handle for a user"""
        ...

    # Writes (return after finality)
    async def create_campaign(
        self, title: str, description: str, goal: int
    ) -> TransactionReceipt:
        ...

    async def set_campaign_active(
        self, campaign_id: int, active: bool
    ) -> TransactionReceipt:
        ...

    async def donate(
        self, handle: str, input_proof: str, payload: bytes
    ) -> TransactionReceipt:
        """Confidential transfer to the fundraising contract plus its callback"""
        ...

    async def claim_faucet(self) -> TransactionReceipt:
        ...


# ====================
# Encryption Service Protocol
# ====================


class EncryptionServiceProtocol(Protocol):
    """Opaque encryption/decryption relayer"""

    @property
    def status(self) -> EncryptionStatus:
        ...

    async def create_encrypted_input(
        self, contract_address: str, user_address: str, amount: int
    ) -> EncryptedInput:
        """Encrypt a 64-bit amount bound to (contract, user) with its proof"""
        ...

    def generate_keypair(self) -> EphemeralKeyPair:
        ...

    def create_authorization(
        self,
        public_key: str,
        contract_addresses: List[str],
        start_timestamp: int,
        duration_days: int,
    ) -> Dict[str, Any]:
        """EIP-712 typed data the wallet must sign"""
        ...

    async def user_decrypt(
        self,
        pairs: List[HandleContractPair],
        keypair: EphemeralKeyPair,
        signature: str,
        contract_addresses: List[str],
        user_address: str,
        start_timestamp: int,
        duration_days: int,
    ) -> Dict[str, int]:
        """Decrypted values keyed by handle"""
        ...


# ====================
# Wallet Signer Protocol
# ====================


class WalletSignerProtocol(Protocol):
    """Signs structured authorization messages"""

    @property
    def address(self) -> str:
        ...

    async def sign_typed_data(self, typed_data: Dict[str, Any]) -> str:
        """Signature as 0x-prefixed hex"""
        ...


class ErrorReporterProtocol(Protocol):
    """Receives errors caught at the workflow boundary"""

    def report(self, error: BaseException, context: Dict[str, Any]) -> None:
        ...


# ====================
# Custom Exceptions
# ====================


class FundraisingError(Exception):
    """Base exception for fundraising client errors"""

    error_code = "fundraising_error"


class FundraisingValidationError(FundraisingError):
    """Local validation failure; never reaches the network"""

    error_code = "validation_error"


class InvalidFormatError(FundraisingValidationError):
    """Amount text does not match digits(.digits{0,6})?"""

    error_code = "invalid_format"


class ZeroAmountError(FundraisingValidationError):
    """Amount must be greater than zero"""

    error_code = "zero_amount"


class AmountTooLargeError(FundraisingValidationError):
    """Amount exceeds the encryptable range"""

    error_code = "amount_too_large"


class CampaignValidationError(FundraisingValidationError):
    """Raised when campaign fields are invalid"""

    error_code = "campaign_validation"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class CampaignNotActiveError(FundraisingValidationError):
    """Donation targeted an inactive campaign"""

    error_code = "campaign_not_active"


class CampaignNotFoundError(FundraisingError):
    """Raised when campaign is not found"""

    error_code = "campaign_not_found"


class WalletUnavailableError(FundraisingError):
    """No wallet signer, or the signer failed"""

    error_code = "wallet_unavailable"


class UserRejectedError(FundraisingError):
    """The wallet owner declined to sign"""

    error_code = "user_rejected"


class EncryptionServiceUnavailableError(FundraisingError):
    """Encryption relayer unreachable or not initialized"""

    error_code = "encryption_service_unavailable"


class TransactionFailureError(FundraisingError):
    """Ledger write reverted or did not finalize"""

    error_code = "transaction_failure"

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class DecryptionFailureError(FundraisingError):
    """Relayer returned an error or no value for the handle"""

    error_code = "decryption_failure"


class UnauthorizedError(FundraisingError):
    """Ledger rejected a creator-only call"""

    error_code = "unauthorized"

    def __init__(self, message: str, account: Optional[str] = None):
        super().__init__(message)
        self.account = account


class LedgerResponseError(FundraisingError):
    """Ledger returned a value that does not match the expected shape"""

    error_code = "malformed_ledger_response"


__all__ = [
    "LedgerProtocol",
    "EncryptionServiceProtocol",
    "WalletSignerProtocol",
    "ErrorReporterProtocol",
    "FundraisingError",
    "FundraisingValidationError",
    "InvalidFormatError",
    "ZeroAmountError",
    "AmountTooLargeError",
    "CampaignValidationError",
    "CampaignNotActiveError",
    "CampaignNotFoundError",
    "WalletUnavailableError",
    "UserRejectedError",
    "EncryptionServiceUnavailableError",
    "TransactionFailureError",
    "DecryptionFailureError",
    "UnauthorizedError",
    "LedgerResponseError",
]
