"""
Fundraising Service Data Models

Typed representations of ledger campaigns, ciphertext handles, decryption
state and workflow results.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


ZERO_HANDLE = "0x" + "00" * 32

# Widest integer that survives the numeric path used to build an encrypted input
MAX_ENCRYPTABLE_UNITS = 2**53 - 1


def normalize_handle(handle: Any) -> str:
    """Render a ciphertext handle (bytes or hex string) as lowercase 0x-hex"""
    if handle is None:
        return ZERO_HANDLE
    if isinstance(handle, (bytes, bytearray)):
        if not handle:
            return ZERO_HANDLE
        return "0x" + bytes(handle).hex()
    if isinstance(handle, str):
        text = handle.strip().lower()
        if text in ("", "0x"):
            return ZERO_HANDLE
        return text if text.startswith("0x") else "0x" + text
    raise TypeError(f"Unsupported handle type: {type(handle).__name__}")


def is_zero_handle(handle: Optional[str]) -> bool:
    """True for a missing handle or the all-zero sentinel"""
    if not handle:
        return True
    return normalize_handle(handle) == ZERO_HANDLE


# ====================
# Enums
# ====================


class DecryptionKind(str, Enum):
    """Which encrypted value of a campaign is being revealed"""
    RAISED = "raised"
    POINTS = "points"


class DecryptionPhase(str, Enum):
    """Decryption state machine phases"""
    IDLE = "idle"
    REQUESTING = "requesting"
    AWAITING_SIGNATURE = "awaiting_signature"
    AWAITING_RELAYER = "awaiting_relayer"
    RESOLVED = "resolved"
    FAILED = "failed"


BUSY_PHASES = frozenset({
    DecryptionPhase.REQUESTING,
    DecryptionPhase.AWAITING_SIGNATURE,
    DecryptionPhase.AWAITING_RELAYER,
})


class EncryptionStatus(str, Enum):
    """Readiness of the encryption/relayer service"""
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"


# ====================
# Ledger Models
# ====================


class Campaign(BaseModel):
    """Campaign metadata plus its current ciphertext handles"""
    id: int = Field(..., ge=0)
    title: str
    description: str
    goal: int = Field(..., ge=0, description="Goal in base units")
    creator: str
    active: bool = True
    raised_handle: str = ZERO_HANDLE
    user_points_handle: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("raised_handle", mode="before")
    @classmethod
    def _normalize_raised(cls, v: Any) -> str:
        return normalize_handle(v)

    @field_validator("user_points_handle", mode="before")
    @classmethod
    def _normalize_points(cls, v: Any) -> Optional[str]:
        return None if v is None else normalize_handle(v)


class EncryptedInput(BaseModel):
    """Ciphertext handles and the proof produced by the encryption service"""
    handles: List[str] = Field(..., min_length=1)
    input_proof: str

    @field_validator("handles", mode="before")
    @classmethod
    def _normalize(cls, v: List[Any]) -> List[str]:
        return [normalize_handle(h) for h in v]


class TransactionReceipt(BaseModel):
    """Finalized ledger write"""
    tx_hash: str
    block_number: int
    status: int = 1
    gas_used: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class DonationReceipt(BaseModel):
    """Result of a confirmed donation"""
    campaign_id: int
    amount_units: int
    sender: str
    ciphertext_handle: str
    transaction: TransactionReceipt


# ====================
# Decryption Models
# ====================


class EphemeralKeyPair(BaseModel):
    """Single-use key pair for one decryption attempt (hex-encoded)"""
    public_key: str
    private_key: str = Field(..., repr=False)


class AuthorizationRequest(BaseModel):
    """User-decrypt authorization window bound to a set of contracts"""
    contract_addresses: List[str] = Field(..., min_length=1)
    start_timestamp: int
    duration_days: int = Field(default=10, ge=1)

    @classmethod
    def starting_now(
        cls, contract_addresses: List[str], duration_days: int = 10
    ) -> "AuthorizationRequest":
        return cls(
            contract_addresses=list(contract_addresses),
            start_timestamp=int(datetime.now(timezone.utc).timestamp()),
            duration_days=duration_days,
        )

    @property
    def expires_at(self) -> int:
        return self.start_timestamp + self.duration_days * 86400


class HandleContractPair(BaseModel):
    """A handle together with the contract allowed to read it"""
    handle: str
    contract_address: str


DecryptionKey = Tuple[int, DecryptionKind]


class DecryptionState(BaseModel):
    """State of one (campaign_id, kind) decryption entry"""
    campaign_id: int
    kind: DecryptionKind
    phase: DecryptionPhase = DecryptionPhase.IDLE
    value: Optional[int] = None
    # Ciphertext handle value was decrypted from
    handle: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> DecryptionKey:
        return (self.campaign_id, self.kind)

    @property
    def pending(self) -> bool:
        return self.phase in BUSY_PHASES


# ====================
# Workflow Models
# ====================


class CampaignForm(BaseModel):
    """Text form state for campaign creation"""
    title: str = ""
    description: str = ""
    goal: str = ""


class WorkflowResult(BaseModel):
    """Single user-visible outcome of a workflow"""
    success: bool
    status_message: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


# ====================
# API Models
# ====================


class CampaignCreateRequest(BaseModel):
    title: str
    description: str
    goal: str = Field(..., description="Goal as a decimal cETH amount")


class CampaignActiveRequest(BaseModel):
    active: bool


class DonationRequest(BaseModel):
    amount: str = Field(..., description="Donation as a decimal cETH amount")


class CampaignView(BaseModel):
    """Campaign as shown to a viewer"""
    id: int
    title: str
    description: str
    goal: int
    goal_display: str
    creator: str
    active: bool
    raised_handle: str
    user_points_handle: Optional[str] = None
    raised: Optional[int] = None
    raised_display: Optional[str] = None
    points: Optional[int] = None


class CampaignListResponse(BaseModel):
    campaigns: List[CampaignView]
    total: int


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    encryption_status: EncryptionStatus
    wallet_connected: bool


class ErrorResponse(BaseModel):
    """Standard error response"""
    detail: str
    error_code: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "ZERO_HANDLE",
    "MAX_ENCRYPTABLE_UNITS",
    "normalize_handle",
    "is_zero_handle",
    "DecryptionKind",
    "DecryptionPhase",
    "BUSY_PHASES",
    "EncryptionStatus",
    "Campaign",
    "EncryptedInput",
    "TransactionReceipt",
    "DonationReceipt",
    "EphemeralKeyPair",
    "AuthorizationRequest",
    "HandleContractPair",
    "DecryptionKey",
    "DecryptionState",
    "CampaignForm",
    "WorkflowResult",
    "CampaignCreateRequest",
    "CampaignActiveRequest",
    "DonationRequest",
    "CampaignView",
    "CampaignListResponse",
    "HealthResponse",
    "ErrorResponse",
]
