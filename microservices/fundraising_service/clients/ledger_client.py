"""
Ledger Client

Typed reads and writes against the ConfidentialFundraising and ERC7984ETH
contracts. Raw ABI results are validated here so the rest of the service
only sees Campaign models and 0x-hex handles.
"""

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, List, Optional

from eth_abi import decode
from eth_account import Account
from web3 import AsyncWeb3, Web3
from web3.exceptions import (
    ContractCustomError,
    ContractLogicError,
    TimeExhausted,
    Web3Exception,
)

from core.config import LedgerConfig

from ..models import Campaign, TransactionReceipt, normalize_handle
from ..protocols import (
    FundraisingError,
    LedgerResponseError,
    TransactionFailureError,
    UnauthorizedError,
    WalletUnavailableError,
)

logger = logging.getLogger(__name__)

CONTRACTS_DIR = Path(__file__).parent.parent / "contracts"

TRANSFER_AND_CALL_SIGNATURE = "confidentialTransferAndCall(address,bytes32,bytes,bytes)"
UNAUTHORIZED_SELECTOR = "0x" + bytes(Web3.keccak(text="Unauthorized(address)")[:4]).hex()

_CAMPAIGN_FIELDS = ("id", "creator", "title", "description", "goal", "active")


def load_contract_abi(contract_name: str) -> List[dict]:
    """Load contract ABI from JSON file"""
    abi_path = CONTRACTS_DIR / f"{contract_name}.json"
    with open(abi_path, "r") as f:
        return json.load(f)


# ====================
# Response validation
# ====================


def parse_campaign(raw: Any) -> Campaign:
    """Build a Campaign from a getCampaigns() struct (tuple or mapping)"""
    if isinstance(raw, Mapping):
        missing = [f for f in _CAMPAIGN_FIELDS if f not in raw]
        if missing:
            raise LedgerResponseError(f"Campaign struct missing fields: {missing}")
        values = [raw[f] for f in _CAMPAIGN_FIELDS]
    elif isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        if len(raw) != len(_CAMPAIGN_FIELDS):
            raise LedgerResponseError(
                f"Campaign struct has {len(raw)} fields, expected {len(_CAMPAIGN_FIELDS)}"
            )
        values = list(raw)
    else:
        raise LedgerResponseError(f"Unexpected campaign struct: {type(raw).__name__}")

    campaign_id, creator, title, description, goal, active = values
    if not isinstance(campaign_id, int) or not isinstance(goal, int):
        raise LedgerResponseError("Campaign id and goal must be integers")
    if not isinstance(title, str) or not isinstance(description, str):
        raise LedgerResponseError("Campaign title and description must be strings")
    if not isinstance(active, bool):
        raise LedgerResponseError("Campaign active flag must be a boolean")
    if not isinstance(creator, str) or not Web3.is_address(creator):
        raise LedgerResponseError(f"Invalid campaign creator address: {creator!r}")

    try:
        return Campaign(
            id=campaign_id,
            title=title,
            description=description,
            goal=goal,
            creator=Web3.to_checksum_address(creator),
            active=active,
        )
    except ValueError as e:
        raise LedgerResponseError(f"Invalid campaign struct: {e}") from e


def parse_handle(raw: Any) -> str:
    """Validate a bytes32 ciphertext handle"""
    if isinstance(raw, (bytes, bytearray)):
        if len(raw) != 32:
            raise LedgerResponseError(f"Handle must be 32 bytes, got {len(raw)}")
        return normalize_handle(raw)
    if isinstance(raw, str):
        handle = normalize_handle(raw)
        if len(handle) != 66:
            raise LedgerResponseError(f"Handle must be 32 bytes: {raw!r}")
        try:
            bytes.fromhex(handle[2:])
        except ValueError as e:
            raise LedgerResponseError(f"Handle is not hex: {raw!r}") from e
        return handle
    raise LedgerResponseError(f"Unexpected handle type: {type(raw).__name__}")


def decode_revert(error: ContractCustomError, action: str) -> FundraisingError:
    """Map a custom-error revert to the service error taxonomy"""
    data = error.data if isinstance(error.data, str) else str(error.args[0] if error.args else "")
    data = data.lower()
    if data.startswith(UNAUTHORIZED_SELECTOR):
        account = None
        payload = data[len(UNAUTHORIZED_SELECTOR):]
        if len(payload) >= 64:
            (account,) = decode(["address"], bytes.fromhex(payload[:64]))
            account = Web3.to_checksum_address(account)
        return UnauthorizedError(f"Not allowed to {action}", account=account)
    return TransactionFailureError(f"Failed to {action}: reverted with {data[:10]}")


class LedgerClient:
    """Async client for the fundraising and token contracts"""

    def __init__(
        self,
        config: LedgerConfig,
        private_key: Optional[str] = None,
        w3: Optional[AsyncWeb3] = None,
    ):
        self.config = config
        self.w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.rpc_url))
        self._account = Account.from_key(private_key) if private_key else None

        self.fundraising_address = Web3.to_checksum_address(config.fundraising_address)
        self.token_address = Web3.to_checksum_address(config.token_address)
        self.fundraising = self.w3.eth.contract(
            address=self.fundraising_address,
            abi=load_contract_abi("ConfidentialFundraising"),
        )
        self.token = self.w3.eth.contract(
            address=self.token_address,
            abi=load_contract_abi("ERC7984ETH"),
        )

    @property
    def account_address(self) -> Optional[str]:
        return self._account.address if self._account else None

    async def close(self) -> None:
        """Close the RPC provider session"""
        await self.w3.provider.disconnect()
        logger.info("Ledger client closed")

    # ====================
    # Reads
    # ====================

    async def get_campaigns(self) -> List[Campaign]:
        raw = await self._call(self.fundraising.functions.getCampaigns(), "list campaigns")
        if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
            raise LedgerResponseError(f"getCampaigns returned {type(raw).__name__}")
        return [parse_campaign(item) for item in raw]

    async def get_campaign_raised(self, campaign_id: int) -> str:
        raw = await self._call(
            self.fundraising.functions.getCampaignRaised(campaign_id),
            f"read raised amount of campaign {campaign_id}",
        )
        return parse_handle(raw)

    async def get_user_points(self, campaign_id: int, user: str) -> str:
        raw = await self._call(
            self.fundraising.functions.getUserPoints(campaign_id, Web3.to_checksum_address(user)),
            f"read points of {user} in campaign {campaign_id}",
        )
        return parse_handle(raw)

    async def _call(self, function: Any, action: str) -> Any:
        try:
            return await function.call()
        except ContractCustomError as e:
            raise decode_revert(e, action) from e
        except (ContractLogicError, Web3Exception, OSError) as e:
            logger.error(f"Ledger read failed ({action}): {e}")
            raise LedgerResponseError(f"Failed to {action}: {e}") from e

    # ====================
    # Writes
    # ====================

    async def create_campaign(
        self, title: str, description: str, goal: int
    ) -> TransactionReceipt:
        return await self._transact(
            self.fundraising.functions.createCampaign(title, description, goal),
            "create campaign",
        )

    async def set_campaign_active(
        self, campaign_id: int, active: bool
    ) -> TransactionReceipt:
        return await self._transact(
            self.fundraising.functions.setCampaignActive(campaign_id, active),
            f"update status of campaign {campaign_id}",
        )

    async def donate(
        self, handle: str, input_proof: str, payload: bytes
    ) -> TransactionReceipt:
        transfer_and_call = self.token.get_function_by_signature(TRANSFER_AND_CALL_SIGNATURE)
        return await self._transact(
            transfer_and_call(
                self.fundraising_address,
                Web3.to_bytes(hexstr=handle),
                Web3.to_bytes(hexstr=input_proof),
                payload,
            ),
            "process donation",
        )

    async def claim_faucet(self) -> TransactionReceipt:
        return await self._transact(self.token.functions.faucet(), "claim faucet tokens")

    async def _transact(self, function: Any, action: str) -> TransactionReceipt:
        if self._account is None:
            raise WalletUnavailableError("Wallet signer unavailable")

        sender = self._account.address
        try:
            nonce = await self.w3.eth.get_transaction_count(sender)
            transaction = await function.build_transaction({
                "chainId": self.config.chain_id,
                "nonce": nonce,
                "from": sender,
            })
            signed_txn = self._account.sign_transaction(transaction)
            tx_hash = await self.w3.eth.send_raw_transaction(signed_txn.raw_transaction)
            logger.debug(f"Submitted {action}: {Web3.to_hex(tx_hash)}")

            tx_receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.config.tx_receipt_timeout
            )
        except ContractCustomError as e:
            raise decode_revert(e, action) from e
        except ContractLogicError as e:
            raise TransactionFailureError(f"Failed to {action}: {e}") from e
        except TimeExhausted as e:
            raise TransactionFailureError(f"Failed to {action}: not confirmed in time") from e
        except (Web3Exception, OSError, ValueError) as e:
            raise TransactionFailureError(f"Failed to {action}: {e}") from e

        receipt = TransactionReceipt(
            tx_hash=Web3.to_hex(tx_hash),
            block_number=tx_receipt["blockNumber"],
            status=tx_receipt["status"],
            gas_used=tx_receipt.get("gasUsed"),
        )
        if not receipt.succeeded:
            raise TransactionFailureError(f"Failed to {action}: transaction reverted", tx_hash=receipt.tx_hash)
        return receipt


__all__ = [
    "LedgerClient",
    "load_contract_abi",
    "parse_campaign",
    "parse_handle",
    "decode_revert",
    "UNAUTHORIZED_SELECTOR",
]
