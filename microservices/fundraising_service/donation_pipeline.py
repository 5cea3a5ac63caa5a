"""
Donation Encryption Pipeline

Validates a donation, encrypts the amount through the relayer, submits the
confidential transfer-and-call transaction and invalidates caches once the
transaction is final.
"""

import logging
from typing import Optional

from eth_abi import encode

from .amount_codec import format_amount, parse_amount
from .decryption_orchestrator import DecryptionOrchestrator
from .models import (
    MAX_ENCRYPTABLE_UNITS,
    Campaign,
    DecryptionKind,
    DonationReceipt,
    EncryptionStatus,
)
from .protocols import (
    AmountTooLargeError,
    CampaignNotActiveError,
    EncryptionServiceProtocol,
    EncryptionServiceUnavailableError,
    FundraisingError,
    LedgerProtocol,
    TransactionFailureError,
    WalletUnavailableError,
    ZeroAmountError,
)
from .registry_cache import CampaignRegistryCache

logger = logging.getLogger(__name__)


def encode_campaign_payload(campaign_id: int) -> bytes:
    """ABI-encode the campaign id as the transfer callback payload"""
    return encode(["uint256"], [campaign_id])


def validate_donation_amount(amount_text: str) -> int:
    """Parse and range-check a donation amount; purely local"""
    units = parse_amount(amount_text)
    if units == 0:
        raise ZeroAmountError("Donation amount must be greater than zero")
    if units > MAX_ENCRYPTABLE_UNITS:
        raise AmountTooLargeError("Amount too large for supported encryption range")
    return units


class DonationEncryptionPipeline:
    """Encrypted donation submission"""

    def __init__(
        self,
        ledger: LedgerProtocol,
        encryption: EncryptionServiceProtocol,
        registry: CampaignRegistryCache,
        token_address: str,
        decryptions: Optional[DecryptionOrchestrator] = None,
    ):
        self.ledger = ledger
        self.encryption = encryption
        self.registry = registry
        self.token_address = token_address
        self.decryptions = decryptions

    async def donate(self, campaign: Campaign, amount_text: str) -> DonationReceipt:
        """
        Donate amount_text cETH to campaign.

        Raises:
            CampaignNotActiveError, InvalidFormatError, ZeroAmountError,
            AmountTooLargeError: local validation, nothing sent
            EncryptionServiceUnavailableError: encrypted input not produced
            WalletUnavailableError: no wallet to send from
            TransactionFailureError: transaction reverted or not final
        """
        if not campaign.active:
            raise CampaignNotActiveError(f"Campaign {campaign.id} is not accepting donations")
        units = validate_donation_amount(amount_text)

        sender = self.ledger.account_address
        if not sender:
            raise WalletUnavailableError("Wallet signer unavailable")

        encrypted = await self._encrypt(sender, units)
        payload = encode_campaign_payload(campaign.id)
        handle = encrypted.handles[0]

        try:
            receipt = await self.ledger.donate(handle, encrypted.input_proof, payload)
        except FundraisingError:
            raise
        except Exception as e:
            raise TransactionFailureError(f"Failed to process donation: {e}") from e

        if not receipt.succeeded:
            raise TransactionFailureError("Donation transaction reverted", tx_hash=receipt.tx_hash)

        logger.info(
            f"Donation of {format_amount(units)} cETH to campaign {campaign.id} "
            f"confirmed in block {receipt.block_number}"
        )
        self._invalidate(campaign.id)

        return DonationReceipt(
            campaign_id=campaign.id,
            amount_units=units,
            sender=sender,
            ciphertext_handle=handle,
            transaction=receipt,
        )

    async def _encrypt(self, sender: str, units: int):
        if self.encryption.status != EncryptionStatus.READY:
            raise EncryptionServiceUnavailableError(
                "Encryption service unavailable. Please wait for initialization."
            )
        try:
            return await self.encryption.create_encrypted_input(self.token_address, sender, units)
        except EncryptionServiceUnavailableError:
            raise
        except Exception as e:
            raise EncryptionServiceUnavailableError(f"Failed to encrypt donation: {e}") from e

    def _invalidate(self, campaign_id: int) -> None:
        if self.decryptions is not None:
            self.decryptions.invalidate(campaign_id, DecryptionKind.RAISED)
            self.decryptions.invalidate(campaign_id, DecryptionKind.POINTS)
        self.registry.invalidate()
