"""
Campaign write workflows

Campaign creation, the creator-only active toggle and the test-token faucet.
Each submits one ledger write and returns after finality.
"""

import logging
from typing import Awaitable, Optional, Tuple

from .amount_codec import parse_amount
from .models import CampaignForm, TransactionReceipt
from .protocols import (
    CampaignValidationError,
    FundraisingError,
    LedgerProtocol,
    TransactionFailureError,
    ZeroAmountError,
)
from .registry_cache import CampaignRegistryCache

logger = logging.getLogger(__name__)

FAUCET_GRANT_UNITS = 1_000_000


async def _submit(description: str, write: Awaitable[TransactionReceipt]) -> TransactionReceipt:
    try:
        receipt = await write
    except FundraisingError:
        raise
    except Exception as e:
        raise TransactionFailureError(f"Failed to {description}: {e}") from e

    if not receipt.succeeded:
        raise TransactionFailureError(f"Failed to {description}: transaction reverted", tx_hash=receipt.tx_hash)
    return receipt


class CampaignCreationWorkflow:
    """Validates the creation form and creates a campaign on the ledger"""

    def __init__(self, ledger: LedgerProtocol, registry: CampaignRegistryCache):
        self.ledger = ledger
        self.registry = registry
        self.form = CampaignForm()

    def validate(self, form: CampaignForm) -> Tuple[str, str, int]:
        """Return (title, description, goal_units) or raise a validation error"""
        title = form.title.strip()
        description = form.description.strip()
        if not title or not description:
            raise CampaignValidationError(
                "Title and description are required",
                field="title" if not title else "description",
            )

        goal_units = parse_amount(form.goal)
        if goal_units == 0:
            raise ZeroAmountError("Goal must be greater than zero")
        return title, description, goal_units

    async def submit(self, form: Optional[CampaignForm] = None) -> TransactionReceipt:
        """Create the campaign described by form (or the held form state)"""
        if form is not None:
            self.form = form
        title, description, goal_units = self.validate(self.form)

        receipt = await _submit(
            "create campaign",
            self.ledger.create_campaign(title, description, goal_units),
        )
        logger.info(f"Campaign created: '{title}' (tx {receipt.tx_hash})")

        self.registry.invalidate()
        self.form = CampaignForm()
        return receipt


class CampaignStatusWorkflow:
    """Creator-only campaign activation toggle"""

    def __init__(self, ledger: LedgerProtocol, registry: CampaignRegistryCache):
        self.ledger = ledger
        self.registry = registry

    async def set_active(self, campaign_id: int, active: bool) -> TransactionReceipt:
        """
        Raises:
            UnauthorizedError: caller is not the campaign creator
        """
        receipt = await _submit(
            "update campaign status",
            self.ledger.set_campaign_active(campaign_id, active),
        )
        logger.info(f"Campaign {campaign_id} {'activated' if active else 'deactivated'}")
        self.registry.invalidate()
        return receipt


class FaucetWorkflow:
    """Claims the fixed test-token grant; no encryption, no registry change"""

    def __init__(self, ledger: LedgerProtocol):
        self.ledger = ledger

    async def claim(self) -> TransactionReceipt:
        receipt = await _submit("claim faucet tokens", self.ledger.claim_faucet())
        logger.info(f"Faucet grant claimed by {self.ledger.account_address}")
        return receipt
