"""
Fundraising Service Business Logic

Workflow boundary for the confidential fundraising client. Every caller-facing
operation runs here: remote errors are caught, logged, handed to the error
reporter and turned into one user-visible message.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .amount_codec import format_amount
from .decryption_orchestrator import DecryptionOrchestrator
from .donation_pipeline import DonationEncryptionPipeline
from .models import (
    Campaign,
    CampaignForm,
    CampaignView,
    DecryptionKind,
    DecryptionPhase,
    EncryptionStatus,
    WorkflowResult,
    ZERO_HANDLE,
)
from .protocols import (
    EncryptionServiceProtocol,
    EncryptionServiceUnavailableError,
    ErrorReporterProtocol,
    FundraisingError,
    FundraisingValidationError,
    LedgerProtocol,
    WalletSignerProtocol,
    WalletUnavailableError,
)
from .registry_cache import CampaignRegistryCache
from .workflows import (
    FAUCET_GRANT_UNITS,
    CampaignCreationWorkflow,
    CampaignStatusWorkflow,
    FaucetWorkflow,
)

logger = logging.getLogger(__name__)


class LoggingErrorReporter:
    """Default error reporter: log with context"""

    def report(self, error: BaseException, context: Dict[str, Any]) -> None:
        logger.error(f"Workflow error [{getattr(error, 'error_code', type(error).__name__)}] {context}: {error}")


class FundraisingService:
    """Confidential fundraising client"""

    def __init__(
        self,
        ledger: LedgerProtocol,
        encryption: EncryptionServiceProtocol,
        fundraising_address: str,
        token_address: str,
        signer: Optional[WalletSignerProtocol] = None,
        cache_stale_seconds: float = 10.0,
        decrypt_duration_days: int = 10,
        error_reporter: Optional[ErrorReporterProtocol] = None,
    ):
        self.ledger = ledger
        self.encryption = encryption
        self.signer = signer
        self.error_reporter = error_reporter or LoggingErrorReporter()

        self.registry = CampaignRegistryCache(ledger, stale_after=cache_stale_seconds)
        self.decryptions: Optional[DecryptionOrchestrator] = None
        if signer is not None:
            self.decryptions = DecryptionOrchestrator(
                encryption=encryption,
                signer=signer,
                contract_address=fundraising_address,
                duration_days=decrypt_duration_days,
                error_reporter=self.error_reporter,
            )
        self.donations = DonationEncryptionPipeline(
            ledger=ledger,
            encryption=encryption,
            registry=self.registry,
            token_address=token_address,
            decryptions=self.decryptions,
        )
        self.creation = CampaignCreationWorkflow(ledger, self.registry)
        self.status_workflow = CampaignStatusWorkflow(ledger, self.registry)
        self.faucet = FaucetWorkflow(ledger)

    @property
    def viewer(self) -> Optional[str]:
        """Identity campaigns are read for (the connected wallet)"""
        if self.signer is not None:
            return self.signer.address
        return self.ledger.account_address

    @property
    def wallet_connected(self) -> bool:
        return self.ledger.account_address is not None

    @property
    def encryption_status(self) -> EncryptionStatus:
        return self.encryption.status

    # ====================
    # Reads
    # ====================

    async def list_campaigns(self) -> List[CampaignView]:
        """
        Campaigns for the connected viewer, newest first, with revealed values.

        Read errors are logged and reported, then raised to the caller.
        """
        try:
            campaigns = await self.registry.list(self.viewer)
        except FundraisingError as e:
            self._report("list_campaigns", e, {})
            raise
        return [self._to_view(c) for c in campaigns]

    def refresh(self) -> None:
        """Force the next listing to re-read the ledger"""
        self.registry.invalidate()

    def _to_view(self, campaign: Campaign) -> CampaignView:
        raised = points = None
        if self.decryptions is not None:
            raised = self.decryptions.value(
                campaign.id, DecryptionKind.RAISED, campaign.raised_handle
            )
            points = self.decryptions.value(
                campaign.id, DecryptionKind.POINTS, campaign.user_points_handle or ZERO_HANDLE
            )
        return CampaignView(
            id=campaign.id,
            title=campaign.title,
            description=campaign.description,
            goal=campaign.goal,
            goal_display=format_amount(campaign.goal, grouping=True),
            creator=campaign.creator,
            active=campaign.active,
            raised_handle=campaign.raised_handle,
            user_points_handle=campaign.user_points_handle,
            raised=raised,
            raised_display=None if raised is None else format_amount(raised, grouping=True),
            points=points,
        )

    # ====================
    # Workflows
    # ====================

    async def create_campaign(self, form: CampaignForm) -> WorkflowResult:
        async def run() -> Dict[str, Any]:
            self._require_wallet("Connect your wallet to create a campaign")
            receipt = await self.creation.submit(form)
            return {"tx_hash": receipt.tx_hash}

        return await self._run("create_campaign", run, "Campaign created successfully")

    async def set_campaign_active(self, campaign_id: int, active: bool) -> WorkflowResult:
        async def run() -> Dict[str, Any]:
            self._require_wallet("Connect your wallet to update a campaign")
            receipt = await self.status_workflow.set_active(campaign_id, active)
            return {"tx_hash": receipt.tx_hash, "active": active}

        message = "Campaign activated" if active else "Campaign deactivated"
        return await self._run("set_campaign_active", run, message, campaign_id=campaign_id)

    async def donate(self, campaign_id: int, amount: str) -> WorkflowResult:
        async def run() -> Dict[str, Any]:
            self._require_wallet("Connect your wallet before donating")
            campaign = await self.registry.get(campaign_id, self.viewer)
            receipt = await self.donations.donate(campaign, amount)
            return {
                "tx_hash": receipt.transaction.tx_hash,
                "amount_units": receipt.amount_units,
            }

        return await self._run("donate", run, "Donation confirmed", campaign_id=campaign_id)

    async def claim_faucet(self) -> WorkflowResult:
        async def run() -> Dict[str, Any]:
            self._require_wallet("Connect your wallet to request cETH")
            receipt = await self.faucet.claim()
            return {"tx_hash": receipt.tx_hash}

        message = f"{format_amount(FAUCET_GRANT_UNITS)} cETH credited to your wallet"
        return await self._run("claim_faucet", run, message)

    async def decrypt(self, campaign_id: int, kind: DecryptionKind) -> WorkflowResult:
        """Reveal the raised total or the viewer's points for a campaign"""
        try:
            if self.decryptions is None:
                raise WalletUnavailableError("Connect your wallet to decrypt values")
            if self.encryption.status != EncryptionStatus.READY:
                raise EncryptionServiceUnavailableError(
                    "Encryption service unavailable. Please wait for initialization."
                )
            campaign = await self.registry.get(campaign_id, self.viewer)
        except FundraisingError as e:
            return self._failure("decrypt", e, {"campaign_id": campaign_id, "kind": kind.value})

        if kind == DecryptionKind.RAISED:
            handle = campaign.raised_handle
        else:
            handle = campaign.user_points_handle or ZERO_HANDLE

        state = await self.decryptions.decrypt(campaign_id, kind, handle, viewer=self.viewer)
        data = {"state": state.model_dump(mode="json")}

        if state.phase == DecryptionPhase.FAILED:
            return WorkflowResult(
                success=False,
                error_message=state.error_message,
                error_code=state.error_code,
                data=data,
            )
        if state.pending:
            return WorkflowResult(success=True, status_message="Decryption already in progress", data=data)
        if state.phase == DecryptionPhase.IDLE:
            return WorkflowResult(success=True, status_message="Value changed, decrypt again", data=data)
        return WorkflowResult(success=True, status_message="Value decrypted", data=data)

    # ====================
    # Boundary helpers
    # ====================

    def _require_wallet(self, message: str) -> None:
        if not self.wallet_connected:
            raise WalletUnavailableError(message)

    async def _run(
        self,
        action: str,
        run: Callable[[], Awaitable[Dict[str, Any]]],
        success_message: str,
        **context: Any,
    ) -> WorkflowResult:
        try:
            data = await run()
        except FundraisingError as e:
            return self._failure(action, e, context)
        return WorkflowResult(success=True, status_message=success_message, data=data)

    def _failure(self, action: str, error: FundraisingError, context: Dict[str, Any]) -> WorkflowResult:
        self._report(action, error, context)
        return WorkflowResult(
            success=False,
            error_message=str(error),
            error_code=error.error_code,
        )

    def _report(self, action: str, error: FundraisingError, context: Dict[str, Any]) -> None:
        if isinstance(error, FundraisingValidationError):
            logger.info(f"{action} rejected: {error}")
        else:
            logger.error(f"{action} error: {error}")
            self.error_reporter.report(error, {"action": action, **context})
