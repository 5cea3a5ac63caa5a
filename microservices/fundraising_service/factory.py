"""
Fundraising Service Factory

Factory for creating fundraising service instances with proper dependency injection.
"""

import logging
from typing import Optional

from core.config import FundraisingConfig, get_settings

from .clients.ledger_client import LedgerClient
from .clients.relayer_client import RelayerClient
from .clients.wallet_signer import LocalWalletSigner
from .fundraising_service import FundraisingService

logger = logging.getLogger(__name__)


class FundraisingServiceFactory:
    """Factory for creating fundraising service components"""

    def __init__(self, config: Optional[FundraisingConfig] = None):
        self.config = config or get_settings()
        self._ledger: Optional[LedgerClient] = None
        self._relayer: Optional[RelayerClient] = None
        self._signer: Optional[LocalWalletSigner] = None
        self._service: Optional[FundraisingService] = None

    async def initialize(self) -> None:
        """Initialize all components"""
        logger.info("Initializing Fundraising Service components...")

        self._ledger = LedgerClient(
            self.config.ledger,
            private_key=self.config.wallet_private_key,
        )
        if self.config.wallet_private_key:
            self._signer = LocalWalletSigner(self.config.wallet_private_key)
            logger.info(f"Wallet connected: {self._signer.address}")
        else:
            logger.warning("No WALLET_PRIVATE_KEY configured, running read-only")

        self._relayer = RelayerClient(self.config.relayer, chain_id=self.config.ledger.chain_id)
        await self._relayer.initialize()

        self._service = FundraisingService(
            ledger=self._ledger,
            encryption=self._relayer,
            fundraising_address=self._ledger.fundraising_address,
            token_address=self._ledger.token_address,
            signer=self._signer,
            cache_stale_seconds=self.config.cache_stale_seconds,
            decrypt_duration_days=self.config.decrypt_duration_days,
        )

        logger.info("Fundraising Service components initialized")

    async def close(self) -> None:
        """Close all components"""
        logger.info("Closing Fundraising Service components...")

        if self._relayer:
            await self._relayer.close()
        if self._ledger:
            await self._ledger.close()

        logger.info("Fundraising Service components closed")

    @property
    def service(self) -> FundraisingService:
        """Get fundraising service"""
        if not self._service:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._service

    @property
    def ledger(self) -> LedgerClient:
        """Get ledger client"""
        if not self._ledger:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._ledger

    @property
    def relayer(self) -> RelayerClient:
        """Get relayer client"""
        if not self._relayer:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._relayer


__all__ = ["FundraisingServiceFactory"]
