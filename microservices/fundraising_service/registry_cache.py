"""
Campaign Registry Cache

Reads campaigns and their ciphertext handles from the ledger and caches the
result per viewer identity.
"""

import asyncio
import logging
from typing import List, Optional

from web3 import Web3

from core.query_cache import QueryCache

from .models import Campaign
from .protocols import CampaignNotFoundError, LedgerProtocol

logger = logging.getLogger(__name__)


def normalize_viewer(viewer: Optional[str]) -> Optional[str]:
    """Checksum a viewer address so cache keys ignore casing"""
    if not viewer:
        return None
    return Web3.to_checksum_address(viewer)


class CampaignRegistryCache:
    """Campaign list cache keyed by viewer identity"""

    def __init__(
        self,
        ledger: LedgerProtocol,
        stale_after: float = 10.0,
        cache: Optional[QueryCache[List[Campaign]]] = None,
    ):
        self.ledger = ledger
        self._cache = cache if cache is not None else QueryCache("campaigns", stale_after=stale_after)

    async def list(self, viewer: Optional[str] = None) -> List[Campaign]:
        """
        Campaigns visible to viewer, most recent first.

        Three sequential passes: the campaign list, then every raised handle
        concurrently, then (with a viewer) every points handle concurrently.
        """
        key = normalize_viewer(viewer)
        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        campaigns = await self._fetch(key)
        self._cache.put(key, campaigns)
        return list(campaigns)

    async def get(self, campaign_id: int, viewer: Optional[str] = None) -> Campaign:
        """Single campaign from the (possibly cached) list"""
        for campaign in await self.list(viewer):
            if campaign.id == campaign_id:
                return campaign
        raise CampaignNotFoundError(f"Campaign not found: {campaign_id}")

    def invalidate(self, viewer: Optional[str] = None) -> None:
        """Drop the cached list for one viewer, or for everyone"""
        self._cache.invalidate(normalize_viewer(viewer))

    async def _fetch(self, viewer: Optional[str]) -> List[Campaign]:
        campaigns = await self.ledger.get_campaigns()
        if not campaigns:
            return []

        raised_handles = await asyncio.gather(
            *(self.ledger.get_campaign_raised(c.id) for c in campaigns)
        )

        points_handles: List[Optional[str]] = [None] * len(campaigns)
        if viewer:
            points_handles = list(await asyncio.gather(
                *(self.ledger.get_user_points(c.id, viewer) for c in campaigns)
            ))

        merged = [
            Campaign.model_validate({
                **campaign.model_dump(),
                "raised_handle": raised,
                "user_points_handle": points,
            })
            for campaign, raised, points in zip(campaigns, raised_handles, points_handles)
        ]
        merged.sort(key=lambda c: c.id, reverse=True)

        logger.debug(
            f"Fetched {len(merged)} campaigns"
            f"{f' for {viewer}' if viewer else ''}"
        )
        return merged
