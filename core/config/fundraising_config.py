#!/usr/bin/env python3
"""Fundraising client configuration

Ledger endpoints, deployed contract addresses, relayer endpoint and the
client-side policy knobs (cache staleness, authorization window).
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from .logging_config import LoggingConfig

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default

def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass
class LedgerConfig:
    """Chain RPC and deployed contract addresses"""
    rpc_url: str = "http://localhost:8545"
    chain_id: int = 11155111
    fundraising_address: str = ZERO_ADDRESS
    token_address: str = ZERO_ADDRESS
    tx_receipt_timeout: float = 120.0

    @classmethod
    def from_env(cls) -> 'LedgerConfig':
        return cls(
            rpc_url=os.getenv("BLOCKCHAIN_RPC_URL", "http://localhost:8545"),
            chain_id=_int(os.getenv("CHAIN_ID", ""), 11155111),
            fundraising_address=os.getenv("FUNDRAISING_ADDRESS", ZERO_ADDRESS),
            token_address=os.getenv("TOKEN_ADDRESS", ZERO_ADDRESS),
            tx_receipt_timeout=_float(os.getenv("TX_RECEIPT_TIMEOUT", ""), 120.0),
        )


@dataclass
class RelayerConfig:
    """Local encryption sidecar endpoint and EIP-712 domain"""
    relayer_url: str = "http://127.0.0.1:8270"
    timeout: float = 30.0
    gateway_chain_id: int = 55815
    verifying_contract: str = ZERO_ADDRESS

    @classmethod
    def from_env(cls) -> 'RelayerConfig':
        return cls(
            relayer_url=os.getenv("RELAYER_URL", "http://127.0.0.1:8270"),
            timeout=_float(os.getenv("RELAYER_TIMEOUT", ""), 30.0),
            gateway_chain_id=_int(os.getenv("GATEWAY_CHAIN_ID", ""), 55815),
            verifying_contract=os.getenv("DECRYPTION_VERIFIER_ADDRESS", ZERO_ADDRESS),
        )


@dataclass
class FundraisingConfig:
    """Main configuration for the fundraising client"""
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    relayer: RelayerConfig = field(default_factory=RelayerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Wallet key is read from the environment only, never written anywhere
    wallet_private_key: Optional[str] = None

    # Client-side policy
    cache_stale_seconds: float = 10.0
    decrypt_duration_days: int = 10
    service_port: int = 8260

    @classmethod
    def from_env(cls) -> 'FundraisingConfig':
        return cls(
            ledger=LedgerConfig.from_env(),
            relayer=RelayerConfig.from_env(),
            logging=LoggingConfig.from_env(),
            wallet_private_key=os.getenv("WALLET_PRIVATE_KEY") or None,
            cache_stale_seconds=_float(os.getenv("CAMPAIGN_CACHE_STALE_SECONDS", ""), 10.0),
            decrypt_duration_days=_int(os.getenv("DECRYPT_DURATION_DAYS", ""), 10),
            service_port=_int(os.getenv("FUNDRAISING_SERVICE_PORT", ""), 8260),
        )
