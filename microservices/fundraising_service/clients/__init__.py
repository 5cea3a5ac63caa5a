"""
Fundraising Service Clients

Adapters for the ledger, the encryption relayer and the wallet signer.
"""

from .ledger_client import LedgerClient
from .relayer_client import RelayerClient
from .wallet_signer import LocalWalletSigner

__all__ = [
    "LedgerClient",
    "RelayerClient",
    "LocalWalletSigner",
]
