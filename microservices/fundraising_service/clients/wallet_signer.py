"""
Wallet Signer

Signs EIP-712 authorization messages with a locally held account key.
"""

import logging
from typing import Any, Dict

from eth_account import Account
from eth_account.messages import encode_typed_data

from ..protocols import WalletUnavailableError

logger = logging.getLogger(__name__)


class LocalWalletSigner:
    """Signer backed by an eth_account LocalAccount"""

    def __init__(self, private_key: str):
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            raise WalletUnavailableError("Wallet key is not a valid private key") from e

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_typed_data(self, typed_data: Dict[str, Any]) -> str:
        """Sign a full EIP-712 message (types, primaryType, domain, message)"""
        try:
            signable = encode_typed_data(full_message=typed_data)
            signed = self._account.sign_message(signable)
        except (ValueError, TypeError, KeyError) as e:
            raise WalletUnavailableError(f"Could not sign authorization message: {e}") from e

        logger.debug(f"Signed {typed_data.get('primaryType')} for {self.address}")
        return "0x" + bytes(signed.signature).hex()


__all__ = ["LocalWalletSigner"]
