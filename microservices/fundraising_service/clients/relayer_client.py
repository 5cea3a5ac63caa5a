"""
Relayer Client

Client for the local encryption sidecar, a trusted process on the same host
that wraps the FHE SDK and talks to the public relayer on this service's
behalf. Donation amounts are sent to the sidecar in cleartext and come back
as an encrypted input with its proof, so the sidecar must never be exposed
beyond the host. Decrypted values come back sealed to the caller's
ephemeral X25519 key and bound to their handle.

The request and response shapes are defined by this project; see DESIGN.md.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import httpx
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from core.config import RelayerConfig

from ..models import (
    EncryptedInput,
    EncryptionStatus,
    EphemeralKeyPair,
    HandleContractPair,
    normalize_handle,
)
from ..protocols import DecryptionFailureError, EncryptionServiceUnavailableError

logger = logging.getLogger(__name__)

SEAL_INFO = b"fundraising-user-decrypt-v1"
EIP712_DOMAIN_NAME = "Decryption"
EIP712_DOMAIN_VERSION = "1"


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def generate_keypair() -> EphemeralKeyPair:
    """Fresh X25519 key pair, raw bytes hex-encoded"""
    private_key = X25519PrivateKey.generate()
    return EphemeralKeyPair(
        public_key=private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex(),
        private_key=private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption()).hex(),
    )


def _derive_key(private_key: X25519PrivateKey, peer_public: bytes) -> bytes:
    shared = private_key.exchange(X25519PublicKey.from_public_bytes(peer_public))
    return HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=SEAL_INFO).derive(shared)


def seal_value(recipient_public_key: str, handle: str, value: int) -> Dict[str, str]:
    """
    Seal a cleartext value to a recipient key, bound to handle.

    Counterpart of unseal_value; the relayer performs this step.
    """
    sender_key = X25519PrivateKey.generate()
    key = _derive_key(sender_key, bytes.fromhex(_strip_0x(recipient_public_key)))
    nonce = os.urandom(12)
    ciphertext = AESGCM(key).encrypt(
        nonce, value.to_bytes(32, "big"), bytes.fromhex(_strip_0x(handle))
    )
    return {
        "ephemeralPublicKey": sender_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex(),
        "nonce": nonce.hex(),
        "ciphertext": ciphertext.hex(),
    }


def unseal_value(keypair: EphemeralKeyPair, handle: str, sealed: Dict[str, str]) -> int:
    """Open a sealed value; fails if it was sealed for another key or handle"""
    try:
        private_key = X25519PrivateKey.from_private_bytes(bytes.fromhex(keypair.private_key))
        key = _derive_key(private_key, bytes.fromhex(_strip_0x(sealed["ephemeralPublicKey"])))
        plaintext = AESGCM(key).decrypt(
            bytes.fromhex(_strip_0x(sealed["nonce"])),
            bytes.fromhex(_strip_0x(sealed["ciphertext"])),
            bytes.fromhex(_strip_0x(handle)),
        )
    except (KeyError, ValueError, InvalidTag) as e:
        raise DecryptionFailureError(f"Could not open decrypted value for {handle}") from e
    return int.from_bytes(plaintext, "big")


class RelayerClient:
    """Client for the encryption/decryption relayer"""

    def __init__(
        self,
        config: RelayerConfig,
        chain_id: int,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.chain_id = chain_id
        self.base_url = config.relayer_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=config.timeout)
        self._status = EncryptionStatus.LOADING

    @property
    def status(self) -> EncryptionStatus:
        return self._status

    async def initialize(self) -> EncryptionStatus:
        """Fetch the relayer key material location; marks the service ready"""
        try:
            response = await self.client.get(f"{self.base_url}/v1/keyurl")
            response.raise_for_status()
            self._status = EncryptionStatus.READY
            logger.info(f"Relayer ready at {self.base_url}")
        except httpx.HTTPError as e:
            self._status = EncryptionStatus.UNAVAILABLE
            logger.warning(f"Relayer initialization failed: {e}")
        return self._status

    async def close(self) -> None:
        await self.client.aclose()

    # ====================
    # Encryption
    # ====================

    async def create_encrypted_input(
        self, contract_address: str, user_address: str, amount: int
    ) -> EncryptedInput:
        """
        Encrypt amount as a euint64 input for contract_address on behalf of
        user_address.

        Returns:
            EncryptedInput with one handle and the input proof
        """
        request_data = {
            "contractAddress": contract_address,
            "userAddress": user_address,
            "contractChainId": self.chain_id,
            "values": [{"type": "euint64", "value": str(amount)}],
        }
        try:
            response = await self.client.post(f"{self.base_url}/v1/input-proof", json=request_data)
            response.raise_for_status()
            data = response.json()
            return EncryptedInput(handles=data["handles"], input_proof=data["inputProof"])

        except httpx.HTTPStatusError as e:
            logger.error(f"Error creating encrypted input: {e.response.text}")
            raise EncryptionServiceUnavailableError(
                f"Relayer rejected encryption request ({e.response.status_code})"
            ) from e

        except httpx.HTTPError as e:
            logger.error(f"Relayer unreachable: {e}")
            raise EncryptionServiceUnavailableError(f"Relayer unreachable: {e}") from e

        except (KeyError, TypeError, ValueError) as e:
            raise EncryptionServiceUnavailableError(f"Malformed encryption response: {e}") from e

    # ====================
    # Decryption
    # ====================

    def generate_keypair(self) -> EphemeralKeyPair:
        return generate_keypair()

    def create_authorization(
        self,
        public_key: str,
        contract_addresses: List[str],
        start_timestamp: int,
        duration_days: int,
    ) -> Dict[str, Any]:
        """EIP-712 UserDecryptRequestVerification message"""
        return {
            "types": {
                "EIP712Domain": [
                    {"name": "name", "type": "string"},
                    {"name": "version", "type": "string"},
                    {"name": "chainId", "type": "uint256"},
                    {"name": "verifyingContract", "type": "address"},
                ],
                "UserDecryptRequestVerification": [
                    {"name": "publicKey", "type": "bytes"},
                    {"name": "contractAddresses", "type": "address[]"},
                    {"name": "startTimestamp", "type": "uint256"},
                    {"name": "durationDays", "type": "uint256"},
                    {"name": "extraData", "type": "bytes"},
                ],
            },
            "primaryType": "UserDecryptRequestVerification",
            "domain": {
                "name": EIP712_DOMAIN_NAME,
                "version": EIP712_DOMAIN_VERSION,
                "chainId": self.config.gateway_chain_id,
                "verifyingContract": self.config.verifying_contract,
            },
            "message": {
                "publicKey": "0x" + _strip_0x(public_key),
                "contractAddresses": list(contract_addresses),
                "startTimestamp": start_timestamp,
                "durationDays": duration_days,
                "extraData": "0x00",
            },
        }

    async def user_decrypt(
        self,
        pairs: List[HandleContractPair],
        keypair: EphemeralKeyPair,
        signature: str,
        contract_addresses: List[str],
        user_address: str,
        start_timestamp: int,
        duration_days: int,
    ) -> Dict[str, int]:
        """
        Request decryption of pairs; only the requested handles are returned.

        The private key never leaves this process.
        """
        request_data = {
            "handleContractPairs": [
                {"handle": p.handle, "contractAddress": p.contract_address} for p in pairs
            ],
            "requestValidity": {
                "startTimestamp": str(start_timestamp),
                "durationDays": str(duration_days),
            },
            "contractsChainId": str(self.chain_id),
            "contractAddresses": list(contract_addresses),
            "userAddress": user_address,
            "signature": _strip_0x(signature),
            "publicKey": _strip_0x(keypair.public_key),
            "extraData": "0x00",
        }
        try:
            response = await self.client.post(f"{self.base_url}/v1/user-decrypt", json=request_data)
            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"Relayer decrypt error: {e.response.text}")
            raise DecryptionFailureError(
                f"Relayer rejected decryption ({e.response.status_code})"
            ) from e

        except httpx.HTTPError as e:
            logger.error(f"Relayer unreachable: {e}")
            raise EncryptionServiceUnavailableError(f"Relayer unreachable: {e}") from e

        requested = {normalize_handle(p.handle) for p in pairs}
        results: Dict[str, int] = {}
        try:
            for item in data.get("response", []):
                handle = normalize_handle(item.get("handle"))
                if handle not in requested:
                    continue
                results[handle] = unseal_value(keypair, handle, item.get("sealed") or {})
        except (AttributeError, TypeError) as e:
            raise DecryptionFailureError(f"Malformed decryption response: {e}") from e
        return results


__all__ = [
    "RelayerClient",
    "generate_keypair",
    "seal_value",
    "unseal_value",
]
