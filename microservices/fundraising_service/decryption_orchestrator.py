"""
Decryption Orchestrator

Drives authorized user decryption of campaign ciphertext handles through the
relayer. Each (campaign_id, kind) key moves through

    idle -> requesting -> awaiting_signature -> awaiting_relayer -> resolved | failed

and a key that is mid-flight ignores further requests.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from .models import (
    BUSY_PHASES,
    AuthorizationRequest,
    DecryptionKey,
    DecryptionKind,
    DecryptionPhase,
    DecryptionState,
    EphemeralKeyPair,
    HandleContractPair,
    ZERO_HANDLE,
    is_zero_handle,
    normalize_handle,
)
from .protocols import (
    DecryptionFailureError,
    EncryptionServiceProtocol,
    EncryptionServiceUnavailableError,
    ErrorReporterProtocol,
    FundraisingError,
    UserRejectedError,
    WalletSignerProtocol,
    WalletUnavailableError,
)

logger = logging.getLogger(__name__)

TransitionListener = Callable[[DecryptionKey, DecryptionPhase], None]


class EphemeralCredentials:
    """Key pair and signature for exactly one decryption attempt"""

    def __init__(self, keypair: EphemeralKeyPair):
        self.keypair: Optional[EphemeralKeyPair] = keypair
        self.signature: Optional[str] = None

    def discard(self) -> None:
        self.keypair = None
        self.signature = None

    @property
    def discarded(self) -> bool:
        return self.keypair is None and self.signature is None


class DecryptionOrchestrator:
    """Per-key decryption state machine bound to one signer identity"""

    def __init__(
        self,
        encryption: EncryptionServiceProtocol,
        signer: WalletSignerProtocol,
        contract_address: str,
        duration_days: int = 10,
        error_reporter: Optional[ErrorReporterProtocol] = None,
    ):
        self.encryption = encryption
        self.signer = signer
        self.contract_address = contract_address
        self.duration_days = duration_days
        self.error_reporter = error_reporter
        self._states: Dict[DecryptionKey, DecryptionState] = {}
        self._generations: Dict[DecryptionKey, int] = {}
        self._listeners: List[TransitionListener] = []

    @property
    def identity(self) -> str:
        return self.signer.address

    # ====================
    # State access
    # ====================

    def state(self, campaign_id: int, kind: DecryptionKind) -> DecryptionState:
        """Current state for a key (idle if never requested)"""
        return self._states.get(
            (campaign_id, kind),
            DecryptionState(campaign_id=campaign_id, kind=kind),
        )

    def value(
        self,
        campaign_id: int,
        kind: DecryptionKind,
        handle: Optional[str] = None,
    ) -> Optional[int]:
        """
        Revealed value for a key.

        When handle is given, a value decrypted from any other handle is
        stale and None is returned instead.
        """
        state = self.state(campaign_id, kind)
        if handle is not None and state.handle is not None:
            if state.handle != normalize_handle(handle):
                return None
        return state.value

    def is_busy(self, campaign_id: int, kind: DecryptionKind) -> bool:
        return self.state(campaign_id, kind).pending

    def add_listener(self, listener: TransitionListener) -> None:
        """Observe every phase transition"""
        self._listeners.append(listener)

    def invalidate(self, campaign_id: int, kind: DecryptionKind) -> None:
        """
        Forget the decrypted value for a key.

        An attempt already in flight keeps the busy flag but its result is
        dropped when it completes.
        """
        key = (campaign_id, kind)
        self._generations[key] = self._generations.get(key, 0) + 1
        current = self._states.get(key)
        if current is not None and current.pending:
            self._states[key] = current.model_copy(update={"value": None, "handle": None})
        elif current is not None:
            del self._states[key]
        logger.debug(f"Decryption entry invalidated: campaign={campaign_id} kind={kind.value}")

    # ====================
    # Decryption
    # ====================

    async def decrypt(
        self,
        campaign_id: int,
        kind: DecryptionKind,
        handle: Optional[str],
        viewer: Optional[str] = None,
    ) -> DecryptionState:
        """
        Reveal the value behind handle for the signer identity.

        viewer is the identity the handle was read for; a handle read for
        another account is refused without contacting the relayer.

        Returns the resulting state. Remote failures are captured in a
        ``failed`` state rather than raised; a request for a busy key returns
        the in-flight state untouched.
        """
        key = (campaign_id, kind)
        current = self.state(campaign_id, kind)
        if current.pending:
            logger.debug(f"Decryption already in progress: campaign={campaign_id} kind={kind.value}")
            return current

        if viewer is not None and viewer.lower() != self.identity.lower():
            return self._fail(
                key,
                WalletUnavailableError("Connected wallet changed, refresh campaigns"),
                current.value,
                current.handle,
                self._generations.get(key, 0),
            )

        if is_zero_handle(handle):
            return self._transition(key, DecryptionPhase.RESOLVED, value=0, handle=ZERO_HANDLE)

        handle = normalize_handle(handle)
        generation = self._generations.get(key, 0)
        # A value revealed from an older handle is not carried into this attempt
        previous_value = current.value if current.handle == handle else None

        try:
            value = await self._run_attempt(key, handle)
        except FundraisingError as e:
            return self._fail(key, e, previous_value, handle, generation)
        except Exception as e:
            error = DecryptionFailureError(f"Failed to decrypt value: {e}")
            return self._fail(key, error, previous_value, handle, generation)
        except BaseException:
            # Cancelled mid-flight: release the key before propagating
            if self._generations.get(key, 0) != generation:
                previous_value = None
            self._transition(
                key,
                DecryptionPhase.FAILED,
                value=previous_value,
                handle=handle if previous_value is not None else None,
                error_code=DecryptionFailureError.error_code,
                error_message="Decryption interrupted",
            )
            raise

        if self._generations.get(key, 0) != generation:
            logger.info(f"Discarding superseded decryption result: campaign={campaign_id} kind={kind.value}")
            return self._transition(key, DecryptionPhase.IDLE)

        logger.info(f"Decrypted {kind.value} for campaign {campaign_id}")
        return self._transition(key, DecryptionPhase.RESOLVED, value=value, handle=handle)

    async def _run_attempt(self, key: DecryptionKey, handle: str) -> int:
        self._transition(key, DecryptionPhase.REQUESTING)
        with self._ephemeral_credentials() as credentials:
            authorization = AuthorizationRequest.starting_now(
                [self.contract_address], self.duration_days
            )
            typed_data = self._build_authorization(credentials, authorization)

            self._transition(key, DecryptionPhase.AWAITING_SIGNATURE)
            credentials.signature = await self._sign(typed_data)

            self._transition(key, DecryptionPhase.AWAITING_RELAYER)
            results = await self._request_decryption(handle, credentials, authorization)

        if handle not in results:
            raise DecryptionFailureError(f"Relayer returned no value for handle {handle}")
        return results[handle]

    @contextmanager
    def _ephemeral_credentials(self) -> Iterator[EphemeralCredentials]:
        try:
            keypair = self.encryption.generate_keypair()
        except FundraisingError:
            raise
        except Exception as e:
            raise EncryptionServiceUnavailableError(f"Key pair generation failed: {e}") from e

        credentials = EphemeralCredentials(keypair)
        try:
            yield credentials
        finally:
            credentials.discard()

    def _build_authorization(
        self,
        credentials: EphemeralCredentials,
        authorization: AuthorizationRequest,
    ) -> Dict:
        try:
            return self.encryption.create_authorization(
                credentials.keypair.public_key,
                authorization.contract_addresses,
                authorization.start_timestamp,
                authorization.duration_days,
            )
        except FundraisingError:
            raise
        except Exception as e:
            raise EncryptionServiceUnavailableError(f"Authorization message failed: {e}") from e

    async def _sign(self, typed_data: Dict) -> str:
        try:
            return await self.signer.sign_typed_data(typed_data)
        except (UserRejectedError, WalletUnavailableError):
            raise
        except Exception as e:
            raise WalletUnavailableError(f"Wallet signer unavailable: {e}") from e

    async def _request_decryption(
        self,
        handle: str,
        credentials: EphemeralCredentials,
        authorization: AuthorizationRequest,
    ) -> Dict[str, int]:
        try:
            results = await self.encryption.user_decrypt(
                [HandleContractPair(handle=handle, contract_address=self.contract_address)],
                credentials.keypair,
                credentials.signature,
                authorization.contract_addresses,
                self.identity,
                authorization.start_timestamp,
                authorization.duration_days,
            )
            return {normalize_handle(h): int(v) for h, v in (results or {}).items()}
        except FundraisingError:
            raise
        except Exception as e:
            raise DecryptionFailureError(f"Failed to decrypt value: {e}") from e

    # ====================
    # Transitions
    # ====================

    def _fail(
        self,
        key: DecryptionKey,
        error: FundraisingError,
        previous_value: Optional[int],
        previous_handle: Optional[str],
        generation: int,
    ) -> DecryptionState:
        logger.error(f"Decryption error for campaign {key[0]} ({key[1].value}): {error}")
        if self.error_reporter:
            self.error_reporter.report(error, {"campaign_id": key[0], "kind": key[1].value})
        if self._generations.get(key, 0) != generation:
            previous_value = None
        return self._transition(
            key,
            DecryptionPhase.FAILED,
            value=previous_value,
            handle=previous_handle if previous_value is not None else None,
            error_code=error.error_code,
            error_message=str(error),
        )

    def _transition(
        self,
        key: DecryptionKey,
        phase: DecryptionPhase,
        value: Optional[int] = None,
        handle: Optional[str] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> DecryptionState:
        campaign_id, kind = key
        if value is None and phase in BUSY_PHASES:
            previous = self.state(campaign_id, kind)
            value, handle = previous.value, previous.handle

        state = DecryptionState(
            campaign_id=campaign_id,
            kind=kind,
            phase=phase,
            value=value,
            handle=handle,
            error_code=error_code,
            error_message=error_message,
        )
        if phase == DecryptionPhase.IDLE:
            self._states.pop(key, None)
        else:
            self._states[key] = state

        logger.debug(f"Decryption campaign={campaign_id} kind={kind.value} -> {phase.value}")
        for listener in self._listeners:
            listener(key, phase)
        return state
