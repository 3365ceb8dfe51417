"""
Credential issuance: direct signing and the blind-signing sub-protocol.

Blind signing lets the issuer sign attributes it never sees in plaintext:

1. the holder commits to the blinded subset (``create_blind_signing_info``),
2. the issuer signs the non-blinded subset plus the commitment,
3. the holder unblinds, recovering an ordinary signature over all values.

A ``BlindSigningSession`` walks those steps exactly once. Any failure aborts
the session and its material is discarded; it can never be resumed.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence, Set

from .exceptions import ConfigurationError
from .interfaces import ProofEngine
from .types import (
    AttributeSet,
    BlindSignature,
    BlindSigningInfo,
    ClaimType,
    DataValue,
    IssuanceResult,
    Signature,
    SignerData,
)

log = logging.getLogger(__name__)


def partition_indices(num_values: int, blinded_indices: Iterable[int]) -> Set[int]:
    """
    Return the non-blinded indices for ``blinded_indices``.

    Raises:
        ConfigurationError: If a blinded index is duplicated or out of range,
            so the two sets would not partition ``range(num_values)``.
    """
    blinded = list(blinded_indices)
    if len(set(blinded)) != len(blinded):
        raise ConfigurationError(f"duplicate blinded index in {blinded}")
    for idx in blinded:
        if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < num_values:
            raise ConfigurationError(
                f"blinded index {idx!r} out of range for {num_values} attributes"
            )
    return set(range(num_values)) - set(blinded)


class SessionState(Enum):
    CREATED = "created"
    SIGNED = "signed"
    UNBLINDED = "unblinded"
    ABORTED = "aborted"


class BlindSigningSession:
    """
    One blind signing session between a holder and an issuer.

    The session owns the single-use ``BlindSigningInfo``. Steps must run in
    order, each at most once.
    """

    def __init__(
        self,
        engine: ProofEngine,
        signer_data: SignerData,
        attributes: AttributeSet,
    ) -> None:
        self._engine = engine
        self._signer_data = signer_data
        self._attributes = attributes
        self._blinded_idxs = tuple(signer_data.public.blinded_indices)
        non_blinded = partition_indices(len(attributes), self._blinded_idxs)
        if not self._blinded_idxs:
            raise ConfigurationError("signer has no blinded attributes; use direct signing")
        self._non_blinded_idxs = tuple(sorted(non_blinded))
        self._state = SessionState.CREATED
        self._info: Optional[BlindSigningInfo] = None
        self._blind_signature: Optional[BlindSignature] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def blinded(self) -> Dict[int, DataValue]:
        return self._attributes.subset(self._blinded_idxs)

    @property
    def non_blinded(self) -> Dict[int, DataValue]:
        return self._attributes.subset(self._non_blinded_idxs)

    def _require(self, expected: SessionState, step: str) -> None:
        if self._state is not expected:
            raise ConfigurationError(
                f"blind signing step {step!r} not allowed in state {self._state.value!r}"
            )

    def _abort(self) -> None:
        self._state = SessionState.ABORTED
        self._info = None
        self._blind_signature = None

    def blind_sign(self) -> BlindSignature:
        """Holder creates blinding info, then the issuer signs blind."""
        self._require(SessionState.CREATED, "blind_sign")
        try:
            self._info = self._engine.create_blind_signing_info(
                self._signer_data.public, self.blinded
            )
            self._blind_signature = self._engine.sign_with_blinded_attributes(
                self.non_blinded, self._info.blind_info_for_signer, self._signer_data
            )
        except Exception:
            self._abort()
            raise
        self._state = SessionState.SIGNED
        return self._blind_signature

    def unblind(self) -> Signature:
        """Holder recovers the signature; the session material is then discarded."""
        self._require(SessionState.SIGNED, "unblind")
        try:
            signature = self._engine.unblind_blinded_signature(
                self._attributes.claim_types,
                self.blinded,
                self._blind_signature,
                self._info.info_for_unblinding,
            )
        except Exception:
            self._abort()
            raise
        self._state = SessionState.UNBLINDED
        self._info = None
        self._blind_signature = None
        return signature

    def run(self) -> Signature:
        self.blind_sign()
        return self.unblind()


class SignerWorkflow:
    """
    Drives issuance for one issuer against a proof engine.

    Example:
        >>> workflow = SignerWorkflow(engine)
        >>> result = workflow.issue(values, claim_types, blinded_indices=[1, 2])
        >>> result.signer_public_data.blinded_indices
        (1, 2)
    """

    def __init__(self, engine: ProofEngine) -> None:
        self._engine = engine

    def issue(
        self,
        values: Sequence,
        claim_types: Sequence[ClaimType],
        blinded_indices: Sequence[int] = (),
    ) -> IssuanceResult:
        """
        Issue a credential over ``values``.

        An empty ``blinded_indices`` signs directly; otherwise the blind
        sub-protocol runs.

        Raises:
            ConfigurationError: For blind issuance, if the values do not fit
                the claim types or the blinded indices do not partition the
                attribute range. Nothing is sent to the engine in that case.
            BackendError: If any engine step fails. Direct issuance leaves
                count and type checks to the engine.
        """
        attributes = AttributeSet(tuple(values), tuple(claim_types))
        blinded = tuple(blinded_indices)
        if not blinded:
            signer_data = self._engine.create_signer_data(attributes.claim_types, ())
            signature = self._engine.sign(attributes.values, signer_data)
            log.info(f"Issued credential with {len(attributes)} attributes (direct)")
            return IssuanceResult(signer_data, signature)

        attributes.check_types()
        partition_indices(len(attributes), blinded)
        signer_data = self._engine.create_signer_data(attributes.claim_types, blinded)
        signature = self.issue_blind(signer_data, attributes)
        return IssuanceResult(signer_data, signature)

    def issue_blind(self, signer_data: SignerData, attributes: AttributeSet) -> Signature:
        """Run a blind signing session for an existing signer."""
        session = BlindSigningSession(self._engine, signer_data, attributes)
        signature = session.run()
        log.info(
            f"Issued credential with {len(attributes)} attributes "
            f"({len(signer_data.public.blinded_indices)} blinded)"
        )
        return signature
