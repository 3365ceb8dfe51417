"""
Verifier and authority side of the protocol.

Verification replays the requirement set against the proof. When the
verifier asked for verifiably encrypted attributes to be decrypted, the
decrypt responses are escalated to a decryption-verification call; proof
systems that cannot do that surface a ``KnownUnimplemented`` outcome
instead of an exception.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Set

from .exceptions import BackendError, ConfigurationError, ProofWarningError
from .interfaces import ProofEngine
from .proof import check_disclosure
from .requirements import RequirementSet, expected_decrypt_keys
from .shared_params import SharedParameterRegistry
from .types import (
    AuthorityDecryptionKey,
    DataForVerifier,
    DecryptionOutcome,
    DecryptionVerified,
    DecryptKey,
    DecryptRequest,
    DecryptResponse,
    KnownUnimplemented,
    Proof,
    VerificationReport,
    VerificationResult,
)

log = logging.getLogger(__name__)


def check_decrypt_bijection(
    requests: Mapping[DecryptKey, DecryptRequest],
    responses: Mapping[DecryptKey, DecryptResponse],
) -> None:
    """
    Raises:
        BackendError: If the response keys are not exactly the request keys.
    """
    request_keys: Set[DecryptKey] = set(requests)
    response_keys: Set[DecryptKey] = set(responses)
    if len(responses) != len(requests) or request_keys != response_keys:
        raise BackendError(
            0,
            f"decrypt responses {sorted(response_keys)} do not match "
            f"decrypt requests {sorted(request_keys)}",
        )


def decryption_keys_from(requests: Mapping[DecryptKey, DecryptRequest]) -> Dict[str, AuthorityDecryptionKey]:
    """
    Collect one decryption key per authority label.

    Raises:
        ConfigurationError: If two requests name the same authority with
            different keys.
    """
    keys: Dict[str, AuthorityDecryptionKey] = {}
    for key in sorted(requests):
        dk = requests[key].authority_decryption_key
        existing = keys.setdefault(key.authority_label, dk)
        if existing != dk:
            raise ConfigurationError(
                f"conflicting decryption keys for authority {key.authority_label!r}"
            )
    return keys


class VerificationOrchestrator:
    """Verifies proofs and, when needed, their decryptions."""

    def __init__(self, engine: ProofEngine) -> None:
        self._engine = engine

    def verify_proof(
        self,
        data_for_verifier: DataForVerifier,
        requirements: RequirementSet,
        registry: SharedParameterRegistry,
        decrypt_requests: Optional[Mapping[DecryptKey, DecryptRequest]] = None,
        nonce: str = "",
    ) -> VerificationResult:
        """
        Verify a proof and collect decrypt responses.

        Raises:
            ConfigurationError: If the nonce is empty, a label does not
                resolve, or a decrypt request targets an attribute that was
                not verifiably encrypted.
            BackendError: If the engine fails, the revealed attributes differ
                from the disclosed ones, or the responses are not in bijection
                with the requests.
            ProofWarningError: If the engine reports any warning.
        """
        if not isinstance(nonce, str) or not nonce:
            raise ConfigurationError("nonce must be a non-empty str")
        requests = dict(decrypt_requests or {})
        unknown = set(requests) - expected_decrypt_keys(requirements)
        if unknown:
            raise ConfigurationError(
                f"decrypt requests for attributes not encrypted: {sorted(unknown)}"
            )
        registry.validate_labels(requirements)
        check_disclosure(requirements, data_for_verifier)

        result = self._engine.verify_proof(
            dict(requirements), registry.entries(), data_for_verifier, requests, nonce
        )
        if result.warnings:
            log.warning(f"verifyProof returned {len(result.warnings)} warning(s)")
            raise ProofWarningError("verifyProof", result.warnings)
        check_decrypt_bijection(requests, result.decrypt_responses)
        log.info(
            f"Verified proof over {sorted(requirements)} "
            f"with {len(result.decrypt_responses)} decrypt response(s)"
        )
        return result

    def verify_decryption(
        self,
        proof: Proof,
        requirements: RequirementSet,
        registry: SharedParameterRegistry,
        decryption_keys: Mapping[str, AuthorityDecryptionKey],
        decrypt_responses: Mapping[DecryptKey, DecryptResponse],
        nonce: str,
    ) -> DecryptionOutcome:
        """
        Ask the authority boundary to check decrypt responses against the proof.

        Returns:
            DecryptionVerified with the engine's warnings, or
            KnownUnimplemented when the proof system catalogues this check
            as unavailable.

        Raises:
            BackendError: For any other engine failure.
        """
        variant = self._engine.variant
        try:
            warnings = self._engine.verify_decryption(
                dict(requirements),
                registry.entries(),
                proof,
                dict(decryption_keys),
                dict(decrypt_responses),
                nonce,
            )
        except BackendError as e:
            if variant.is_known_limitation(e.code, e.message):
                log.warning(f"verifyDecryption unavailable for {variant.name}: {e.message}")
                return KnownUnimplemented(variant=variant.name, detail=e.message)
            raise
        return DecryptionVerified(tuple(warnings))

    def verify(
        self,
        data_for_verifier: DataForVerifier,
        requirements: RequirementSet,
        registry: SharedParameterRegistry,
        decrypt_requests: Optional[Mapping[DecryptKey, DecryptRequest]] = None,
        nonce: str = "",
    ) -> VerificationReport:
        """
        Verify a proof and escalate to decryption verification iff any
        decrypt responses came back.

        Raises:
            ConfigurationError: If two decrypt requests name the same
                authority with different keys. Checked before any engine call.
            ProofWarningError: If decryption verification reports warnings.
        """
        requests = dict(decrypt_requests or {})
        decryption_keys = decryption_keys_from(requests)
        result = self.verify_proof(data_for_verifier, requirements, registry, requests, nonce)
        if not result.decrypt_responses:
            return VerificationReport(result)

        outcome = self.verify_decryption(
            data_for_verifier.proof,
            requirements,
            registry,
            decryption_keys,
            result.decrypt_responses,
            nonce,
        )
        if isinstance(outcome, DecryptionVerified) and outcome.warnings:
            raise ProofWarningError("verifyDecryption", outcome.warnings)
        return VerificationReport(result, outcome)
