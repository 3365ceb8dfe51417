"""
Holder-side composition of one cross-credential proof.

``ProofOrchestrator.create_proof`` validates the requirement set locally,
hands the whole request to the engine in one call and refuses any result
that carries warnings or reveals something other than what was requested.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Set

from .exceptions import BackendError, ConfigurationError, ProofWarningError
from .interfaces import ProofEngine
from .requirements import (
    RequirementSet,
    check_equality_targets,
    check_indices,
    disclosed_union,
)
from .shared_params import SharedParameterRegistry
from .types import DataForVerifier, ProofArtifact, SignatureAndRelatedData

log = logging.getLogger(__name__)


def check_disclosure(
    requirements: RequirementSet,
    data_for_verifier: DataForVerifier,
    sigs: Optional[Mapping[str, SignatureAndRelatedData]] = None,
) -> None:
    """
    Require the revealed index sets to equal the disclosed index sets.

    Both directions are checked: nothing requested may be missing and
    nothing unrequested may appear, including the all-empty case. When the
    holder's ``sigs`` are given, every revealed value must also equal the
    signed value at that index.

    Raises:
        BackendError: On any difference.
    """
    expected = disclosed_union(requirements)
    actual = data_for_verifier.revealed_indices()
    if expected != actual:
        raise BackendError(
            0, f"revealed attributes {actual} do not match disclosed attributes {expected}"
        )
    if sigs is None:
        return
    for label, vals in sorted(data_for_verifier.revealed.items()):
        for idx, value in sorted(vals.items()):
            if value != sigs[label].values[idx]:
                raise BackendError(
                    0, f"{label}: revealed value at index {idx} differs from the signed value"
                )


def check_participants(requirements: RequirementSet, sigs: Mapping[str, SignatureAndRelatedData]) -> None:
    """
    Raises:
        ConfigurationError: If a credential is missing, unexpected, or its
            requirements reference attributes it does not have.
    """
    missing = set(requirements) - set(sigs)
    unexpected = set(sigs) - set(requirements)
    if missing:
        raise ConfigurationError(f"no signature for credential(s) {sorted(missing)}")
    if unexpected:
        raise ConfigurationError(f"no requirements for credential(s) {sorted(unexpected)}")
    sizes = {label: len(sard.values) for label, sard in sigs.items()}
    for label in sorted(requirements):
        reqs = requirements[label]
        check_indices(label, reqs, sizes[label])
        for idx in reqs.accumulator_indices():
            if idx not in sigs[label].accumulator_witnesses:
                raise ConfigurationError(f"{label}: no witness attached at accumulator index {idx}")
    check_equality_targets(requirements, sizes)


class ProofOrchestrator:
    """
    Builds proofs for one holder.

    A nonce is caller supplied; this orchestrator only refuses to reuse one
    it has already proven with.
    """

    def __init__(self, engine: ProofEngine) -> None:
        self._engine = engine
        self._used_nonces: Set[str] = set()

    def create_proof(
        self,
        sigs: Mapping[str, SignatureAndRelatedData],
        requirements: RequirementSet,
        registry: SharedParameterRegistry,
        nonce: str,
    ) -> ProofArtifact:
        """
        Create one proof covering every credential in ``requirements``.

        Raises:
            ConfigurationError: If the request is malformed or the nonce is
                empty or reused.
            BackendError: If the engine fails or reveals the wrong attributes
                or values.
            ProofWarningError: If the engine reports any warning.
        """
        if not isinstance(nonce, str) or not nonce:
            raise ConfigurationError("nonce must be a non-empty str")
        if nonce in self._used_nonces:
            raise ConfigurationError(f"nonce {nonce!r} already used by this orchestrator")
        check_participants(requirements, sigs)
        registry.validate_labels(requirements)

        self._used_nonces.add(nonce)
        artifact = self._engine.create_proof(
            dict(requirements), registry.entries(), dict(sigs), nonce
        )
        if artifact.warnings:
            log.warning(f"createProof returned {len(artifact.warnings)} warning(s)")
            raise ProofWarningError("createProof", artifact.warnings)
        check_disclosure(requirements, artifact.data_for_verifier, sigs)
        log.info(f"Created proof over {sorted(requirements)}")
        return artifact
