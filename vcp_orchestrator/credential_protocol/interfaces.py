"""
Proof engine boundary.

Every orchestration component receives a ``ProofEngine`` handle at
construction. Calls are synchronous and may block indefinitely; failures are
raised as ``BackendError`` carrying the engine's code and message.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Sequence, Tuple

from .requirements import RequirementSet
from .shared_params import SharedParam
from .types import (
    Accumulator,
    AccumulatorData,
    AccumulatorElement,
    AddRemoveResponse,
    AuthorityData,
    AuthorityDecryptionKey,
    BlindInfoForSigner,
    BlindSignature,
    BlindSigningInfo,
    ClaimType,
    DataForVerifier,
    DataValue,
    DecryptKey,
    DecryptRequest,
    DecryptResponse,
    InfoForUnblinding,
    MembershipProvingKey,
    Proof,
    ProofArtifact,
    ProofWarning,
    RangeProofProvingKey,
    SignatureAndRelatedData,
    Signature,
    SignerData,
    SignerPublicData,
    VerificationResult,
    Witness,
    WitnessUpdateInfo,
)
from .variants import ProofSystemVariant

SharedParams = Mapping[str, SharedParam]
IndexedValues = Mapping[int, DataValue]


class ProofEngine(ABC):
    """Remote (or simulated) proof computation boundary."""

    @property
    @abstractmethod
    def engine_name(self) -> str:
        ...

    @property
    @abstractmethod
    def variant(self) -> ProofSystemVariant:
        ...

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    @abstractmethod
    def create_signer_data(
        self, claim_types: Sequence[ClaimType], blinded_indices: Sequence[int] = ()
    ) -> SignerData:
        ...

    @abstractmethod
    def sign(self, values: Sequence[DataValue], signer_data: SignerData) -> Signature:
        ...

    @abstractmethod
    def create_blind_signing_info(
        self, signer_public_data: SignerPublicData, blinded: IndexedValues
    ) -> BlindSigningInfo:
        ...

    @abstractmethod
    def sign_with_blinded_attributes(
        self,
        non_blinded: IndexedValues,
        blind_info_for_signer: BlindInfoForSigner,
        signer_data: SignerData,
    ) -> BlindSignature:
        ...

    @abstractmethod
    def unblind_blinded_signature(
        self,
        claim_types: Sequence[ClaimType],
        blinded: IndexedValues,
        blind_signature: BlindSignature,
        info_for_unblinding: InfoForUnblinding,
    ) -> Signature:
        ...

    # ------------------------------------------------------------------
    # Accumulators
    # ------------------------------------------------------------------

    @abstractmethod
    def create_accumulator_data(self) -> Tuple[AccumulatorData, Accumulator]:
        ...

    @abstractmethod
    def create_accumulator_element(self, value: str) -> AccumulatorElement:
        ...

    @abstractmethod
    def accumulator_add_remove(
        self,
        accumulator_data: AccumulatorData,
        accumulator: Accumulator,
        additions: Mapping[str, AccumulatorElement],
        removals: Sequence[AccumulatorElement],
    ) -> AddRemoveResponse:
        ...

    @abstractmethod
    def get_accumulator_witness(
        self,
        accumulator_data: AccumulatorData,
        accumulator: Accumulator,
        element: AccumulatorElement,
    ) -> Witness:
        ...

    @abstractmethod
    def update_accumulator_witness(
        self,
        witness: Witness,
        element: AccumulatorElement,
        update_info: WitnessUpdateInfo,
    ) -> Witness:
        ...

    @abstractmethod
    def create_membership_proving_key(self) -> MembershipProvingKey:
        ...

    # ------------------------------------------------------------------
    # Range proofs and authorities
    # ------------------------------------------------------------------

    @abstractmethod
    def create_range_proof_proving_key(self) -> RangeProofProvingKey:
        ...

    @abstractmethod
    def get_range_proof_max_value(self) -> int:
        ...

    @abstractmethod
    def create_authority_data(self) -> AuthorityData:
        ...

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------

    @abstractmethod
    def create_proof(
        self,
        requirements: RequirementSet,
        shared_params: SharedParams,
        sigs_and_related_data: Mapping[str, SignatureAndRelatedData],
        nonce: str,
    ) -> ProofArtifact:
        ...

    @abstractmethod
    def verify_proof(
        self,
        requirements: RequirementSet,
        shared_params: SharedParams,
        data_for_verifier: DataForVerifier,
        decrypt_requests: Mapping[DecryptKey, DecryptRequest],
        nonce: str,
    ) -> VerificationResult:
        ...

    @abstractmethod
    def verify_decryption(
        self,
        requirements: RequirementSet,
        shared_params: SharedParams,
        proof: Proof,
        decryption_keys: Mapping[str, AuthorityDecryptionKey],
        decrypt_responses: Mapping[DecryptKey, DecryptResponse],
        nonce: str,
    ) -> Tuple[ProofWarning, ...]:
        ...

    def close(self) -> None:
        """Release engine resources; the default engine holds none."""

    def __enter__(self) -> "ProofEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
