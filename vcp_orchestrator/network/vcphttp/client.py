"""HTTP proof engine backed by the proof server's JSON API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import httpx

from ...credential_protocol.config import EngineConfig
from ...credential_protocol.exceptions import BackendError
from ...credential_protocol.interfaces import IndexedValues, ProofEngine, SharedParams
from ...credential_protocol.requirements import RequirementSet
from ...credential_protocol.types import (
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
    Signature,
    SignatureAndRelatedData,
    SignerData,
    SignerPublicData,
    VerificationResult,
    Witness,
    WitnessUpdateInfo,
)
from ...credential_protocol.variants import ProofSystemVariant, get_variant
from . import messages
from .constants import (
    ERROR_LOCATION_FIELD,
    ERROR_REASON_FIELD,
    GET_OPS,
    RANDOMIZED_OPS,
    RNG_SEED_PARAM,
    ZKP_LIB_PARAM,
    op_path,
)
from .errors import WireFormatError

log = logging.getLogger(__name__)


def _backend_error(operation: str, response: httpx.Response) -> BackendError:
    reason: Any = None
    location: Optional[str] = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        reason = body.get(ERROR_REASON_FIELD)
        location = body.get(ERROR_LOCATION_FIELD)
    if not isinstance(reason, str) or not reason:
        reason = response.text or response.reason_phrase
    return BackendError(response.status_code, f"{operation}: {reason}", location)


class HttpProofEngine(ProofEngine):
    """
    Proof engine talking to a remote proof server.

    The connection settings are fixed at construction. Requests use no
    client timeout unless ``EngineConfig.timeout`` sets one.

    Example:
        >>> with HttpProofEngine(EngineConfig(zkp_lib="DNC")) as engine:
        ...     engine.get_range_proof_max_value()
    """

    _ENGINE_NAME = "HttpProofEngine"

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._variant = get_variant(self._config.zkp_lib)
        self._client = httpx.Client(
            base_url=self._config.endpoint,
            timeout=httpx.Timeout(self._config.timeout),
            transport=transport,
        )

    @property
    def engine_name(self) -> str:
        return self._ENGINE_NAME

    @property
    def variant(self) -> ProofSystemVariant:
        return self._variant

    @property
    def config(self) -> EngineConfig:
        return self._config

    def close(self) -> None:
        self._client.close()

    def _call(self, operation: str, body: Any = None, *, text: Optional[str] = None) -> Any:
        params: Dict[str, Any] = {ZKP_LIB_PARAM: self._variant.zkp_lib}
        if operation in RANDOMIZED_OPS:
            params[RNG_SEED_PARAM] = self._config.rng_seed
        log.debug(f"Calling {op_path(operation)} ({self._variant.zkp_lib})")
        try:
            if operation in GET_OPS:
                response = self._client.get(op_path(operation), params=params)
            elif text is not None:
                response = self._client.post(
                    op_path(operation),
                    params=params,
                    content=text.encode("utf-8"),
                    headers={"Content-Type": "text/plain"},
                )
            else:
                response = self._client.post(op_path(operation), params=params, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise _backend_error(operation, e.response) from e
        except httpx.RequestError as e:
            log.warning(f"{operation} request to {self._config.endpoint} failed: {e}")
            raise BackendError(0, f"{operation}: request failed: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            raise WireFormatError(f"{operation}: response is not JSON") from e

    @staticmethod
    def _string(raw: Any, operation: str) -> str:
        if not isinstance(raw, str):
            raise WireFormatError(f"{operation}: expected a JSON string")
        return raw

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def create_signer_data(
        self, claim_types: Sequence[ClaimType], blinded_indices: Sequence[int] = ()
    ) -> SignerData:
        body = {
            "claimTypes": [ClaimType(c).value for c in claim_types],
            "blindedAttributeIndices": list(blinded_indices),
        }
        return messages.decode_signer_data(self._call("createSignerData", body))

    def sign(self, values: Sequence[DataValue], signer_data: SignerData) -> Signature:
        body = {
            "values": messages.encode_values(values),
            "signerData": messages.encode_signer_data(signer_data),
        }
        return Signature(self._string(self._call("sign", body), "sign"))

    def create_blind_signing_info(
        self, signer_public_data: SignerPublicData, blinded: IndexedValues
    ) -> BlindSigningInfo:
        body = {
            "signerPublicData": messages.encode_signer_public_data(signer_public_data),
            "blindedIndicesAndValues": messages.encode_indexed(blinded),
        }
        return messages.decode_blind_signing_info(self._call("createBlindSigningInfo", body))

    def sign_with_blinded_attributes(
        self,
        non_blinded: IndexedValues,
        blind_info_for_signer: BlindInfoForSigner,
        signer_data: SignerData,
    ) -> BlindSignature:
        body = {
            "signerData": messages.encode_signer_data(signer_data),
            "blindInfoForSigner": blind_info_for_signer.value,
            "nonBlindedAttributes": messages.encode_indexed(non_blinded),
        }
        raw = self._call("signWithBlindedAttributes", body)
        return BlindSignature(self._string(raw, "signWithBlindedAttributes"))

    def unblind_blinded_signature(
        self,
        claim_types: Sequence[ClaimType],
        blinded: IndexedValues,
        blind_signature: BlindSignature,
        info_for_unblinding: InfoForUnblinding,
    ) -> Signature:
        body = {
            "claimTypes": [ClaimType(c).value for c in claim_types],
            "blindedIndicesAndValues": messages.encode_indexed(blinded),
            "infoForUnblinding": info_for_unblinding.value,
            "blindSignature": blind_signature.value,
        }
        raw = self._call("unblindBlindedSignature", body)
        return Signature(self._string(raw, "unblindBlindedSignature"))

    # ------------------------------------------------------------------
    # Accumulators
    # ------------------------------------------------------------------

    def create_accumulator_data(self) -> Tuple[AccumulatorData, Accumulator]:
        return messages.decode_create_accumulator(self._call("createAccumulatorData"))

    def create_accumulator_element(self, value: str) -> AccumulatorElement:
        raw = self._call("createAccumulatorElement", text=value)
        return AccumulatorElement(self._string(raw, "createAccumulatorElement"))

    def accumulator_add_remove(
        self,
        accumulator_data: AccumulatorData,
        accumulator: Accumulator,
        additions: Mapping[str, AccumulatorElement],
        removals: Sequence[AccumulatorElement],
    ) -> AddRemoveResponse:
        body = {
            "accumulatorData": messages.encode_accumulator_data(accumulator_data),
            "accumulator": accumulator.value,
            "additions": {label: elem.value for label, elem in additions.items()},
            "removals": [elem.value for elem in removals],
        }
        return messages.decode_add_remove(self._call("accumulatorAddRemove", body))

    def get_accumulator_witness(
        self,
        accumulator_data: AccumulatorData,
        accumulator: Accumulator,
        element: AccumulatorElement,
    ) -> Witness:
        body = {
            "accumulatorData": messages.encode_accumulator_data(accumulator_data),
            "accumulator": accumulator.value,
            "accumulatorElement": element.value,
        }
        return Witness(self._string(self._call("getAccumulatorWitness", body), "getAccumulatorWitness"))

    def update_accumulator_witness(
        self,
        witness: Witness,
        element: AccumulatorElement,
        update_info: WitnessUpdateInfo,
    ) -> Witness:
        body = {
            "witness": witness.value,
            "element": element.value,
            "witnessUpdateInfo": update_info.value,
        }
        raw = self._call("updateAccumulatorWitness", body)
        return Witness(self._string(raw, "updateAccumulatorWitness"))

    def create_membership_proving_key(self) -> MembershipProvingKey:
        raw = self._call("createMembershipProvingKey")
        return MembershipProvingKey(self._string(raw, "createMembershipProvingKey"))

    # ------------------------------------------------------------------
    # Range proofs and authorities
    # ------------------------------------------------------------------

    def create_range_proof_proving_key(self) -> RangeProofProvingKey:
        raw = self._call("createRangeProofProvingKey")
        return RangeProofProvingKey(self._string(raw, "createRangeProofProvingKey"))

    def get_range_proof_max_value(self) -> int:
        raw = self._call("getRangeProofMaxValue")
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise WireFormatError("getRangeProofMaxValue: expected an integer")
        return raw

    def create_authority_data(self) -> AuthorityData:
        return messages.decode_authority_data(self._call("createAuthorityData"))

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------

    def create_proof(
        self,
        requirements: RequirementSet,
        shared_params: SharedParams,
        sigs_and_related_data: Mapping[str, SignatureAndRelatedData],
        nonce: str,
    ) -> ProofArtifact:
        body = {
            "proofReqs": messages.encode_requirements(requirements),
            "sharedParams": messages.encode_shared_params(shared_params),
            "sigsAndRelatedData": messages.encode_sigs_and_related_data(sigs_and_related_data),
            "nonce": nonce,
        }
        return messages.decode_proof_artifact(self._call("createProof", body))

    def verify_proof(
        self,
        requirements: RequirementSet,
        shared_params: SharedParams,
        data_for_verifier: DataForVerifier,
        decrypt_requests: Mapping[DecryptKey, DecryptRequest],
        nonce: str,
    ) -> VerificationResult:
        body = {
            "proofReqs": messages.encode_requirements(requirements),
            "sharedParams": messages.encode_shared_params(shared_params),
            "dataForVerifier": messages.encode_data_for_verifier(data_for_verifier),
            "decryptRequests": messages.encode_decrypt_requests(decrypt_requests),
            "nonce": nonce,
        }
        return messages.decode_verification_result(self._call("verifyProof", body))

    def verify_decryption(
        self,
        requirements: RequirementSet,
        shared_params: SharedParams,
        proof: Proof,
        decryption_keys: Mapping[str, AuthorityDecryptionKey],
        decrypt_responses: Mapping[DecryptKey, DecryptResponse],
        nonce: str,
    ) -> Tuple[ProofWarning, ...]:
        body = {
            "proofReqs": messages.encode_requirements(requirements),
            "sharedParams": messages.encode_shared_params(shared_params),
            "proof": proof.value,
            "decryptionKeys": messages.encode_decryption_keys(decryption_keys),
            "decryptResponses": messages.encode_decrypt_responses(decrypt_responses),
            "nonce": nonce,
        }
        return messages.decode_warnings(self._call("verifyDecryption", body))
