"""JSON message schemas for the proof server API."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple, TypeVar

from ...credential_protocol.requirements import CredentialRequirements, RequirementSet
from ...credential_protocol.shared_params import ParamKind, SharedParam
from ...credential_protocol.types import (
    Accumulator,
    AccumulatorData,
    AccumulatorPublicData,
    AccumulatorSecretData,
    AddRemoveResponse,
    AuthorityData,
    AuthorityDecryptionKey,
    AuthorityPublicData,
    AuthoritySecretData,
    BlindInfoForSigner,
    BlindSigningInfo,
    ClaimType,
    DataForVerifier,
    DataValue,
    DecryptionProof,
    DecryptKey,
    DecryptRequest,
    DecryptResponse,
    DVInt,
    DVText,
    InfoForUnblinding,
    Opaque,
    Proof,
    ProofArtifact,
    ProofWarning,
    RevealPrivacyWarning,
    SignatureAndRelatedData,
    SignerData,
    SignerPublicData,
    SignerPublicSetupData,
    SignerSecretData,
    UnsupportedFeature,
    VerificationResult,
    Witness,
    WitnessUpdateInfo,
)
from .errors import WireFormatError

O = TypeVar("O", bound=Opaque)


def _field(obj: Any, name: str) -> Any:
    if not isinstance(obj, dict) or name not in obj:
        raise WireFormatError(f"missing field {name!r}")
    return obj[name]


def _opaque(cls: Callable[[str], O], raw: Any, name: str) -> O:
    if not isinstance(raw, str):
        raise WireFormatError(f"{name} must be a string")
    return cls(raw)


def _index(raw: Any) -> int:
    try:
        idx = int(raw)
    except (TypeError, ValueError) as exc:
        raise WireFormatError(f"invalid attribute index {raw!r}") from exc
    if idx < 0:
        raise WireFormatError(f"invalid attribute index {raw!r}")
    return idx


# ============================================================================
# VALUES
# ============================================================================


def encode_value(value: DataValue) -> Dict[str, Any]:
    return {"tag": value.tag, "contents": value.value}


def decode_value(obj: Any) -> DataValue:
    tag = _field(obj, "tag")
    contents = _field(obj, "contents")
    if tag == "DVText" and isinstance(contents, str):
        return DVText(contents)
    if tag == "DVInt" and isinstance(contents, int) and not isinstance(contents, bool):
        return DVInt(contents)
    raise WireFormatError(f"invalid data value {obj!r}")


def encode_indexed(indexed: Mapping[int, DataValue]) -> List[Dict[str, Any]]:
    return [{"index": idx, "value": encode_value(indexed[idx])} for idx in sorted(indexed)]


# ============================================================================
# ISSUANCE
# ============================================================================


def encode_signer_public_data(spd: SignerPublicData) -> Dict[str, Any]:
    return {
        "signerPublicSetupData": spd.setup_data.value,
        "signerPublicSchema": [c.value for c in spd.schema],
        "signerBlindedAttrIdxs": list(spd.blinded_indices),
    }


def decode_signer_public_data(obj: Any) -> SignerPublicData:
    try:
        schema = tuple(ClaimType(c) for c in _field(obj, "signerPublicSchema"))
    except (TypeError, ValueError) as exc:
        raise WireFormatError(f"invalid signer schema: {exc}") from exc
    return SignerPublicData(
        setup_data=_opaque(SignerPublicSetupData, _field(obj, "signerPublicSetupData"), "signerPublicSetupData"),
        schema=schema,
        blinded_indices=tuple(_index(i) for i in obj.get("signerBlindedAttrIdxs", [])),
    )


def encode_signer_data(sd: SignerData) -> Dict[str, Any]:
    return {
        "signerPublicData": encode_signer_public_data(sd.public),
        "signerSecretData": sd.secret.value,
    }


def decode_signer_data(obj: Any) -> SignerData:
    return SignerData(
        public=decode_signer_public_data(_field(obj, "signerPublicData")),
        secret=_opaque(SignerSecretData, _field(obj, "signerSecretData"), "signerSecretData"),
    )


def decode_blind_signing_info(obj: Any) -> BlindSigningInfo:
    return BlindSigningInfo(
        blind_info_for_signer=_opaque(
            BlindInfoForSigner, _field(obj, "blindInfoForSigner"), "blindInfoForSigner"
        ),
        info_for_unblinding=_opaque(
            InfoForUnblinding, _field(obj, "infoForUnblinding"), "infoForUnblinding"
        ),
    )


# ============================================================================
# ACCUMULATORS AND AUTHORITIES
# ============================================================================


def encode_accumulator_data(data: AccumulatorData) -> Dict[str, Any]:
    return {
        "accumulatorPublicData": data.public.value,
        "accumulatorSecretData": data.secret.value,
    }


def decode_accumulator_data(obj: Any) -> AccumulatorData:
    return AccumulatorData(
        public=_opaque(AccumulatorPublicData, _field(obj, "accumulatorPublicData"), "accumulatorPublicData"),
        secret=_opaque(AccumulatorSecretData, _field(obj, "accumulatorSecretData"), "accumulatorSecretData"),
    )


def decode_create_accumulator(obj: Any) -> Tuple[AccumulatorData, Accumulator]:
    return (
        decode_accumulator_data(_field(obj, "accumulatorData")),
        _opaque(Accumulator, _field(obj, "accumulator"), "accumulator"),
    )


def decode_add_remove(obj: Any) -> AddRemoveResponse:
    witnesses = _field(obj, "witnessesForNew")
    if not isinstance(witnesses, dict):
        raise WireFormatError("witnessesForNew must be an object")
    return AddRemoveResponse(
        witness_update_info=_opaque(WitnessUpdateInfo, _field(obj, "witnessUpdateInfo"), "witnessUpdateInfo"),
        witnesses_for_new={
            label: _opaque(Witness, w, "witness") for label, w in witnesses.items()
        },
        accumulator_data=decode_accumulator_data(_field(obj, "accumulatorData")),
        accumulator=_opaque(Accumulator, _field(obj, "accumulator"), "accumulator"),
    )


def decode_authority_data(obj: Any) -> AuthorityData:
    return AuthorityData(
        public=_opaque(AuthorityPublicData, _field(obj, "authorityPublicData"), "authorityPublicData"),
        secret=_opaque(AuthoritySecretData, _field(obj, "authoritySecretData"), "authoritySecretData"),
        decryption_key=_opaque(
            AuthorityDecryptionKey, _field(obj, "authorityDecryptionKey"), "authorityDecryptionKey"
        ),
    )


# ============================================================================
# PROOF REQUESTS
# ============================================================================


def encode_requirements(requirements: RequirementSet) -> Dict[str, Any]:
    return {label: _encode_credential_reqs(reqs) for label, reqs in sorted(requirements.items())}


def _encode_credential_reqs(reqs: CredentialRequirements) -> Dict[str, Any]:
    return {
        "signerLabel": reqs.signer_label,
        "disclosed": sorted(reqs.disclosed),
        "inAccum": [
            {
                "index": a.index,
                "accumulatorPublicDataLabel": a.public_data_label,
                "membershipProvingKeyLabel": a.membership_key_label,
                "accumulatorLabel": a.accumulator_label,
                "accumulatorSeqNumLabel": a.seq_num_label,
            }
            for a in reqs.in_accum
        ],
        "notInAccum": [{"index": n.index, "label": n.label} for n in reqs.not_in_accum],
        "inRange": [
            {
                "index": r.index,
                "minLabel": r.min_label,
                "maxLabel": r.max_label,
                "rangeProvingKeyLabel": r.proving_key_label,
            }
            for r in reqs.in_range
        ],
        "encryptedFor": [{"index": e.index, "label": e.label} for e in reqs.encrypted_for],
        "equalTo": [
            {"fromIndex": e.from_index, "toLabel": e.to_label, "toIndex": e.to_index}
            for e in reqs.equal_to
        ],
    }


def encode_shared_param(param: SharedParam) -> Dict[str, Any]:
    """
    Encode one shared parameter as ``SPVOne``.

    Integers travel as ``DVInt``; signer public data as the JSON text of its
    object form; other opaque material as JSON-quoted text.
    """
    value = param.value
    if param.kind is ParamKind.INT:
        contents = encode_value(DVInt(value))
    elif param.kind is ParamKind.SIGNER_PUBLIC_DATA:
        contents = encode_value(DVText(json.dumps(encode_signer_public_data(value))))
    else:
        contents = encode_value(DVText(json.dumps(value.value)))
    return {"tag": "SPVOne", "contents": contents}


def encode_shared_params(shared_params: Mapping[str, SharedParam]) -> Dict[str, Any]:
    return {label: encode_shared_param(p) for label, p in sorted(shared_params.items())}


def encode_sigs_and_related_data(sigs: Mapping[str, SignatureAndRelatedData]) -> Dict[str, Any]:
    return {
        label: {
            "signature": sard.signature.value,
            "values": [encode_value(v) for v in sard.values],
            "accumulatorWitnesses": {
                str(idx): w.value for idx, w in sorted(sard.accumulator_witnesses.items())
            },
        }
        for label, sard in sorted(sigs.items())
    }


# ============================================================================
# PROOF RESULTS
# ============================================================================


def decode_warning(obj: Any) -> ProofWarning:
    tag = _field(obj, "tag")
    contents = _field(obj, "contents")
    if tag == "UnsupportedFeature" and isinstance(contents, str):
        return UnsupportedFeature(contents)
    if tag == "RevealPrivacyWarning" and isinstance(contents, list) and len(contents) == 3:
        label, idx, detail = contents
        return RevealPrivacyWarning(label, _index(idx), detail)
    raise WireFormatError(f"unknown warning {obj!r}")


def decode_warnings(raw: Any) -> Tuple[ProofWarning, ...]:
    if not isinstance(raw, list):
        raise WireFormatError("warnings must be a list")
    return tuple(decode_warning(w) for w in raw)


def encode_data_for_verifier(dfv: DataForVerifier) -> Dict[str, Any]:
    return {
        "revealedIdxsAndVals": {
            label: {str(idx): encode_value(v) for idx, v in sorted(vals.items())}
            for label, vals in sorted(dfv.revealed.items())
        },
        "proof": dfv.proof.value,
    }


def decode_data_for_verifier(obj: Any) -> DataForVerifier:
    revealed = _field(obj, "revealedIdxsAndVals")
    if not isinstance(revealed, dict):
        raise WireFormatError("revealedIdxsAndVals must be an object")
    return DataForVerifier(
        revealed={
            label: {_index(idx): decode_value(v) for idx, v in vals.items()}
            for label, vals in revealed.items()
        },
        proof=_opaque(Proof, _field(obj, "proof"), "proof"),
    )


def decode_proof_artifact(obj: Any) -> ProofArtifact:
    return ProofArtifact(
        warnings=decode_warnings(_field(obj, "warnings")),
        data_for_verifier=decode_data_for_verifier(_field(obj, "dataForVerifier")),
    )


def _nest(flat: Mapping[DecryptKey, Any], encode: Callable[[Any], Any]) -> Dict[str, Any]:
    nested: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for key in sorted(flat):
        by_index = nested.setdefault(key.credential_label, {})
        by_index.setdefault(str(key.index), {})[key.authority_label] = encode(flat[key])
    return nested


def _flatten(nested: Any, decode: Callable[[Any], Any]) -> Dict[DecryptKey, Any]:
    if not isinstance(nested, dict):
        raise WireFormatError("decrypt map must be an object")
    flat: Dict[DecryptKey, Any] = {}
    for label, by_index in nested.items():
        if not isinstance(by_index, dict):
            raise WireFormatError(f"decrypt map for {label!r} must be an object")
        for idx, by_authority in by_index.items():
            if not isinstance(by_authority, dict):
                raise WireFormatError(f"decrypt map for {label}[{idx}] must be an object")
            for authority, item in by_authority.items():
                flat[DecryptKey(label, _index(idx), authority)] = decode(item)
    return flat


def encode_decrypt_requests(requests: Mapping[DecryptKey, DecryptRequest]) -> Dict[str, Any]:
    return _nest(
        requests,
        lambda r: {
            "authoritySecretData": r.authority_secret_data.value,
            "authorityDecryptionKey": r.authority_decryption_key.value,
        },
    )


def encode_decrypt_responses(responses: Mapping[DecryptKey, DecryptResponse]) -> Dict[str, Any]:
    return _nest(
        responses,
        lambda r: {"value": r.value, "decryptionProof": r.decryption_proof.value},
    )


def _decode_decrypt_response(obj: Any) -> DecryptResponse:
    value = _field(obj, "value")
    if not isinstance(value, str):
        raise WireFormatError("decrypt response value must be a string")
    return DecryptResponse(
        value=value,
        decryption_proof=_opaque(DecryptionProof, _field(obj, "decryptionProof"), "decryptionProof"),
    )


def decode_verification_result(obj: Any) -> VerificationResult:
    return VerificationResult(
        warnings=decode_warnings(_field(obj, "warnings")),
        decrypt_responses=_flatten(_field(obj, "decryptResponses"), _decode_decrypt_response),
    )


def encode_decryption_keys(keys: Mapping[str, AuthorityDecryptionKey]) -> Dict[str, str]:
    return {label: json.dumps(dk.value) for label, dk in sorted(keys.items())}


def encode_values(values: Sequence[DataValue]) -> List[Dict[str, Any]]:
    return [encode_value(v) for v in values]
