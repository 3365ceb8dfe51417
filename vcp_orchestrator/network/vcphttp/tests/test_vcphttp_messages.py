"""Unit tests for the proof server's JSON message schemas."""

from __future__ import annotations

import json

import pytest

from vcp_orchestrator.credential_protocol.requirements import (
    CredentialRequirements,
    EqInfo,
    InAccumInfo,
    IndexAndLabel,
    InRangeInfo,
)
from vcp_orchestrator.credential_protocol.shared_params import ParamKind, SharedParam
from vcp_orchestrator.credential_protocol.types import (
    AuthorityDecryptionKey,
    AuthoritySecretData,
    ClaimType,
    DataForVerifier,
    DecryptionProof,
    DecryptKey,
    DecryptRequest,
    DecryptResponse,
    DVInt,
    DVText,
    Proof,
    RangeProofProvingKey,
    RevealPrivacyWarning,
    Signature,
    SignatureAndRelatedData,
    SignerPublicData,
    SignerPublicSetupData,
    UnsupportedFeature,
    Witness,
)
from vcp_orchestrator.network.vcphttp import messages
from vcp_orchestrator.network.vcphttp.errors import WireFormatError

SIGNER_PUBLIC = SignerPublicData(
    SignerPublicSetupData("setup"), (ClaimType.TEXT, ClaimType.INT), (1,)
)


def test_value_encoding() -> None:
    assert messages.encode_value(DVText("x")) == {"tag": "DVText", "contents": "x"}
    assert messages.encode_value(DVInt(7)) == {"tag": "DVInt", "contents": 7}
    assert messages.decode_value({"tag": "DVInt", "contents": 7}) == DVInt(7)


@pytest.mark.parametrize(
    "obj",
    [
        {"tag": "DVInt", "contents": "7"},
        {"tag": "DVInt", "contents": True},
        {"tag": "DVText", "contents": 1},
        {"tag": "DVFloat", "contents": 1.5},
        {"contents": "x"},
    ],
)
def test_invalid_values_rejected(obj) -> None:
    with pytest.raises(WireFormatError):
        messages.decode_value(obj)


def test_indexed_values_sorted() -> None:
    encoded = messages.encode_indexed({3: DVInt(1), 1: DVText("a")})
    assert [item["index"] for item in encoded] == [1, 3]


def test_signer_public_data() -> None:
    encoded = messages.encode_signer_public_data(SIGNER_PUBLIC)
    assert encoded == {
        "signerPublicSetupData": "setup",
        "signerPublicSchema": ["CTText", "CTInt"],
        "signerBlindedAttrIdxs": [1],
    }
    assert messages.decode_signer_public_data(encoded) == SIGNER_PUBLIC


def test_unknown_claim_type_rejected() -> None:
    with pytest.raises(WireFormatError, match="invalid signer schema"):
        messages.decode_signer_public_data(
            {"signerPublicSetupData": "s", "signerPublicSchema": ["CTFloat"]}
        )


def test_requirements_use_camel_case() -> None:
    reqs = {
        "DL": CredentialRequirements(
            "dlSigner",
            disclosed=(2, 0),
            in_accum=(InAccumInfo(4, "accPub", "mpk", "acc", "seq"),),
            not_in_accum=(IndexAndLabel(4, "revoked"),),
            in_range=(InRangeInfo(1, "lo", "hi", "rpk"),),
            encrypted_for=(IndexAndLabel(2, "auth"),),
            equal_to=(EqInfo(2, "SUB", 3),),
        )
    }
    encoded = messages.encode_requirements(reqs)["DL"]
    assert encoded["signerLabel"] == "dlSigner"
    assert encoded["disclosed"] == [0, 2]
    assert encoded["inAccum"] == [
        {
            "index": 4,
            "accumulatorPublicDataLabel": "accPub",
            "membershipProvingKeyLabel": "mpk",
            "accumulatorLabel": "acc",
            "accumulatorSeqNumLabel": "seq",
        }
    ]
    assert encoded["notInAccum"] == [{"index": 4, "label": "revoked"}]
    assert encoded["inRange"] == [
        {"index": 1, "minLabel": "lo", "maxLabel": "hi", "rangeProvingKeyLabel": "rpk"}
    ]
    assert encoded["encryptedFor"] == [{"index": 2, "label": "auth"}]
    assert encoded["equalTo"] == [{"fromIndex": 2, "toLabel": "SUB", "toIndex": 3}]


def test_shared_params_are_spv_one() -> None:
    encoded = messages.encode_shared_params(
        {
            "lo": SharedParam(ParamKind.INT, 5),
            "rpk": SharedParam(ParamKind.RANGE_PROVING_KEY, RangeProofProvingKey("key")),
            "signer": SharedParam(ParamKind.SIGNER_PUBLIC_DATA, SIGNER_PUBLIC),
        }
    )
    assert encoded["lo"] == {"tag": "SPVOne", "contents": {"tag": "DVInt", "contents": 5}}
    assert encoded["rpk"] == {"tag": "SPVOne", "contents": {"tag": "DVText", "contents": '"key"'}}
    signer_text = encoded["signer"]["contents"]["contents"]
    assert json.loads(signer_text) == messages.encode_signer_public_data(SIGNER_PUBLIC)


def test_witnesses_keyed_by_string_index() -> None:
    sard = SignatureAndRelatedData(
        Signature("sig"), (DVText("a"), DVText("b")), {1: Witness("w")}
    )
    encoded = messages.encode_sigs_and_related_data({"C": sard})["C"]
    assert encoded["signature"] == "sig"
    assert encoded["accumulatorWitnesses"] == {"1": "w"}


def test_data_for_verifier() -> None:
    dfv = DataForVerifier({"C": {0: DVText("m"), 2: DVInt(3)}}, Proof("p"))
    encoded = messages.encode_data_for_verifier(dfv)
    assert encoded["revealedIdxsAndVals"] == {
        "C": {"0": {"tag": "DVText", "contents": "m"}, "2": {"tag": "DVInt", "contents": 3}}
    }
    assert messages.decode_data_for_verifier(encoded) == dfv


def test_decrypt_requests_nested() -> None:
    request = DecryptRequest(AuthoritySecretData("s"), AuthorityDecryptionKey("k"))
    encoded = messages.encode_decrypt_requests(
        {DecryptKey("DL", 2, "auth"): request, DecryptKey("SUB", 3, "auth"): request}
    )
    assert encoded == {
        "DL": {"2": {"auth": {"authoritySecretData": "s", "authorityDecryptionKey": "k"}}},
        "SUB": {"3": {"auth": {"authoritySecretData": "s", "authorityDecryptionKey": "k"}}},
    }


def test_verification_result_flattened() -> None:
    result = messages.decode_verification_result(
        {
            "warnings": [],
            "decryptResponses": {
                "DL": {"2": {"auth": {"value": "123-45-6789", "decryptionProof": "dp"}}}
            },
        }
    )
    assert result.decrypt_responses == {
        DecryptKey("DL", 2, "auth"): DecryptResponse("123-45-6789", DecryptionProof("dp"))
    }


def test_malformed_decrypt_map() -> None:
    with pytest.raises(WireFormatError, match="decrypt map"):
        messages.decode_verification_result({"warnings": [], "decryptResponses": {"DL": []}})


def test_decryption_keys_are_json_quoted() -> None:
    encoded = messages.encode_decryption_keys({"auth": AuthorityDecryptionKey("k")})
    assert encoded == {"auth": '"k"'}


def test_warnings() -> None:
    warnings = messages.decode_warnings(
        [
            {"tag": "UnsupportedFeature", "contents": "non-membership"},
            {"tag": "RevealPrivacyWarning", "contents": ["DL", "2", "encryptable"]},
        ]
    )
    assert warnings == (
        UnsupportedFeature("non-membership"),
        RevealPrivacyWarning("DL", 2, "encryptable"),
    )
    with pytest.raises(WireFormatError, match="unknown warning"):
        messages.decode_warning({"tag": "Mystery", "contents": None})
    with pytest.raises(WireFormatError, match="must be a list"):
        messages.decode_warnings({})


def test_proof_artifact_missing_field() -> None:
    with pytest.raises(WireFormatError, match="missing field 'dataForVerifier'"):
        messages.decode_proof_artifact({"warnings": []})
