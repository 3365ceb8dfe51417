"""
Unit tests for common types module.

Tests cover:
1. Attribute values and claim types
2. Opaque material reprs
3. Credential witness attachment
4. ProofArtifact serialization (CBOR) and version checking
5. Verification outcomes
"""

import cbor2
import pytest

from vcp_orchestrator.credential_protocol.config import ARTIFACT_VERSION
from vcp_orchestrator.credential_protocol.exceptions import (
    ConfigurationError,
    CryptographicError,
)
from vcp_orchestrator.credential_protocol.types import (
    AttributeSet,
    AuthoritySecretData,
    ClaimType,
    ConstraintWarning,
    DataForVerifier,
    DecryptionVerified,
    DVInt,
    DVText,
    KnownUnimplemented,
    Proof,
    ProofArtifact,
    RevealPrivacyWarning,
    Signature,
    SignatureAndRelatedData,
    SignerPublicData,
    SignerPublicSetupData,
    UnsupportedFeature,
    VerificationReport,
    VerificationResult,
    Witness,
    data_value,
)


# ============================================================================
# ATTRIBUTE VALUE TESTS
# ============================================================================


class TestDataValues:
    """Test DVText / DVInt validation."""

    def test_int_bounds(self):
        assert DVInt(0).value == 0
        assert DVInt(2**64 - 1).value == 2**64 - 1
        with pytest.raises(ConfigurationError, match="out of range"):
            DVInt(-1)
        with pytest.raises(ConfigurationError, match="out of range"):
            DVInt(2**64)

    def test_bool_is_not_an_int(self):
        with pytest.raises(ConfigurationError, match="requires int"):
            DVInt(True)

    def test_text_requires_str(self):
        with pytest.raises(ConfigurationError, match="requires str"):
            DVText(5)

    def test_data_value_wraps_plain_values(self):
        assert data_value("abc") == DVText("abc")
        assert data_value(7) == DVInt(7)
        assert data_value(DVInt(7)) == DVInt(7)

    def test_tags(self):
        assert DVText("x").tag == "DVText"
        assert DVInt(1).tag == "DVInt"


class TestClaimType:
    """Test ClaimType wire values and checks."""

    def test_wire_values(self):
        assert ClaimType.TEXT.value == "CTText"
        assert ClaimType.INT.value == "CTInt"
        assert ClaimType.ENCRYPTABLE_TEXT.value == "CTEncryptableText"
        assert ClaimType.ACCUMULATOR_MEMBER.value == "CTAccumulatorMember"

    def test_accepts(self):
        assert ClaimType.INT.accepts(DVInt(1))
        assert not ClaimType.INT.accepts(DVText("1"))
        assert ClaimType.ACCUMULATOR_MEMBER.accepts(DVText("member"))
        assert not ClaimType.TEXT.accepts(DVInt(1))

    def test_reveal_concern(self):
        assert ClaimType.TEXT.reveal_concern is None
        assert ClaimType.INT.reveal_concern is None
        assert ClaimType.ENCRYPTABLE_TEXT.reveal_concern == "encryptable"
        assert ClaimType.ACCUMULATOR_MEMBER.reveal_concern == "an accumulator member"


class TestAttributeSet:
    def test_check_types_ok(self):
        attrs = AttributeSet(("a", 1), (ClaimType.TEXT, ClaimType.INT))
        attrs.check_types()
        assert len(attrs) == 2
        assert attrs.values == (DVText("a"), DVInt(1))

    def test_count_mismatch(self):
        attrs = AttributeSet(("a",), (ClaimType.TEXT, ClaimType.INT))
        with pytest.raises(ConfigurationError, match="1 values but 2 claim types"):
            attrs.check_types()

    def test_wrong_kind(self):
        attrs = AttributeSet(("a",), (ClaimType.INT,))
        with pytest.raises(ConfigurationError, match="index 0"):
            attrs.check_types()

    def test_subset_is_sorted(self):
        attrs = AttributeSet(("a", "b", "c"), (ClaimType.TEXT,) * 3)
        assert list(attrs.subset([2, 0])) == [0, 2]


# ============================================================================
# OPAQUE MATERIAL TESTS
# ============================================================================


class TestOpaque:
    def test_repr_truncates(self):
        sig = Signature("f" * 100)
        assert "..." in repr(sig)
        assert len(repr(sig)) < 60

    def test_secret_repr_is_redacted(self):
        secret = AuthoritySecretData("very-secret-material")
        assert "very-secret" not in repr(secret)
        assert "redacted" in repr(secret)

    def test_requires_str(self):
        with pytest.raises(ConfigurationError):
            Signature(b"bytes")

    def test_distinct_kinds_are_not_equal(self):
        assert Signature("x") != Witness("x")


class TestSignerPublicData:
    def test_blinded_indices_sorted(self):
        spd = SignerPublicData(
            SignerPublicSetupData("setup"),
            ("CTText", "CTInt", "CTText"),
            (2, 1),
        )
        assert spd.blinded_indices == (1, 2)
        assert spd.schema == (ClaimType.TEXT, ClaimType.INT, ClaimType.TEXT)


class TestSignatureAndRelatedData:
    def _sard(self):
        return SignatureAndRelatedData(Signature("sig"), ("a", "b"))

    def test_attach_witness_returns_copy(self):
        sard = self._sard()
        attached = sard.attach_witness(1, Witness("w"))
        assert attached.accumulator_witnesses == {1: Witness("w")}
        assert sard.accumulator_witnesses == {}

    def test_attach_out_of_range(self):
        with pytest.raises(ConfigurationError, match="out of range"):
            self._sard().attach_witness(2, Witness("w"))

    def test_attach_twice(self):
        attached = self._sard().attach_witness(0, Witness("w"))
        with pytest.raises(ConfigurationError, match="already attached"):
            attached.attach_witness(0, Witness("w2"))

    def test_refresh_requires_existing(self):
        with pytest.raises(ConfigurationError, match="no witness attached"):
            self._sard().refresh_witness(0, Witness("w"))

    def test_refresh_replaces(self):
        attached = self._sard().attach_witness(0, Witness("w"))
        assert attached.refresh_witness(0, Witness("w2")).accumulator_witnesses == {
            0: Witness("w2")
        }


# ============================================================================
# PROOF ARTIFACT TESTS
# ============================================================================


def _artifact():
    return ProofArtifact(
        warnings=(
            UnsupportedFeature("non-membership"),
            RevealPrivacyWarning("DL", 2, "encryptable"),
            ConstraintWarning("SUB", 3, "value differs from DL[2]"),
        ),
        data_for_verifier=DataForVerifier(
            {"DL": {0: DVText("meta"), 1: DVInt(37852)}, "SUB": {}},
            Proof("proof-material"),
        ),
    )


class TestDataForVerifier:
    def test_revealed_indices_omit_empty(self):
        assert _artifact().data_for_verifier.revealed_indices() == {"DL": (0, 1)}


class TestProofArtifactSerialization:
    def test_serialize_deserialize(self):
        artifact = _artifact()
        restored = ProofArtifact.deserialize(artifact.serialize())
        assert restored == artifact

    def test_version_field(self):
        obj = cbor2.loads(_artifact().serialize())
        assert obj["v"] == ARTIFACT_VERSION

    def test_unsupported_version(self):
        obj = cbor2.loads(_artifact().serialize())
        obj["v"] = ARTIFACT_VERSION + 1
        with pytest.raises(CryptographicError, match="Unsupported artifact version"):
            ProofArtifact.deserialize(cbor2.dumps(obj))

    def test_garbage(self):
        with pytest.raises(CryptographicError):
            ProofArtifact.deserialize(b"\xff\x00garbage")

    def test_not_a_map(self):
        with pytest.raises(CryptographicError, match="CBOR map"):
            ProofArtifact.deserialize(cbor2.dumps([1, 2, 3]))

    def test_malformed_warning(self):
        obj = cbor2.loads(_artifact().serialize())
        obj["warnings"] = [["NoSuchWarning"]]
        with pytest.raises(CryptographicError, match="Unknown warning kind"):
            ProofArtifact.deserialize(cbor2.dumps(obj))


# ============================================================================
# OUTCOME TESTS
# ============================================================================


class TestOutcomes:
    def test_report_not_escalated(self):
        report = VerificationReport(VerificationResult((), {}))
        assert not report.escalated

    def test_report_escalated(self):
        report = VerificationReport(VerificationResult((), {}), DecryptionVerified())
        assert report.escalated
        assert report.decryption.ok

    def test_known_unimplemented_is_not_ok(self):
        outcome = KnownUnimplemented(variant="AC2C_BBS", detail="unimplemented")
        assert not outcome.ok

    def test_decryption_with_warnings_is_not_ok(self):
        assert not DecryptionVerified((UnsupportedFeature("x"),)).ok
