"""
Unit tests for the simulated proof engine.

These exercise engine-level behaviour directly, without the orchestrators'
local checks in front of it.
"""

import pytest

from vcp_orchestrator.credential_protocol.adapters.mock_engine import MockProofEngine
from vcp_orchestrator.credential_protocol.config import EngineConfig
from vcp_orchestrator.credential_protocol.exceptions import BackendError, ConfigurationError
from vcp_orchestrator.credential_protocol.interfaces import ProofEngine
from vcp_orchestrator.credential_protocol.requirements import (
    CredentialRequirements,
    EqInfo,
    InAccumInfo,
    IndexAndLabel,
)
from vcp_orchestrator.credential_protocol.types import (
    ClaimType,
    ConstraintWarning,
    DVText,
    Signature,
    SignatureAndRelatedData,
)

NONCE = "nonce-1"


class TestEngineBasics:
    def test_implements_interface(self):
        engine = MockProofEngine()
        assert isinstance(engine, ProofEngine)
        assert engine.engine_name == "MockProofEngine"
        assert engine.variant.name == "DNC"

    def test_variant_from_config(self):
        assert MockProofEngine(EngineConfig(zkp_lib="AC2C_PS")).variant.name == "AC2C_PS"

    def test_variant_argument_wins(self):
        engine = MockProofEngine(EngineConfig(zkp_lib="AC2C_PS"), variant="DNC")
        assert engine.variant.name == "DNC"

    def test_unknown_variant(self):
        with pytest.raises(ConfigurationError, match="Unknown proof system"):
            MockProofEngine(variant="NOPE")

    def test_context_manager(self):
        with MockProofEngine() as engine:
            assert engine.get_range_proof_max_value() == 2**63 - 1

    def test_same_seed_same_material(self):
        a = MockProofEngine(EngineConfig(rng_seed=5))
        b = MockProofEngine(EngineConfig(rng_seed=5))
        assert a.create_signer_data([ClaimType.TEXT]) == b.create_signer_data([ClaimType.TEXT])
        assert a.create_range_proof_proving_key() == b.create_range_proof_proving_key()

    def test_different_seed_different_material(self):
        a = MockProofEngine(EngineConfig(rng_seed=5))
        b = MockProofEngine(EngineConfig(rng_seed=6))
        assert a.create_signer_data([ClaimType.TEXT]) != b.create_signer_data([ClaimType.TEXT])

    def test_secret_material_is_redacted(self):
        signer = MockProofEngine().create_signer_data([ClaimType.TEXT])
        assert "redacted" in repr(signer.secret)


class TestIssuance:
    def test_empty_schema(self):
        with pytest.raises(BackendError, match="no claim types"):
            MockProofEngine().create_signer_data([])

    def test_blinded_index_out_of_range(self):
        with pytest.raises(BackendError, match="out of range"):
            MockProofEngine().create_signer_data([ClaimType.TEXT], [1])

    def test_foreign_signer_secret(self):
        engine = MockProofEngine()
        a = engine.create_signer_data([ClaimType.TEXT])
        b = engine.create_signer_data([ClaimType.TEXT])
        mixed = a.__class__(a.public, b.secret)
        with pytest.raises(BackendError, match="does not match"):
            engine.sign([DVText("x")], mixed)

    def test_blind_info_must_match_signer(self):
        engine = MockProofEngine()
        signer = engine.create_signer_data([ClaimType.TEXT, ClaimType.TEXT], [1])
        with pytest.raises(BackendError, match="do not match signer"):
            engine.create_blind_signing_info(signer.public, {0: DVText("x")})


class TestProofs:
    def test_forged_signature(self, prepared):
        sard = prepared.sigs["C"]
        forged = SignatureAndRelatedData(
            sard.signature, (DVText("forged"),) + sard.values[1:], sard.accumulator_witnesses
        )
        with pytest.raises(BackendError, match="does not verify"):
            prepared.engine.create_proof(
                {"C": CredentialRequirements("signer")}, prepared.registry.entries(), {"C": forged}, NONCE
            )

    def test_malformed_signature(self, prepared):
        sard = SignatureAndRelatedData(Signature("zz-not-hex"), prepared.sigs["C"].values)
        with pytest.raises(BackendError, match="malformed signature"):
            prepared.engine.create_proof(
                {"C": CredentialRequirements("signer")}, prepared.registry.entries(), {"C": sard}, NONCE
            )

    def test_index_out_of_range(self, prepared):
        with pytest.raises(BackendError, match="index 9 out of range"):
            prepared.engine.create_proof(
                {"C": CredentialRequirements("signer", disclosed=(9,))},
                prepared.registry.entries(),
                prepared.sigs,
                NONCE,
            )

    def test_missing_witness_is_a_warning(self, prepared):
        sard = SignatureAndRelatedData(prepared.sigs["C"].signature, prepared.sigs["C"].values)
        reqs = {"C": CredentialRequirements("signer", in_accum=(InAccumInfo(3, "accPublic", "mpk", "acc", "seq"),))}
        artifact = prepared.engine.create_proof(reqs, prepared.registry.entries(), {"C": sard}, NONCE)
        assert artifact.warnings == (ConstraintWarning("C", 3, "no accumulator witness attached"),)

    def test_equality_mismatch_is_a_warning(self, prepared):
        reqs = {"C": CredentialRequirements("signer", equal_to=(EqInfo(0, "C", 2),))}
        artifact = prepared.engine.create_proof(reqs, prepared.registry.entries(), prepared.sigs, NONCE)
        assert artifact.warnings == (ConstraintWarning("C", 2, "value differs from C[0]"),)

    def test_equality_to_unknown_credential(self, prepared):
        reqs = {"C": CredentialRequirements("signer", equal_to=(EqInfo(0, "D", 0),))}
        with pytest.raises(BackendError, match="unknown attribute"):
            prepared.engine.create_proof(reqs, prepared.registry.entries(), prepared.sigs, NONCE)

    def test_proof_from_other_seed_rejected(self, prepared, full_requirements):
        artifact = prepared.engine.create_proof(
            full_requirements, prepared.registry.entries(), prepared.sigs, NONCE
        )
        other = MockProofEngine(EngineConfig(rng_seed=99))
        with pytest.raises(BackendError, match="invalid proof"):
            other.verify_proof(
                full_requirements, prepared.registry.entries(), artifact.data_for_verifier, {}, NONCE
            )

    def test_ciphertext_bound_to_nonce(self, prepared):
        reqs = {"C": CredentialRequirements("signer", encrypted_for=(IndexAndLabel(2, "auth"),))}
        first = prepared.engine.create_proof(reqs, prepared.registry.entries(), prepared.sigs, "a")
        second = prepared.engine.create_proof(reqs, prepared.registry.entries(), prepared.sigs, "b")
        assert first.data_for_verifier.proof != second.data_for_verifier.proof
