"""
Unit tests for issuance: direct signing and blind signing sessions.
"""

import pytest

from vcp_orchestrator.credential_protocol.adapters.mock_engine import MockProofEngine
from vcp_orchestrator.credential_protocol.exceptions import BackendError, ConfigurationError
from vcp_orchestrator.credential_protocol.signer import (
    BlindSigningSession,
    SessionState,
    SignerWorkflow,
    partition_indices,
)
from vcp_orchestrator.credential_protocol.types import (
    AttributeSet,
    BlindSignature,
    ClaimType,
    DVInt,
    DVText,
)

CLAIM_TYPES = (ClaimType.TEXT, ClaimType.INT, ClaimType.ENCRYPTABLE_TEXT, ClaimType.INT)
VALUES = (DVText("metadata"), DVInt(37852), DVText("123-45-6789"), DVInt(180))


class _CountingEngine(MockProofEngine):
    """Mock engine that records which operations were called."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def create_signer_data(self, *args, **kwargs):
        self.calls.append("createSignerData")
        return super().create_signer_data(*args, **kwargs)

    def unblind_blinded_signature(self, *args, **kwargs):
        self.calls.append("unblindBlindedSignature")
        raise BackendError(400, "unblindBlindedSignature: boom")


class TestPartition:
    def test_complement(self):
        assert partition_indices(4, [1, 3]) == {0, 2}

    def test_all_blinded(self):
        assert partition_indices(2, [0, 1]) == set()

    def test_duplicate(self):
        with pytest.raises(ConfigurationError, match="duplicate blinded index"):
            partition_indices(4, [1, 1])

    def test_out_of_range(self):
        with pytest.raises(ConfigurationError, match="out of range"):
            partition_indices(4, [4])


class TestDirectIssuance:
    def test_issue(self, engine):
        result = SignerWorkflow(engine).issue(VALUES, CLAIM_TYPES)
        assert result.signer_public_data.schema == CLAIM_TYPES
        assert result.signer_public_data.blinded_indices == ()
        assert result.related_data(VALUES).values == VALUES

    def test_count_mismatch_is_backend_error(self, engine):
        with pytest.raises(BackendError, match="3 values for 4 claim types"):
            SignerWorkflow(engine).issue(VALUES[:3], CLAIM_TYPES)

    def test_wrong_value_type_is_backend_error(self, engine):
        values = (DVText("metadata"), DVText("not-an-int"), DVText("x"), DVInt(1))
        with pytest.raises(BackendError):
            SignerWorkflow(engine).issue(values, CLAIM_TYPES)


class TestBlindIssuance:
    def test_blind_equals_direct(self, engine):
        signer_data = engine.create_signer_data(CLAIM_TYPES, (1, 2))
        direct = engine.sign(VALUES, signer_data)
        blind = SignerWorkflow(engine).issue_blind(signer_data, AttributeSet(VALUES, CLAIM_TYPES))
        assert blind == direct

    def test_issue_records_blinded_indices(self, engine):
        result = SignerWorkflow(engine).issue(VALUES, CLAIM_TYPES, blinded_indices=[3, 1])
        assert result.signer_public_data.blinded_indices == (1, 3)

    def test_all_attributes_blinded(self, engine):
        result = SignerWorkflow(engine).issue(VALUES, CLAIM_TYPES, blinded_indices=[0, 1, 2, 3])
        assert result.signature == engine.sign(VALUES, result.signer_data)

    def test_partition_error_before_engine_call(self):
        engine = _CountingEngine()
        with pytest.raises(ConfigurationError, match="out of range"):
            SignerWorkflow(engine).issue(VALUES, CLAIM_TYPES, blinded_indices=[7])
        assert engine.calls == []

    def test_count_mismatch_before_engine_call(self):
        engine = _CountingEngine()
        with pytest.raises(ConfigurationError, match="3 values but 4 claim types"):
            SignerWorkflow(engine).issue(VALUES[:3], CLAIM_TYPES, blinded_indices=[1])
        assert engine.calls == []

    def test_wrong_value_type_before_engine_call(self):
        engine = _CountingEngine()
        values = (DVText("metadata"), DVText("not-an-int"), DVText("x"), DVInt(1))
        with pytest.raises(ConfigurationError, match="index 1: DVText is not valid for CTInt"):
            SignerWorkflow(engine).issue(values, CLAIM_TYPES, blinded_indices=[2])
        assert engine.calls == []


class TestBlindSigningSession:
    def _session(self, engine, blinded=(1, 2)):
        signer_data = engine.create_signer_data(CLAIM_TYPES, blinded)
        return BlindSigningSession(engine, signer_data, AttributeSet(VALUES, CLAIM_TYPES))

    def test_partition(self, engine):
        session = self._session(engine)
        assert sorted(session.blinded) == [1, 2]
        assert sorted(session.non_blinded) == [0, 3]

    def test_steps_in_order(self, engine):
        session = self._session(engine)
        assert session.state is SessionState.CREATED
        assert isinstance(session.blind_sign(), BlindSignature)
        assert session.state is SessionState.SIGNED
        session.unblind()
        assert session.state is SessionState.UNBLINDED

    def test_unblind_before_sign(self, engine):
        with pytest.raises(ConfigurationError, match="'unblind' not allowed in state 'created'"):
            self._session(engine).unblind()

    def test_session_is_single_use(self, engine):
        session = self._session(engine)
        session.run()
        with pytest.raises(ConfigurationError, match="not allowed"):
            session.blind_sign()

    def test_requires_blinded_signer(self, engine):
        with pytest.raises(ConfigurationError, match="use direct signing"):
            self._session(engine, blinded=())

    def test_failure_aborts(self):
        engine = _CountingEngine()
        session = self._session(engine)
        session.blind_sign()
        with pytest.raises(BackendError, match="boom"):
            session.unblind()
        assert session.state is SessionState.ABORTED
        with pytest.raises(ConfigurationError, match="aborted"):
            session.unblind()
