"""
Shared fixtures: one issued credential with every constraint kind prepared.
"""

from dataclasses import dataclass
from typing import Dict

import pytest

from vcp_orchestrator.credential_protocol.accumulators import AccumulatorWitnessManager
from vcp_orchestrator.credential_protocol.adapters.mock_engine import MockProofEngine
from vcp_orchestrator.credential_protocol.requirements import (
    CredentialRequirements,
    InAccumInfo,
    IndexAndLabel,
    InRangeInfo,
)
from vcp_orchestrator.credential_protocol.shared_params import SharedParameterRegistry
from vcp_orchestrator.credential_protocol.signer import SignerWorkflow
from vcp_orchestrator.credential_protocol.types import (
    AuthorityData,
    ClaimType,
    DecryptKey,
    DecryptRequest,
    DVInt,
    DVText,
    SignatureAndRelatedData,
)

CLAIM_TYPES = (
    ClaimType.TEXT,
    ClaimType.INT,
    ClaimType.ENCRYPTABLE_TEXT,
    ClaimType.ACCUMULATOR_MEMBER,
)
VALUES = (DVText("metadata"), DVInt(42), DVText("123-45-6789"), DVText("member-1"))

IN_RANGE = InRangeInfo(1, "min", "max", "rpk")
IN_ACCUM = InAccumInfo(3, "accPublic", "mpk", "acc", "seq")
ENCRYPTED = IndexAndLabel(2, "auth")


@dataclass
class CredentialSetup:
    engine: MockProofEngine
    registry: SharedParameterRegistry
    sigs: Dict[str, SignatureAndRelatedData]
    authority: AuthorityData

    def decrypt_requests(self, keys):
        request = DecryptRequest.for_authority(self.authority)
        return {DecryptKey(*key): request for key in keys}


def build_setup(engine: MockProofEngine) -> CredentialSetup:
    issued = SignerWorkflow(engine).issue(VALUES, CLAIM_TYPES)
    manager = AccumulatorWitnessManager(engine)
    state = manager.create_accumulator()
    state, witnesses = manager.add_elements(
        state, {"holder": manager.create_element(VALUES[3].value)}
    )
    authority = engine.create_authority_data()

    registry = SharedParameterRegistry()
    registry.put_signer_public_data("signer", issued.signer_public_data)
    registry.put_range("min", 0, "max", 100)
    registry.put_range_proving_key("rpk", engine.create_range_proof_proving_key())
    registry.put_accumulator_state(
        state, public_data_label="accPublic", accumulator_label="acc", seq_num_label="seq"
    )
    registry.put_membership_proving_key("mpk", manager.create_membership_proving_key())
    registry.put_authority_public_data("auth", authority.public)

    sard = issued.related_data(VALUES).attach_witness(3, witnesses["holder"])
    return CredentialSetup(engine, registry, {"C": sard}, authority)


@pytest.fixture
def engine() -> MockProofEngine:
    return MockProofEngine()


@pytest.fixture
def prepared(engine) -> CredentialSetup:
    return build_setup(engine)


@pytest.fixture
def full_requirements():
    return {
        "C": CredentialRequirements(
            "signer",
            disclosed=(0,),
            in_range=(IN_RANGE,),
            in_accum=(IN_ACCUM,),
            encrypted_for=(ENCRYPTED,),
        )
    }


@pytest.fixture
def make_setup():
    return build_setup
