"""
Driver-licence (DL) and subscription (SUB) demo scenarios.

Two credentials issued by different signers, each with an accumulator
member attribute, a range-checked integer and an encryptable text that holds
the same value in both credentials. Scenario builders return requirement
sets exercising one constraint kind at a time, as the proof server's own
client test suites do.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Sequence, Tuple

from .credential_protocol.interfaces import ProofEngine
from .credential_protocol.proof import ProofOrchestrator
from .credential_protocol.requirements import (
    CredentialRequirements,
    EqInfo,
    InAccumInfo,
    IndexAndLabel,
    InRangeInfo,
)
from .credential_protocol.session import (
    AccumulatorJob,
    AccumulatorSetup,
    IssuanceJob,
    prepare,
)
from .credential_protocol.shared_params import SharedParameterRegistry
from .credential_protocol.types import (
    AuthorityData,
    ClaimType,
    DataValue,
    DecryptKey,
    DecryptRequest,
    DVInt,
    DVText,
    IssuanceResult,
    ProofArtifact,
    SignatureAndRelatedData,
    VerificationReport,
)
from .credential_protocol.verification import VerificationOrchestrator

log = logging.getLogger(__name__)

DL = "DL"
SUB = "SUB"
AUTH_LABEL = "authorityPublic"
NONCE = "nonce-from-java"


@dataclass(frozen=True)
class CredentialFixture:
    """Attributes and shared-parameter labels of one demo credential."""

    label: str
    signer_label: str
    values: Tuple[DataValue, ...]
    claim_types: Tuple[ClaimType, ...]
    blinded_indices: Tuple[int, ...]
    accumulator_index: int
    holder_label: str
    accumulator_label: str
    accumulator_public_data_label: str
    membership_key_label: str
    seq_num_label: str
    range_index: int
    range_min: int
    range_max: int
    range_min_label: str
    range_max_label: str
    range_key_label: str
    encrypted_index: int

    @property
    def accumulator_value(self) -> str:
        return self.values[self.accumulator_index].value


DL_FIXTURE = CredentialFixture(
    label=DL,
    signer_label="dlSignerPublic",
    values=(
        DVText(
            'CredentialMetadata (fromList [("purpose",DVText "DriverLicense"),'
            '("version",DVText "1.0")])'
        ),
        DVInt(37852),
        DVText("123-45-6789"),
        DVInt(180),
        DVText("abcdef0123456789abcdef0123456789"),
    ),
    claim_types=(
        ClaimType.TEXT,
        ClaimType.INT,
        ClaimType.ENCRYPTABLE_TEXT,
        ClaimType.INT,
        ClaimType.ACCUMULATOR_MEMBER,
    ),
    blinded_indices=(1, 2, 3, 4),
    accumulator_index=4,
    holder_label="dlHolderID",
    accumulator_label="dlAcc",
    accumulator_public_data_label="dlAccPublicData",
    membership_key_label="dlMpk",
    seq_num_label="DL_ACC_SEQ_NUM_LABEL",
    range_index=1,
    range_min=37696,
    range_max=999999999,
    range_min_label="dlMinBDdays",
    range_max_label="dlMaxBDdays",
    range_key_label="dlRppk",
    encrypted_index=2,
)

SUB_FIXTURE = CredentialFixture(
    label=SUB,
    signer_label="subSignerPublic",
    values=(
        DVText(
            'CredentialMetadata (fromList [("purpose",DVText "MonthlySubscription"),'
            '("version",DVText "1.0")])'
        ),
        DVText("aaaabcdef0123456789abcdef0123456"),
        DVInt(49997),
        DVText("123-45-6789"),
    ),
    claim_types=(
        ClaimType.TEXT,
        ClaimType.ACCUMULATOR_MEMBER,
        ClaimType.INT,
        ClaimType.ENCRYPTABLE_TEXT,
    ),
    blinded_indices=(1, 2, 3),
    accumulator_index=1,
    holder_label="subHolderID",
    accumulator_label="subAcc",
    accumulator_public_data_label="subAccPublicData",
    membership_key_label="subMpk",
    seq_num_label="SUB_ACC_SEQ_NUM_LABEL",
    range_index=2,
    range_min=0,
    range_max=49998,
    range_min_label="subMinValiddays",
    range_max_label="subMaxValiddays",
    range_key_label="subRppk",
    encrypted_index=3,
)

FIXTURES: Dict[str, CredentialFixture] = {DL: DL_FIXTURE, SUB: SUB_FIXTURE}


@dataclass
class DemoSession:
    """Everything a holder and verifier share for one demo run."""

    engine: ProofEngine
    registry: SharedParameterRegistry
    issued: Dict[str, IssuanceResult]
    credentials: Dict[str, SignatureAndRelatedData]
    accumulators: Dict[str, AccumulatorSetup]
    authority: AuthorityData
    fixtures: Dict[str, CredentialFixture] = field(default_factory=lambda: dict(FIXTURES))

    def decrypt_requests(self, requirements: Mapping[str, CredentialRequirements]) -> Dict[DecryptKey, DecryptRequest]:
        """One request per encryption target, answered by the demo authority."""
        request = DecryptRequest.for_authority(self.authority)
        return {
            DecryptKey(label, enc.index, enc.label): request
            for label, reqs in requirements.items()
            for enc in reqs.encrypted_for
        }


def build_session(
    engine: ProofEngine,
    *,
    blinded: bool = False,
    fixtures: Sequence[CredentialFixture] = (DL_FIXTURE, SUB_FIXTURE),
) -> DemoSession:
    """
    Issue every fixture credential, set up one accumulator per credential and
    publish all public parameters.
    """
    prepared = prepare(
        engine,
        [
            IssuanceJob(
                f.label,
                f.values,
                f.claim_types,
                f.blinded_indices if blinded else (),
            )
            for f in fixtures
        ],
        [AccumulatorJob(f.label, {f.holder_label: f.accumulator_value}) for f in fixtures],
    )
    range_key = engine.create_range_proof_proving_key()
    authority = engine.create_authority_data()

    registry = SharedParameterRegistry()
    registry.put_authority_public_data(AUTH_LABEL, authority.public)
    credentials: Dict[str, SignatureAndRelatedData] = {}
    for f in fixtures:
        issued = prepared.issued[f.label]
        acc = prepared.accumulators[f.label]
        registry.put_signer_public_data(f.signer_label, issued.signer_public_data)
        registry.put_range_proving_key(f.range_key_label, range_key)
        registry.put_range(f.range_min_label, f.range_min, f.range_max_label, f.range_max)
        registry.put_accumulator_state(
            acc.state,
            public_data_label=f.accumulator_public_data_label,
            accumulator_label=f.accumulator_label,
            seq_num_label=f.seq_num_label,
        )
        registry.put_membership_proving_key(f.membership_key_label, acc.membership_key)
        credentials[f.label] = issued.related_data(f.values).attach_witness(
            f.accumulator_index, acc.witnesses[f.holder_label]
        )

    log.info(f"Built demo session for {[f.label for f in fixtures]} (blinded={blinded})")
    return DemoSession(
        engine=engine,
        registry=registry,
        issued=dict(prepared.issued),
        credentials=credentials,
        accumulators=dict(prepared.accumulators),
        authority=authority,
        fixtures={f.label: f for f in fixtures},
    )


# ============================================================================
# REQUIREMENT SETS
# ============================================================================


def disclosure_requirements(disclosed: Mapping[str, Sequence[int]]) -> Dict[str, CredentialRequirements]:
    return {
        label: CredentialRequirements(FIXTURES[label].signer_label, disclosed=tuple(idxs))
        for label, idxs in disclosed.items()
    }


def equality_requirements() -> Dict[str, CredentialRequirements]:
    """DL[2] == SUB[3], declared from both sides."""
    return {
        DL: CredentialRequirements(
            DL_FIXTURE.signer_label, disclosed=(0,), equal_to=(EqInfo(2, SUB, 3),)
        ),
        SUB: CredentialRequirements(
            SUB_FIXTURE.signer_label, disclosed=(0,), equal_to=(EqInfo(3, DL, 2),)
        ),
    }


def range_requirements() -> Dict[str, CredentialRequirements]:
    return {
        f.label: CredentialRequirements(
            f.signer_label,
            in_range=(InRangeInfo(f.range_index, f.range_min_label, f.range_max_label, f.range_key_label),),
        )
        for f in FIXTURES.values()
    }


def accumulator_requirements() -> Dict[str, CredentialRequirements]:
    return {
        f.label: CredentialRequirements(
            f.signer_label,
            in_accum=(
                InAccumInfo(
                    f.accumulator_index,
                    f.accumulator_public_data_label,
                    f.membership_key_label,
                    f.accumulator_label,
                    f.seq_num_label,
                ),
            ),
        )
        for f in FIXTURES.values()
    }


def encryption_requirements() -> Dict[str, CredentialRequirements]:
    return {
        f.label: CredentialRequirements(
            f.signer_label, encrypted_for=(IndexAndLabel(f.encrypted_index, AUTH_LABEL),)
        )
        for f in FIXTURES.values()
    }


SCENARIOS: Dict[str, Callable[[], Dict[str, CredentialRequirements]]] = {
    "disclose": lambda: disclosure_requirements({DL: (0,)}),
    "equality": equality_requirements,
    "range": range_requirements,
    "accumulator": accumulator_requirements,
    "encryption": encryption_requirements,
}


@dataclass(frozen=True)
class ScenarioOutcome:
    name: str
    artifact: ProofArtifact
    report: VerificationReport


def run_scenario(
    session: DemoSession,
    name: str,
    *,
    nonce: str = NONCE,
    requirements: Optional[Mapping[str, CredentialRequirements]] = None,
) -> ScenarioOutcome:
    """Create and verify one proof for a named scenario."""
    reqs = dict(requirements) if requirements is not None else SCENARIOS[name]()
    sigs = {label: session.credentials[label] for label in reqs}
    artifact = ProofOrchestrator(session.engine).create_proof(sigs, reqs, session.registry, nonce)
    report = VerificationOrchestrator(session.engine).verify(
        artifact.data_for_verifier,
        reqs,
        session.registry,
        session.decrypt_requests(reqs),
        nonce,
    )
    return ScenarioOutcome(name, artifact, report)
